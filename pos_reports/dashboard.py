from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from pos_reports.aggregates import average, best_effort, growth_percent, to_float, to_int
from pos_reports.models import CashRegister, Customer, Product, Sale
from pos_reports.periods import (
    Period,
    date_filters,
    month_start,
    period_filters,
    previous_month_start,
    week_start,
)


def _sales_totals(db: Session, conditions: list) -> dict:
    row = db.query(
        func.coalesce(func.sum(Sale.total), 0).label("income"),
        func.count(Sale.id).label("sales_count"),
    ).filter(*conditions).one()
    return {"income": to_float(row.income), "sales_count": to_int(row.sales_count)}


def _window_comparison(db: Session, current_start: datetime, previous_start: datetime) -> dict:
    current = _sales_totals(db, date_filters(Sale.date, current_start, None))
    previous = _sales_totals(db, date_filters(Sale.date, previous_start, current_start))
    return {"current": current["income"], "previous": previous["income"]}


def _cash_balance(db: Session) -> float:
    balance = db.query(CashRegister.current_balance).filter(CashRegister.id == 1).scalar()
    return to_float(balance)


def _inventory(db: Session) -> dict:
    row = db.query(
        func.coalesce(func.sum(Product.price * Product.stock), 0).label("inventory_value"),
        func.count(case((Product.stock <= Product.min_stock, 1))).label("low_stock_count"),
    ).filter(Product.available.is_(True)).one()
    return {
        "inventory_value": to_float(row.inventory_value),
        "low_stock_count": to_int(row.low_stock_count),
    }


def _empty_comparison() -> dict:
    return {"current": 0.0, "previous": 0.0}


def build_dashboard_stats(db: Session, period: Period, now: datetime) -> tuple[dict, list[str]]:
    warnings: list[str] = []
    this_week = week_start(now)
    this_month = month_start(now)

    period_totals = best_effort(
        db,
        "period_income",
        lambda s: _sales_totals(s, period_filters(Sale.date, period, now)),
        lambda: {"income": 0.0, "sales_count": 0},
        warnings,
    )
    weekly = best_effort(
        db,
        "weekly_sales",
        lambda s: _window_comparison(s, this_week, this_week - timedelta(weeks=1)),
        _empty_comparison,
        warnings,
    )
    monthly = best_effort(
        db,
        "monthly_sales",
        lambda s: _window_comparison(s, this_month, previous_month_start(now)),
        _empty_comparison,
        warnings,
    )
    cash_balance = best_effort(db, "cash_balance", _cash_balance, lambda: 0.0, warnings)
    total_customers = best_effort(
        db,
        "customers",
        lambda s: to_int(s.query(func.count(Customer.id)).scalar()),
        lambda: 0,
        warnings,
    )
    inventory = best_effort(
        db,
        "inventory",
        _inventory,
        lambda: {"inventory_value": 0.0, "low_stock_count": 0},
        warnings,
    )

    stats = {
        "periodIncome": period_totals["income"],
        "weeklySales": weekly["current"],
        "monthlySales": monthly["current"],
        "cashBalance": cash_balance,
        "totalSales": period_totals["sales_count"],
        "avgSale": average(period_totals["income"], period_totals["sales_count"]),
        "inventoryValue": inventory["inventory_value"],
        "totalCustomers": total_customers,
        "lowStockCount": inventory["low_stock_count"],
        "weeklyGrowth": growth_percent(weekly["current"], weekly["previous"]),
        "monthlyGrowth": growth_percent(monthly["current"], monthly["previous"]),
        "previousWeekSales": weekly["previous"],
        "previousMonthSales": monthly["previous"],
        "period": period.value,
    }
    return stats, warnings
