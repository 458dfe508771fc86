from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy import distinct, extract, func
from sqlalchemy.orm import Session

from pos_reports.aggregates import (
    best_effort,
    iso,
    payment_breakdown,
    person_name,
    profit_margin,
    stock_percentage,
    to_float,
    to_int,
    weekday_breakdown,
)
from pos_reports.config import settings
from pos_reports.models import Customer, Product, Sale, SaleItem, User
from pos_reports.periods import Period, day_start, period_filters


class ReportType(str, Enum):
    ALL = "all"
    FINANCIAL = "financial"
    PRODUCTS = "products"
    DAILY = "daily"
    CUSTOMERS = "customers"
    INVENTORY = "inventory"
    SELLERS = "sellers"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ReportType":
        normalized = (value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            options = ", ".join(member.value for member in cls)
            raise ValueError(f"invalid report_type {value!r}; expected one of: {options}") from None

    def includes(self, section: "ReportType") -> bool:
        return self is ReportType.ALL or self is section


def _financial(db: Session, conditions: list) -> dict:
    totals = db.query(
        func.count(Sale.id).label("total_sales"),
        func.coalesce(func.sum(Sale.total), 0).label("total_revenue"),
        func.coalesce(func.sum(Sale.subtotal), 0).label("subtotal_amount"),
        func.coalesce(func.sum(Sale.tax), 0).label("total_tax"),
        func.coalesce(func.avg(Sale.total), 0).label("avg_sale"),
    ).filter(*conditions).one()

    total_costs = (
        db.query(func.coalesce(func.sum(SaleItem.quantity * func.coalesce(Product.cost, 0)), 0))
        .select_from(SaleItem)
        .join(Product, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(*conditions)
        .scalar()
    )

    dow = extract("dow", Sale.date)
    weekday_rows = (
        db.query(dow.label("dow"), func.count(Sale.id).label("sales_count"))
        .filter(*conditions)
        .group_by(dow)
        .all()
    )
    payment_rows = (
        db.query(
            Sale.payment_method,
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total), 0).label("amount"),
        )
        .filter(*conditions)
        .group_by(Sale.payment_method)
        .all()
    )

    revenue = to_float(totals.total_revenue)
    costs = to_float(total_costs)
    return {
        "financial_summary": {
            "total_sales": to_int(totals.total_sales),
            "total_revenue": revenue,
            "subtotal_amount": to_float(totals.subtotal_amount),
            "total_costs": costs,
            "total_profit": revenue - costs,
            "profit_margin": profit_margin(revenue, costs),
            "avg_sale": to_float(totals.avg_sale),
            "total_tax": to_float(totals.total_tax),
        },
        "sales_by_weekday": weekday_breakdown(row._asdict() for row in weekday_rows),
        "sales_by_payment_method": payment_breakdown(row._asdict() for row in payment_rows),
    }


def _empty_financial() -> dict:
    return {
        "financial_summary": {
            "total_sales": 0,
            "total_revenue": 0.0,
            "subtotal_amount": 0.0,
            "total_costs": 0.0,
            "total_profit": 0.0,
            "profit_margin": 0.0,
            "avg_sale": 0.0,
            "total_tax": 0.0,
        },
        "sales_by_weekday": weekday_breakdown([]),
        "sales_by_payment_method": payment_breakdown([]),
    }


def _top_products(db: Session, conditions: list) -> list[dict]:
    total_sold = func.sum(SaleItem.quantity)
    rows = (
        db.query(
            Product.id,
            Product.name,
            Product.price,
            Product.cost,
            Product.stock,
            total_sold.label("total_sold"),
            func.count(distinct(SaleItem.sale_id)).label("times_sold"),
            func.coalesce(func.sum(SaleItem.subtotal), 0).label("total_revenue"),
            func.coalesce(func.sum(SaleItem.quantity * func.coalesce(Product.cost, 0)), 0).label(
                "total_cost"
            ),
            func.avg(SaleItem.unit_price).label("avg_selling_price"),
        )
        .select_from(SaleItem)
        .join(Product, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(*conditions)
        .group_by(Product.id, Product.name, Product.price, Product.cost, Product.stock)
        .order_by(total_sold.desc(), Product.id)
        .limit(settings.top_products_limit)
        .all()
    )
    return [
        {
            "id": row.id,
            "name": row.name,
            "price": to_float(row.price),
            "cost": to_float(row.cost),
            "total_sold": to_int(row.total_sold),
            "times_sold": to_int(row.times_sold),
            "total_revenue": to_float(row.total_revenue),
            "total_cost": to_float(row.total_cost),
            "total_profit": to_float(row.total_revenue) - to_float(row.total_cost),
            "avg_selling_price": round(to_float(row.avg_selling_price), 2),
            "current_stock": to_int(row.stock),
        }
        for row in rows
    ]


def _daily_sales(db: Session, now: datetime) -> list[dict]:
    days = settings.daily_sales_days
    sale_day = func.date(Sale.date)
    rows = (
        db.query(
            sale_day.label("sale_date"),
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total), 0).label("daily_total"),
            func.coalesce(func.avg(Sale.total), 0).label("daily_avg"),
        )
        .filter(Sale.date >= day_start(now) - timedelta(days=days))
        .group_by(sale_day)
        .order_by(sale_day.desc())
        .limit(days)
        .all()
    )
    return [
        {
            "date": iso(row.sale_date),
            "sales_count": to_int(row.sales_count),
            "total": to_float(row.daily_total),
            "avg": to_float(row.daily_avg),
        }
        for row in rows
    ]


def _top_customers(db: Session, conditions: list) -> list[dict]:
    total_spent = func.coalesce(func.sum(Sale.total), 0)
    rows = (
        db.query(
            Customer.id,
            Customer.name,
            Customer.phone,
            Customer.email,
            func.count(Sale.id).label("total_purchases"),
            total_spent.label("total_spent"),
            func.avg(Sale.total).label("avg_purchase"),
            func.max(Sale.date).label("last_purchase"),
        )
        .join(Sale, Sale.customer_id == Customer.id)
        .filter(*conditions)
        .group_by(Customer.id, Customer.name, Customer.phone, Customer.email)
        .order_by(total_spent.desc(), Customer.id)
        .limit(settings.top_customers_limit)
        .all()
    )
    return [
        {
            "id": row.id,
            "name": row.name,
            "phone": row.phone,
            "email": row.email,
            "total_purchases": to_int(row.total_purchases),
            "total_spent": to_float(row.total_spent),
            "avg_purchase": to_float(row.avg_purchase),
            "last_purchase": iso(row.last_purchase),
        }
        for row in rows
    ]


def _low_stock(db: Session) -> list[dict]:
    products = (
        db.query(Product)
        .filter(Product.stock <= Product.min_stock, Product.available.is_(True))
        .all()
    )
    data = [
        {
            "id": product.id,
            "name": product.name,
            "stock": to_int(product.stock),
            "min_stock": to_int(product.min_stock),
            "price": to_float(product.price),
            "stock_value": to_float(product.price) * to_int(product.stock),
            "stock_percentage": stock_percentage(product.stock, product.min_stock),
        }
        for product in products
    ]
    data.sort(key=lambda item: (item["stock_percentage"], item["stock"], item["id"]))
    return data[: settings.low_stock_limit]


def _seller_summary(db: Session, conditions: list) -> list[dict]:
    total_amount = func.coalesce(func.sum(Sale.total), 0)
    rows = (
        db.query(
            User.id,
            User.username,
            User.first_name,
            User.last_name,
            func.count(Sale.id).label("total_sales"),
            total_amount.label("total_amount"),
            func.avg(Sale.total).label("avg_sale"),
            func.max(Sale.date).label("last_sale"),
        )
        .join(Sale, Sale.user_id == User.id)
        .filter(*conditions)
        .group_by(User.id, User.username, User.first_name, User.last_name)
        .order_by(total_amount.desc(), User.id)
        .all()
    )
    return [
        {
            "id": row.id,
            "username": row.username,
            "name": person_name(row.first_name, row.last_name, row.username),
            "total_sales": to_int(row.total_sales),
            "total_amount": to_float(row.total_amount),
            "avg_sale": to_float(row.avg_sale),
            "last_sale": iso(row.last_sale),
        }
        for row in rows
    ]


def build_report(
    db: Session, period: Period, report_type: ReportType, now: datetime
) -> tuple[dict, list[str]]:
    warnings: list[str] = []
    conditions = period_filters(Sale.date, period, now)
    report: dict = {}

    if report_type.includes(ReportType.FINANCIAL):
        report.update(
            best_effort(db, "financial", lambda s: _financial(s, conditions), _empty_financial, warnings)
        )
    if report_type.includes(ReportType.PRODUCTS):
        report["top_products"] = best_effort(
            db, "top_products", lambda s: _top_products(s, conditions), list, warnings
        )
    if report_type.includes(ReportType.DAILY):
        report["daily_sales"] = best_effort(
            db, "daily_sales", lambda s: _daily_sales(s, now), list, warnings
        )
    if report_type.includes(ReportType.CUSTOMERS):
        report["top_customers"] = best_effort(
            db, "top_customers", lambda s: _top_customers(s, conditions), list, warnings
        )
    if report_type.includes(ReportType.INVENTORY):
        report["low_stock_products"] = best_effort(db, "low_stock", _low_stock, list, warnings)
    if report_type.includes(ReportType.SELLERS):
        report["seller_summary"] = best_effort(
            db, "seller_summary", lambda s: _seller_summary(s, conditions), list, warnings
        )

    report["period"] = period.value
    report["report_type"] = report_type.value
    report["generated_at"] = now.isoformat()
    return report, warnings
