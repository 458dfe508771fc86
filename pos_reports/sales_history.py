from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime

from sqlalchemy import case, distinct, func
from sqlalchemy.orm import Session

from pos_reports.aggregates import best_effort, iso, person_name, to_float, to_int
from pos_reports.config import settings
from pos_reports.formatting import format_currency, format_datetime
from pos_reports.models import Customer, Sale, SaleItem, User
from pos_reports.periods import Period, period_filters

PREVIEW_ITEMS = 3


def _items_by_sale(db: Session, sale_ids: list[int]) -> dict[int, list[str]]:
    items: dict[int, list[str]] = defaultdict(list)
    if not sale_ids:
        return items
    rows = (
        db.query(SaleItem.sale_id, SaleItem.quantity, SaleItem.product_name)
        .filter(SaleItem.sale_id.in_(sale_ids))
        .order_by(SaleItem.sale_id, SaleItem.id)
        .all()
    )
    for row in rows:
        items[row.sale_id].append(f"{row.quantity}x {row.product_name}")
    return items


def _period_stats(db: Session, conditions: list) -> dict:
    row = db.query(
        func.count(Sale.id).label("total_sales"),
        func.coalesce(func.sum(Sale.total), 0).label("total_amount"),
        func.coalesce(func.sum(Sale.tax), 0).label("total_tax"),
        func.coalesce(func.avg(Sale.total), 0).label("avg_sale"),
        func.min(Sale.total).label("min_sale"),
        func.max(Sale.total).label("max_sale"),
        func.count(distinct(Sale.customer_id)).label("unique_customers"),
        func.count(case((Sale.payment_method == "cash", 1))).label("cash_payments"),
        func.count(case((Sale.payment_method == "card", 1))).label("card_payments"),
        func.count(case((Sale.payment_method == "transfer", 1))).label("transfer_payments"),
    ).filter(*conditions).one()
    return {
        "total_sales": to_int(row.total_sales),
        "total_amount": to_float(row.total_amount),
        "total_tax": to_float(row.total_tax),
        "avg_sale": to_float(row.avg_sale),
        "min_sale": to_float(row.min_sale),
        "max_sale": to_float(row.max_sale),
        "unique_customers": to_int(row.unique_customers),
        "payment_methods": {
            "cash": to_int(row.cash_payments),
            "card": to_int(row.card_payments),
            "transfer": to_int(row.transfer_payments),
        },
    }


def _empty_stats() -> dict:
    return {
        "total_sales": 0,
        "total_amount": 0.0,
        "total_tax": 0.0,
        "avg_sale": 0.0,
        "min_sale": 0.0,
        "max_sale": 0.0,
        "unique_customers": 0,
        "payment_methods": {"cash": 0, "card": 0, "transfer": 0},
    }


def _sale_payload(row, items: list[str]) -> dict:
    return {
        "id": row.id,
        "date": iso(row.date),
        "subtotal": to_float(row.subtotal),
        "tax": to_float(row.tax),
        "total": to_float(row.total),
        "payment_method": row.payment_method,
        "amount_paid": to_float(row.amount_paid),
        "change": to_float(row.change),
        "ncf": row.ncf,
        "customer": {
            "name": row.customer_name or settings.walk_in_customer_name,
            "cedula": row.customer_cedula,
            "phone": row.customer_phone,
        },
        "seller": {
            "username": row.seller_username,
            "name": person_name(row.seller_first_name, row.seller_last_name, row.seller_username),
        },
        "items_count": len(items),
        "items_preview": ", ".join(items[:PREVIEW_ITEMS]) or None,
        "formatted_date": format_datetime(row.date),
        "formatted_total": format_currency(row.total),
    }


def build_sales_history(
    db: Session, period: Period, limit: int, offset: int, now: datetime
) -> tuple[dict, list[str]]:
    warnings: list[str] = []
    conditions = period_filters(Sale.date, period, now)

    rows = (
        db.query(
            Sale.id,
            Sale.date,
            Sale.subtotal,
            Sale.tax,
            Sale.total,
            Sale.payment_method,
            Sale.amount_paid,
            Sale.change,
            Sale.ncf,
            Customer.name.label("customer_name"),
            Customer.cedula.label("customer_cedula"),
            Customer.phone.label("customer_phone"),
            User.username.label("seller_username"),
            User.first_name.label("seller_first_name"),
            User.last_name.label("seller_last_name"),
        )
        .outerjoin(Customer, Sale.customer_id == Customer.id)
        .outerjoin(User, Sale.user_id == User.id)
        .filter(*conditions)
        .order_by(Sale.date.desc(), Sale.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    items = _items_by_sale(db, [row.id for row in rows])
    total_count = to_int(db.query(func.count(Sale.id)).filter(*conditions).scalar())
    stats = best_effort(
        db, "period_stats", lambda s: _period_stats(s, conditions), _empty_stats, warnings
    )

    data = {
        "sales": [_sale_payload(row, items.get(row.id, [])) for row in rows],
        "pagination": {
            "total_count": total_count,
            "current_page": offset // limit + 1,
            "per_page": limit,
            "total_pages": math.ceil(total_count / limit),
        },
        "period": period.value,
        "stats": stats,
    }
    return data, warnings
