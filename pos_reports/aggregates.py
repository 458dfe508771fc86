from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

WEEKDAYS = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
PAYMENT_METHODS = ("cash", "card", "transfer")


def best_effort(
    db: Session,
    name: str,
    fetch: Callable[[Session], T],
    default: Callable[[], T],
    warnings: list[str],
) -> T:
    """Run one independent metric group, degrading to ``default()`` on database errors.

    The session is rolled back after a failure so PostgreSQL accepts the next
    group's queries instead of reporting an aborted transaction.
    """
    try:
        return fetch(db)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("metric group %s failed, using default: %s", name, exc)
        warnings.append(f"{name}_unavailable")
        return default()


def to_float(value: Any) -> float:
    if value is None:
        return 0.0
    return float(value)


def to_int(value: Any) -> int:
    if value is None:
        return 0
    return int(value)


def iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def growth_percent(current: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def profit_margin(revenue: float, costs: float) -> float:
    if revenue == 0:
        return 0.0
    return round((revenue - costs) / revenue * 100, 2)


def average(total: float, count: int) -> float:
    if count <= 0:
        return 0.0
    return total / count


def person_name(first: Optional[str], last: Optional[str], fallback: Optional[str]) -> Optional[str]:
    name = f"{first or ''} {last or ''}".strip()
    return name or fallback


def stock_percentage(stock: Any, min_stock: Any) -> float:
    minimum = to_int(min_stock)
    if minimum <= 0:
        return 100.0
    return round(to_int(stock) / minimum * 100, 1)


def weekday_breakdown(rows: Iterable[Mapping[str, Any]]) -> dict[str, int]:
    counts = {day: 0 for day in WEEKDAYS}
    for row in rows:
        if row["dow"] is None:
            continue
        counts[WEEKDAYS[int(row["dow"]) % 7]] += to_int(row["sales_count"])
    return counts


def payment_breakdown(rows: Iterable[Mapping[str, Any]]) -> dict[str, dict[str, Any]]:
    breakdown: dict[str, dict[str, Any]] = {
        method: {"count": 0, "amount": 0.0} for method in PAYMENT_METHODS
    }
    for row in rows:
        method = (row["payment_method"] or "unknown").lower()
        bucket = breakdown.setdefault(method, {"count": 0, "amount": 0.0})
        bucket["count"] += to_int(row["sales_count"])
        bucket["amount"] += to_float(row["amount"])
    return breakdown


def payment_counts(breakdown: Mapping[str, Mapping[str, Any]]) -> dict[str, int]:
    return {method: values["count"] for method, values in breakdown.items()}
