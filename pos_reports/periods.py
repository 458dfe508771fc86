from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from pos_reports.config import settings


class Period(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    ALL = "all"

    @classmethod
    def options(cls) -> list[str]:
        return [member.value for member in cls]

    @classmethod
    def parse(cls, value: Optional[str]) -> "Period":
        normalized = (value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"invalid period {value!r}; expected one of: {', '.join(cls.options())}"
            ) from None


def store_now() -> datetime:
    """Store-local wall clock as a naive datetime, matching how sales.date is stored."""
    return datetime.now(ZoneInfo(settings.store_timezone)).replace(tzinfo=None)


def day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(now: datetime) -> datetime:
    return day_start(now) - timedelta(days=now.weekday())


def month_start(now: datetime) -> datetime:
    return day_start(now).replace(day=1)


def previous_month_start(now: datetime) -> datetime:
    return month_start(month_start(now) - timedelta(days=1))


def quarter_start(now: datetime) -> datetime:
    first_month = (now.month - 1) // 3 * 3 + 1
    return month_start(now).replace(month=first_month)


def year_start(now: datetime) -> datetime:
    return month_start(now).replace(month=1)


def period_bounds(period: Period, now: datetime) -> tuple[Optional[datetime], Optional[datetime]]:
    """Half-open ``[start, end)`` range for a period; ``None`` leaves that side open."""
    if period is Period.TODAY:
        return day_start(now), None
    if period is Period.YESTERDAY:
        today = day_start(now)
        return today - timedelta(days=1), today
    if period is Period.WEEK:
        return week_start(now), None
    if period is Period.MONTH:
        return month_start(now), None
    if period is Period.QUARTER:
        return quarter_start(now), None
    if period is Period.YEAR:
        return year_start(now), None
    return None, None


def date_filters(column, start: Optional[datetime], end: Optional[datetime]) -> list:
    conditions = []
    if start is not None:
        conditions.append(column >= start)
    if end is not None:
        conditions.append(column < end)
    return conditions


def period_filters(column, period: Period, now: datetime) -> list:
    start, end = period_bounds(period, now)
    return date_filters(column, start, end)
