from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pos_reports.config import settings


def format_currency(amount: Any, symbol: Optional[str] = None) -> str:
    symbol = settings.currency_symbol if symbol is None else symbol
    return f"{symbol}{float(amount or 0):,.2f}"


def format_datetime(value: Any) -> Optional[str]:
    """Render a sale timestamp the way the es-DO locale prints it, e.g. ``5/3/2026, 2:07:09 p. m.``."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    elif not isinstance(value, datetime) and isinstance(value, date):
        value = datetime.combine(value, datetime.min.time())
    hour = value.hour % 12 or 12
    suffix = "a. m." if value.hour < 12 else "p. m."
    return (
        f"{value.day}/{value.month}/{value.year}, "
        f"{hour}:{value.minute:02d}:{value.second:02d} {suffix}"
    )
