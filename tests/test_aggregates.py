from datetime import date, datetime
from decimal import Decimal

from pos_reports.aggregates import (
    growth_percent,
    iso,
    payment_breakdown,
    person_name,
    profit_margin,
    stock_percentage,
    weekday_breakdown,
)
from pos_reports.formatting import format_currency, format_datetime


def test_growth_percent() -> None:
    assert growth_percent(150.0, 100.0) == 50.0
    assert growth_percent(50.0, 150.0) == -66.7
    assert growth_percent(80.0, 0.0) == 0.0


def test_profit_margin() -> None:
    assert profit_margin(413.0, 240.0) == 41.89
    assert profit_margin(0.0, 10.0) == 0.0


def test_weekday_breakdown_fills_missing_days() -> None:
    rows = [
        {"dow": Decimal("0"), "sales_count": 4},
        {"dow": 6, "sales_count": 1},
    ]
    counts = weekday_breakdown(rows)
    assert counts["sunday"] == 4
    assert counts["saturday"] == 1
    assert counts["wednesday"] == 0
    assert list(counts) == [
        "sunday",
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
    ]


def test_payment_breakdown_keeps_known_methods_and_extras() -> None:
    rows = [
        {"payment_method": "card", "sales_count": 2, "amount": Decimal("300.50")},
        {"payment_method": "Credit", "sales_count": 1, "amount": Decimal("75")},
    ]
    breakdown = payment_breakdown(rows)
    assert breakdown["cash"] == {"count": 0, "amount": 0.0}
    assert breakdown["card"] == {"count": 2, "amount": 300.5}
    assert breakdown["transfer"] == {"count": 0, "amount": 0.0}
    assert breakdown["credit"] == {"count": 1, "amount": 75.0}


def test_person_name_falls_back_to_username() -> None:
    assert person_name("Ana", "Pérez", "ana") == "Ana Pérez"
    assert person_name("Ana", None, "ana") == "Ana"
    assert person_name(None, " ", "ana") == "ana"


def test_stock_percentage() -> None:
    assert stock_percentage(3, 5) == 60.0
    assert stock_percentage(1, 3) == 33.3
    assert stock_percentage(0, 0) == 100.0


def test_iso_handles_driver_date_types() -> None:
    assert iso(date(2026, 3, 18)) == "2026-03-18"
    assert iso(datetime(2026, 3, 18, 9, 5)) == "2026-03-18T09:05:00"
    assert iso("2026-03-18") == "2026-03-18"
    assert iso(None) is None


def test_format_currency() -> None:
    assert format_currency(Decimal("1234.5")) == "RD$1,234.50"
    assert format_currency(None) == "RD$0.00"
    assert format_currency(12, symbol="$") == "$12.00"


def test_format_datetime_uses_twelve_hour_clock() -> None:
    assert format_datetime(datetime(2026, 3, 5, 14, 7, 9)) == "5/3/2026, 2:07:09 p. m."
    assert format_datetime(datetime(2026, 3, 5, 0, 30, 0)) == "5/3/2026, 12:30:00 a. m."
    assert format_datetime("2026-12-31T11:59:59") == "31/12/2026, 11:59:59 a. m."
    assert format_datetime(None) is None
