"""Unit tests for date and money helpers"""

from datetime import date, datetime, timezone
from decimal import Decimal
from house_risk.utils.date_utils import (
    as_utc,
    days_past_due,
    first_friday_of_month,
    subtract_months,
)
from house_risk.utils.money import quantize_cents, round_dollars, sum_amounts, to_decimal

NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)


def test_days_past_due_floors_partial_days():
    assert days_past_due(datetime(2026, 10, 11, 12, 0, tzinfo=timezone.utc), NOW) == 3
    assert days_past_due(datetime(2026, 10, 11, 13, 0, tzinfo=timezone.utc), NOW) == 2
    assert days_past_due(datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc), NOW) == -2
    assert days_past_due(date(2026, 10, 10), NOW) == 4
    assert days_past_due(None, NOW) == 0


def test_naive_datetimes_are_utc():
    naive = datetime(2026, 10, 14, 12, 0)
    assert as_utc(naive) == NOW


def test_first_friday_of_month():
    assert first_friday_of_month(2026, 10) == date(2026, 10, 2)
    assert first_friday_of_month(2026, 12) == date(2026, 12, 4)


def test_subtract_months_clamps_day():
    assert subtract_months(datetime(2026, 8, 31, tzinfo=timezone.utc), 6) == datetime(2026, 2, 28, tzinfo=timezone.utc)
    assert subtract_months(NOW, 6) == datetime(2026, 4, 14, 12, 0, tzinfo=timezone.utc)
    assert subtract_months(datetime(2026, 1, 15, tzinfo=timezone.utc), 1) == datetime(2025, 12, 15, tzinfo=timezone.utc)


def test_money_helpers():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(None) == Decimal("0.00")
    assert quantize_cents("1.005") == Decimal("1.01")
    assert round_dollars("82.5") == Decimal("83")
    assert sum_amounts(["0.10", 0.2, Decimal("0.30")]) == Decimal("0.60")
