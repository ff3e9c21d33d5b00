"""Unit tests for House Status Index arithmetic"""

import pytest
from datetime import date
from decimal import Decimal
from house_risk.domain.hsi import (
    calculate_bracket,
    calculate_credit_multiplier,
    calculate_fee_multiplier,
    calculate_service_fee,
    determine_snapshot_type,
    generate_update_reason,
    risk_adjusted_score,
    should_warn,
    smooth_score,
)
from house_risk.domain.models import SnapshotType


def test_first_computation_uses_measured_score():
    assert smooth_score(41, None) == 41
    assert smooth_score(50, None) == 50


def test_smoothing_against_previous_score():
    # 0.15 * 41 + 0.85 * 50 = 48.65
    assert smooth_score(41, 50) == 49


def test_smoothing_rounds_half_up():
    # 0.15 * 50 + 0.85 * 60 = 58.5
    assert smooth_score(50, 60) == 59


def test_repeated_smoothing_moves_toward_measured_without_overshoot():
    score = 50
    history = []
    for _ in range(20):
        score = smooth_score(41, score)
        history.append(score)

    assert history == sorted(history, reverse=True)
    assert all(s >= 41 for s in history)
    assert history[-1] < 50


@pytest.mark.parametrize(
    "multiplier, expected",
    [("0.85", 43), ("1.05", 53), ("1.00", 50), ("0.82", 41), ("0.9312", 47)],
)
def test_risk_adjusted_score(multiplier, expected):
    assert risk_adjusted_score(50, Decimal(multiplier)) == expected


def test_score_and_bracket_stay_in_range():
    for measured in range(0, 101):
        for previous in (None, 0, 37, 50, 100):
            score = smooth_score(measured, previous)
            assert 0 <= score <= 100
            assert calculate_bracket(score) == score // 10


def test_multipliers_follow_score():
    assert calculate_fee_multiplier(50) == Decimal("1")
    assert calculate_fee_multiplier(100) == Decimal("0.8")
    assert calculate_fee_multiplier(0) == Decimal("1.2")
    assert calculate_credit_multiplier(50) == Decimal("1")
    assert calculate_credit_multiplier(100) == Decimal("2")
    assert calculate_credit_multiplier(41) == Decimal("0.82")


@pytest.mark.parametrize(
    "multiplier, final_score, reason",
    [
        ("0.85", 43, "Risk adjustment - payment issues detected"),
        ("1.06", 53, "Risk adjustment - payment performance improving"),
        ("1.05", 53, "Minor adjustment from payment patterns"),
        ("1.02", 56, "Significant change in payment behavior"),
        ("1.00", 50, "Weekly risk assessment update"),
    ],
)
def test_update_reason(multiplier, final_score, reason):
    assert generate_update_reason(50, Decimal(multiplier), final_score) == reason


def test_should_warn():
    # First computation: proximity still applies
    assert should_warn(None, 43, 4) is True
    assert should_warn(None, 45, 4) is False
    # Bracket drop
    assert should_warn(52, 49, 4) is True
    # Within 3 of the bracket floor
    assert should_warn(55, 53, 5) is True
    assert should_warn(55, 54, 5) is False
    assert should_warn(44, 50, 5) is True


@pytest.mark.parametrize(
    "day, expected",
    [
        (date(2026, 10, 2), SnapshotType.MONTHLY),
        (date(2026, 10, 9), SnapshotType.WEEKLY),
        (date(2026, 10, 14), SnapshotType.WEEKLY),
        (date(2026, 12, 4), SnapshotType.QUARTERLY),
        (date(2026, 12, 18), SnapshotType.QUARTERLY),
    ],
)
def test_snapshot_type(day, expected):
    assert determine_snapshot_type(day) == expected


def test_snapshot_types_are_calendar_or_manual():
    assert {t.value for t in SnapshotType} == {"weekly", "monthly", "quarterly", "manual"}


def test_service_fee():
    assert calculate_service_fee("card", Decimal("0.96")) == Decimal("1.92")
    assert calculate_service_fee("card", None) == Decimal("2.00")
    assert calculate_service_fee("bank", Decimal("1.2")) == Decimal("0.00")
