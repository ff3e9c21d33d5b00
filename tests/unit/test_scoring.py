"""Unit tests for the risk assessment calculator"""

import pytest
from decimal import Decimal
from house_risk.domain.scoring import (
    assess_group_risk_level,
    calculate_current_payment_risk,
    calculate_risk_assessment,
    calculate_time_multiplier,
    calculate_trend_factor,
    combine_multipliers,
    convert_risk_to_multiplier,
    risk_level,
)
from tests.conftest import NOW, make_charge


@pytest.mark.parametrize(
    "days_late, expected",
    [
        (-5, "1.0"),
        (0, "1.0"),
        (3, "1.0"),
        (4, "1.2"),
        (7, "1.2"),
        (8, "1.5"),
        (14, "1.5"),
        (15, "2.0"),
        (30, "2.0"),
        (31, "3.0"),
        (120, "3.0"),
    ],
)
def test_time_multiplier_escalates_with_lateness(days_late, expected):
    assert calculate_time_multiplier(days_late) == Decimal(expected)


def test_grace_period_boundary_is_inclusive():
    """Exactly 3 days late is still weighted 1.0x; 4 days gets 1.2x"""
    at_grace = [
        make_charge(1, "100.00", status="paid"),
        make_charge(2, "100.00", status="unpaid", due_days_ago=3),
    ]
    past_grace = [
        make_charge(1, "100.00", status="paid"),
        make_charge(2, "100.00", status="unpaid", due_days_ago=4),
    ]

    assert calculate_current_payment_risk(at_grace, NOW).risk_factor == pytest.approx(0.5)
    assert calculate_current_payment_risk(past_grace, NOW).risk_factor == pytest.approx(0.6)


def test_charges_within_grace_still_count():
    charges = [
        make_charge(1, "90.00", status="paid"),
        make_charge(2, "10.00", status="unpaid", due_days_ago=-2),  # not even due yet
    ]

    risk = calculate_current_payment_risk(charges, NOW)

    assert risk.weighted_unpaid_amount == Decimal("10.00")
    assert risk.risk_factor == pytest.approx(0.1)
    assert risk.average_days_late == 0


def test_current_payment_risk_group_metrics():
    charges = [
        make_charge(1, "50.00", status="paid"),
        make_charge(2, "50.00", status="unpaid", due_days_ago=10),
        make_charge(2, "25.00", status="unpaid", due_days_ago=20),
        make_charge(3, "75.00", status="paid"),
    ]

    risk = calculate_current_payment_risk(charges, NOW)

    # 50 * 1.5 + 25 * 2.0 = 125 weighted over 200 total
    assert risk.total_amount == Decimal("200.00")
    assert risk.weighted_unpaid_amount == Decimal("125.00")
    assert risk.risk_factor == pytest.approx(0.625)
    assert risk.unpaid_amount == Decimal("75.00")
    assert risk.unpaid_count == 2
    assert risk.average_days_late == 15
    assert risk.unique_users_with_unpaid_charges == 1
    assert risk.total_users == 3
    assert risk.user_risk_ratio == pytest.approx(1 / 3)


def test_risk_factor_is_capped_at_one():
    charges = [make_charge(1, "100.00", status="unpaid", due_days_ago=45)]

    assert calculate_current_payment_risk(charges, NOW).risk_factor == 1.0


@pytest.mark.parametrize(
    "risk_factor, expected",
    [
        (0.0, "1.01"),
        (0.03, "1.01"),
        (0.031, "1.00"),
        (0.08, "1.00"),
        (0.15, "0.96"),
        (0.25, "0.91"),
        (0.40, "0.86"),
        (0.41, "0.82"),
        (1.0, "0.82"),
        (1.5, "0.82"),
    ],
)
def test_convert_risk_to_multiplier(risk_factor, expected):
    assert convert_risk_to_multiplier(risk_factor) == Decimal(expected)


def test_risk_multiplier_is_monotonic():
    factors = [i / 100 for i in range(0, 101)]
    multipliers = [convert_risk_to_multiplier(f) for f in factors]

    assert multipliers == sorted(multipliers, reverse=True)


def test_trend_neutral_without_history():
    recent_only = [
        make_charge(1, "10.00", status="paid", created_days_ago=5),
        make_charge(2, "10.00", status="unpaid", created_days_ago=10),
    ]

    assert calculate_trend_factor(recent_only, NOW) == Decimal("1.00")
    assert calculate_trend_factor([], NOW) == Decimal("1.00")


def test_trend_rewards_significant_group_improvement():
    charges = [
        make_charge(1, "10.00", status="unpaid", created_days_ago=45),
        make_charge(2, "10.00", status="unpaid", created_days_ago=50),
        make_charge(1, "10.00", status="paid", created_days_ago=5),
        make_charge(2, "10.00", status="paid", created_days_ago=6),
    ]

    assert calculate_trend_factor(charges, NOW) == Decimal("1.05")


def test_trend_penalizes_significant_group_decline():
    charges = [
        make_charge(1, "10.00", status="paid", created_days_ago=45),
        make_charge(2, "10.00", status="paid", created_days_ago=50),
        make_charge(1, "10.00", status="unpaid", created_days_ago=5),
        make_charge(2, "10.00", status="unpaid", created_days_ago=6),
    ]

    assert calculate_trend_factor(charges, NOW) == Decimal("0.93")


def test_trend_minor_improvement():
    # Payment rate 80% -> 100%, one member throughout: 0.6 * 0.2 = 0.12
    previous = [make_charge(1, "10.00", status="paid", created_days_ago=40) for _ in range(8)]
    previous += [make_charge(1, "10.00", status="unpaid", created_days_ago=40) for _ in range(2)]
    recent = [make_charge(1, "10.00", status="paid", created_days_ago=10) for _ in range(10)]

    assert calculate_trend_factor(previous + recent, NOW) == Decimal("1.02")


def test_trend_minor_decline():
    previous = [make_charge(1, "10.00", status="paid", created_days_ago=40) for _ in range(10)]
    recent = [make_charge(1, "10.00", status="paid", created_days_ago=10) for _ in range(8)]
    recent += [make_charge(1, "10.00", status="unpaid", created_days_ago=10) for _ in range(2)]

    assert calculate_trend_factor(previous + recent, NOW) == Decimal("0.97")


def test_trend_split_boundary_at_thirty_days():
    """A charge created exactly 30 days ago belongs to the recent half"""
    charges = [
        make_charge(1, "10.00", status="paid", created_days_ago=30),
        make_charge(1, "10.00", status="paid", created_days_ago=31),
    ]

    assert calculate_trend_factor(charges, NOW) == Decimal("1.00")


@pytest.mark.parametrize(
    "risk_multiplier, trend, expected",
    [
        ("0.82", "0.93", "0.85"),
        ("1.01", "1.05", "1.05"),
        ("0.96", "0.97", "0.9312"),
        ("1.00", "1.00", "1.00"),
    ],
)
def test_combine_multipliers_clamps(risk_multiplier, trend, expected):
    assert combine_multipliers(Decimal(risk_multiplier), Decimal(trend)) == Decimal(expected)


def test_neutral_assessment_on_no_charges():
    assessment = calculate_risk_assessment([], NOW)

    assert assessment.current_risk_factor == 0.0
    assert assessment.trend_factor == Decimal("1.00")
    assert assessment.final_multiplier == Decimal("1.00")
    assert assessment.unpaid_charges_count == 0
    assert assessment.details.total_charges == 0
    assert assessment.details.message == "No charges in assessment period"


def test_full_assessment_for_struggling_house():
    charges = [
        make_charge(1, "100.00", status="paid", created_days_ago=10),
        make_charge(2, "100.00", status="unpaid", due_days_ago=20, created_days_ago=25),
    ]

    assessment = calculate_risk_assessment(charges, NOW)

    # 200 weighted / 200 total -> capped 1.0 -> 0.82, no history half -> trend 1.0
    assert assessment.current_risk_factor == 1.0
    assert assessment.final_multiplier == Decimal("0.85")
    assert assessment.unpaid_amount == Decimal("100.00")
    assert assessment.details.total_users == 2
    assert assessment.details.group_risk_level == "CRITICAL"


def test_group_risk_and_risk_labels():
    assert assess_group_risk_level(0.0, 0.0) == "EXCELLENT"
    assert assess_group_risk_level(0.1, 0.2) == "GOOD"
    assert assess_group_risk_level(0.2, 0.3) == "CONCERNING"
    assert assess_group_risk_level(0.4, 0.5) == "HIGH_RISK"
    assert assess_group_risk_level(1.0, 1.0) == "CRITICAL"

    assert risk_level(0.02) == "EXCELLENT"
    assert risk_level(0.05) == "GOOD"
    assert risk_level(0.1) == "FAIR"
    assert risk_level(0.2) == "CONCERNING"
    assert risk_level(0.3) == "HIGH_RISK"
    assert risk_level(0.9) == "CRITICAL"
