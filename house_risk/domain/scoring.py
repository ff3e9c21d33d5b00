"""Risk assessment calculator - turns a window of house charges into risk multipliers"""

from collections import namedtuple
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Sequence

from house_risk.domain.models import ChargeRecord, ChargeStatus, PaymentRisk, RiskAssessment, RiskDetails
from house_risk.utils.date_utils import as_utc, days_past_due
from house_risk.utils.money import ZERO, quantize_cents, to_decimal

GRACE_PERIOD_DAYS = 3
RISK_ASSESSMENT_DAYS = 60
TREND_HALF_DAYS = 30

MIN_FINAL_MULTIPLIER = Decimal("0.85")
MAX_FINAL_MULTIPLIER = Decimal("1.05")
NEUTRAL_MULTIPLIER = Decimal("1.00")

PAYMENT_TREND_WEIGHT = 0.6
PARTICIPATION_TREND_WEIGHT = 0.4

# (upper bound on days past due, weight); anything beyond the last bound gets 3.0x
TIME_MULTIPLIERS = [
    (GRACE_PERIOD_DAYS, Decimal("1.0")),
    (7, Decimal("1.2")),
    (14, Decimal("1.5")),
    (30, Decimal("2.0")),
]
MAX_TIME_MULTIPLIER = Decimal("3.0")

# (upper bound on risk factor, multiplier); anything above 0.40 gets 0.82
RISK_MULTIPLIERS = [
    (0.03, Decimal("1.01")),
    (0.08, Decimal("1.00")),
    (0.15, Decimal("0.96")),
    (0.25, Decimal("0.91")),
    (0.40, Decimal("0.86")),
]
MAX_RISK_MULTIPLIER_PENALTY = Decimal("0.82")

_HalfStats = namedtuple("_HalfStats", ["payment_rate", "participation_rate"])


def calculate_time_multiplier(days_late: int) -> Decimal:
    """
    Weight applied to an unpaid charge based on how late it is.

    Inclusive on the grace side: exactly 3 days past due is still 1.0x.
    """
    for upper_bound, multiplier in TIME_MULTIPLIERS:
        if days_late <= upper_bound:
            return multiplier
    return MAX_TIME_MULTIPLIER


def convert_risk_to_multiplier(risk_factor: float) -> Decimal:
    """
    Map the group risk factor onto an HSI multiplier.

    Brackets (share of the house's obligations that is unpaid, time-weighted):
    - <=3%:  1.01 slight bonus
    - <=8%:  1.00 normal friction
    - <=15%: 0.96
    - <=25%: 0.91
    - <=40%: 0.86
    - above: 0.82
    """
    for upper_bound, multiplier in RISK_MULTIPLIERS:
        if risk_factor <= upper_bound:
            return multiplier
    return MAX_RISK_MULTIPLIER_PENALTY


def assess_group_risk_level(risk_factor: float, user_risk_ratio: float) -> str:
    """Combine financial risk with the share of members who owe money"""
    combined = (risk_factor * 0.7) + (user_risk_ratio * 0.3)
    if combined <= 0.05:
        return "EXCELLENT"
    if combined <= 0.15:
        return "GOOD"
    if combined <= 0.30:
        return "CONCERNING"
    if combined <= 0.50:
        return "HIGH_RISK"
    return "CRITICAL"


def risk_level(risk_factor: float) -> str:
    """Human-readable label for a risk factor"""
    if risk_factor <= 0.03:
        return "EXCELLENT"
    if risk_factor <= 0.08:
        return "GOOD"
    if risk_factor <= 0.15:
        return "FAIR"
    if risk_factor <= 0.25:
        return "CONCERNING"
    if risk_factor <= 0.40:
        return "HIGH_RISK"
    return "CRITICAL"


def calculate_current_payment_risk(charges: Sequence[ChargeRecord], now: datetime) -> PaymentRisk:
    """
    Share of the house's total obligation that is currently at risk.

    Every unpaid charge counts: past the grace period it is weighted by how late
    it is, inside the grace period it is weighted 1.0x. One member paying late
    moves the whole house's score.
    """
    total_amount = ZERO
    weighted_unpaid = ZERO
    unpaid_amount = ZERO
    unpaid_count = 0
    total_days_late = 0
    late_count = 0
    users_with_unpaid = set()

    for charge in charges:
        amount = to_decimal(charge.amount)
        total_amount += amount

        if charge.status != ChargeStatus.UNPAID.value:
            continue

        unpaid_count += 1
        unpaid_amount += amount
        users_with_unpaid.add(charge.user_id)

        days_late = days_past_due(charge.due_date, now)
        if days_late > GRACE_PERIOD_DAYS:
            weighted_unpaid += amount * calculate_time_multiplier(days_late)
            total_days_late += days_late
            late_count += 1
        else:
            weighted_unpaid += amount

    risk_factor = min(float(weighted_unpaid / total_amount), 1.0) if total_amount > 0 else 0.0
    average_days_late = int(total_days_late / late_count + 0.5) if late_count else 0

    total_users = len({c.user_id for c in charges})
    user_risk_ratio = len(users_with_unpaid) / total_users if total_users else 0.0

    return PaymentRisk(
        risk_factor=risk_factor,
        total_amount=quantize_cents(total_amount),
        unpaid_amount=quantize_cents(unpaid_amount),
        unpaid_count=unpaid_count,
        weighted_unpaid_amount=quantize_cents(weighted_unpaid),
        average_days_late=average_days_late,
        unique_users_with_unpaid_charges=len(users_with_unpaid),
        total_users=total_users,
        user_risk_ratio=user_risk_ratio,
        group_risk_level=assess_group_risk_level(risk_factor, user_risk_ratio),
    )


def _half_stats(charges: List[ChargeRecord]) -> _HalfStats:
    paid = [c for c in charges if c.status == ChargeStatus.PAID.value]
    payment_rate = len(paid) / len(charges)

    total_users = len({c.user_id for c in charges})
    paying_users = len({c.user_id for c in paid})
    participation_rate = paying_users / total_users if total_users else 1.0

    return _HalfStats(payment_rate, participation_rate)


def trend_to_multiplier(combined_trend: float) -> Decimal:
    if combined_trend > 0.15:
        return Decimal("1.05")
    if combined_trend > 0.08:
        return Decimal("1.02")
    if combined_trend < -0.15:
        return Decimal("0.93")
    if combined_trend < -0.08:
        return Decimal("0.97")
    return NEUTRAL_MULTIPLIER


def calculate_trend_factor(charges: Sequence[ChargeRecord], now: datetime) -> Decimal:
    """
    Compare the most recent 30 days against the 30 days before.

    Trend = 0.6 x change in payment rate + 0.4 x change in member participation
    (share of members who paid at least one charge). Neutral when either half
    has no charges.
    """
    now = as_utc(now)
    recent_start = now - timedelta(days=TREND_HALF_DAYS)
    previous_start = now - timedelta(days=RISK_ASSESSMENT_DAYS)

    recent = [c for c in charges if as_utc(c.created_at) >= recent_start]
    previous = [c for c in charges if previous_start <= as_utc(c.created_at) < recent_start]

    if not recent or not previous:
        return NEUTRAL_MULTIPLIER

    recent_stats = _half_stats(recent)
    previous_stats = _half_stats(previous)

    payment_trend = recent_stats.payment_rate - previous_stats.payment_rate
    participation_trend = recent_stats.participation_rate - previous_stats.participation_rate
    combined = (payment_trend * PAYMENT_TREND_WEIGHT) + (participation_trend * PARTICIPATION_TREND_WEIGHT)

    return trend_to_multiplier(combined)


def combine_multipliers(risk_multiplier: Decimal, trend_factor: Decimal) -> Decimal:
    """Final multiplier, clamped to [0.85, 1.05]"""
    return max(MIN_FINAL_MULTIPLIER, min(MAX_FINAL_MULTIPLIER, risk_multiplier * trend_factor))


def neutral_assessment(message: str = "No charges in assessment period") -> RiskAssessment:
    return RiskAssessment(
        current_risk_factor=0.0,
        trend_factor=NEUTRAL_MULTIPLIER,
        final_multiplier=NEUTRAL_MULTIPLIER,
        unpaid_charges_count=0,
        unpaid_amount=ZERO,
        details=RiskDetails(
            total_charges=0,
            assessment_period_days=RISK_ASSESSMENT_DAYS,
            message=message,
        ),
    )


def calculate_risk_assessment(charges: Sequence[ChargeRecord], now: datetime) -> RiskAssessment:
    """
    Main entry point: full risk assessment for one house.

    `charges` should already be limited to the lookback window; charges older
    than 60 days are ignored by the trend split but still counted in the
    current-risk totals if passed in.
    """
    if not charges:
        return neutral_assessment()

    current = calculate_current_payment_risk(charges, now)
    trend_factor = calculate_trend_factor(charges, now)
    final_multiplier = combine_multipliers(convert_risk_to_multiplier(current.risk_factor), trend_factor)

    return RiskAssessment(
        current_risk_factor=current.risk_factor,
        trend_factor=trend_factor,
        final_multiplier=final_multiplier,
        unpaid_charges_count=current.unpaid_count,
        unpaid_amount=current.unpaid_amount,
        details=RiskDetails(
            total_charges=len(charges),
            assessment_period_days=RISK_ASSESSMENT_DAYS,
            total_amount=current.total_amount,
            weighted_unpaid_amount=current.weighted_unpaid_amount,
            average_days_late=current.average_days_late,
            unique_users_with_unpaid_charges=current.unique_users_with_unpaid_charges,
            total_users=current.total_users,
            user_risk_ratio=current.user_risk_ratio,
            group_risk_level=current.group_risk_level,
        ),
    )
