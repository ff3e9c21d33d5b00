"""House Status Index arithmetic - score, smoothing, brackets and derived multipliers"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from house_risk.domain.models import SnapshotType
from house_risk.utils.date_utils import is_first_friday_of_month, is_quarter_end
from house_risk.utils.money import quantize_cents

BASE_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100
SMOOTHING_ALPHA = Decimal("0.15")
WARNING_THRESHOLD = 3

CARD_BASE_FEE = Decimal("2.00")

INITIAL_REASON = "Initial calculation"


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_score(score: int) -> int:
    return min(max(score, MIN_SCORE), MAX_SCORE)


def calculate_base_score() -> int:
    """Every house starts neutral; only observed group behavior moves it"""
    return BASE_SCORE


def risk_adjusted_score(base_score: int, final_multiplier: Decimal) -> int:
    return clamp_score(round_half_up(Decimal(base_score) * final_multiplier))


def smooth_score(measured: int, previous: Optional[int]) -> int:
    """
    Exponential moving average against the previously stored score.

    smoothed = 0.15 * measured + 0.85 * previous. The first computation has no
    previous score and uses `measured` in its place.
    """
    if previous is None:
        previous = measured
    smoothed = SMOOTHING_ALPHA * measured + (1 - SMOOTHING_ALPHA) * previous
    return clamp_score(round_half_up(smoothed))


def calculate_bracket(score: int) -> int:
    return score // 10


def calculate_fee_multiplier(score: int) -> Decimal:
    """
    HSI 100 = 0.8x (20% discount)
    HSI 50  = 1.0x (standard)
    HSI 0   = 1.2x (20% surcharge)
    """
    return 1 + (Decimal(BASE_SCORE) - score) / 250


def calculate_credit_multiplier(score: int) -> Decimal:
    """
    HSI 100 = 2.0x (double credit)
    HSI 50  = 1.0x (standard credit)
    HSI 0   = 0.0x (no credit)
    """
    return Decimal(score) / 50


def generate_update_reason(base_score: int, final_multiplier: Decimal, final_score: int) -> str:
    risk_impact = abs(1 - final_multiplier)

    if risk_impact > Decimal("0.05"):
        if final_multiplier < 1:
            return "Risk adjustment - payment issues detected"
        return "Risk adjustment - payment performance improving"

    drift = abs(final_score - base_score)
    if drift > 5:
        return "Significant change in payment behavior"
    if drift > 2:
        return "Minor adjustment from payment patterns"
    return "Weekly risk assessment update"


def should_warn(previous_score: Optional[int], new_score: int, new_bracket: int) -> bool:
    """
    Warn the house when it drops a bracket or sits within 3 points of the
    bracket's lower boundary. Only the bracket drop needs a previous score;
    proximity applies from the first computation.
    """
    near_floor = (new_score - new_bracket * 10) <= WARNING_THRESHOLD
    if previous_score is None:
        return near_floor
    return new_bracket < calculate_bracket(previous_score) or near_floor


def determine_snapshot_type(day: date) -> SnapshotType:
    """Quarter-end months take precedence over the first Friday of the month"""
    if is_quarter_end(day):
        return SnapshotType.QUARTERLY
    if is_first_friday_of_month(day):
        return SnapshotType.MONTHLY
    return SnapshotType.WEEKLY


def calculate_service_fee(fee_category: str, fee_multiplier: Optional[Decimal]) -> Decimal:
    """Card-funded services carry a $2.00 base fee scaled by the house's fee multiplier"""
    base_fee = CARD_BASE_FEE if fee_category == "card" else Decimal("0.00")
    if fee_multiplier is None:
        return base_fee
    return quantize_cents(base_fee * fee_multiplier)


def group_warning_message(score: int) -> str:
    return (
        f"House Status Score is {score}. Your group's payment behavior affects everyone's "
        "service fees. Please coordinate with your housemates to ensure all charges are paid promptly."
    )
