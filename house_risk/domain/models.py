"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class ChargeStatus(str, Enum):
    UNPAID = "unpaid"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


class TransactionType(str, Enum):
    ADVANCE = "ADVANCE"
    ADVANCE_REPAYMENT = "ADVANCE_REPAYMENT"
    CREDIT_USAGE = "CREDIT_USAGE"
    ADJUSTMENT = "ADJUSTMENT"


class SnapshotType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    MANUAL = "manual"


@dataclass
class ChargeRecord:
    """Charge as seen by the risk calculator"""

    id: int
    user_id: int
    amount: Decimal
    status: str
    due_date: Optional[datetime]
    created_at: datetime


@dataclass
class PaymentRisk:
    """Current group payment risk over the lookback window"""

    risk_factor: float
    total_amount: Decimal
    unpaid_amount: Decimal
    unpaid_count: int
    weighted_unpaid_amount: Decimal
    average_days_late: int
    unique_users_with_unpaid_charges: int
    total_users: int
    user_risk_ratio: float
    group_risk_level: str


@dataclass
class RiskDetails:
    """Diagnostic blob persisted as riskDetails"""

    total_charges: int
    assessment_period_days: int
    total_amount: Decimal = Decimal("0.00")
    weighted_unpaid_amount: Decimal = Decimal("0.00")
    average_days_late: int = 0
    unique_users_with_unpaid_charges: int = 0
    total_users: int = 0
    user_risk_ratio: float = 0.0
    group_risk_level: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_amount"] = str(self.total_amount)
        data["weighted_unpaid_amount"] = str(self.weighted_unpaid_amount)
        return data


@dataclass
class RiskAssessment:
    """Output of the risk assessment calculator"""

    current_risk_factor: float
    trend_factor: Decimal
    final_multiplier: Decimal
    unpaid_charges_count: int
    unpaid_amount: Decimal
    details: RiskDetails


@dataclass
class SnapshotMetadata:
    unpaid_charges_count: int
    unpaid_amount: Decimal
    risk_details: RiskDetails
    previous_score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unpaid_charges_count": self.unpaid_charges_count,
            "unpaid_amount": str(self.unpaid_amount),
            "risk_details": self.risk_details.to_dict(),
            "previous_score": self.previous_score,
        }


@dataclass
class HSIResult:
    """Outcome of one HSI recomputation"""

    house_id: int
    score: int
    bracket: int
    fee_multiplier: Decimal
    credit_multiplier: Decimal
    measured_score: int
    previous_score: Optional[int]
    risk_assessment: RiskAssessment
    updated_reason: str
    snapshot_type: Optional[str] = None
    warning: bool = False
    skipped: bool = False
    member_ids: List[int] = field(default_factory=list)

    @property
    def risk_multiplier(self) -> Decimal:
        return self.risk_assessment.final_multiplier


@dataclass
class HouseAssessmentOutcome:
    """Per-house line of a batch assessment run"""

    house_id: int
    house_name: Optional[str]
    success: bool
    hsi_score: Optional[int] = None
    bracket: Optional[int] = None
    fee_multiplier: Optional[Decimal] = None
    risk_multiplier: Optional[Decimal] = None
    unpaid_charges_count: Optional[int] = None
    unpaid_amount: Optional[Decimal] = None
    risk_level: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchAssessmentSummary:
    total_houses: int
    success_count: int
    failure_count: int
    average_hsi: int
    high_risk_houses: int
    excellent_houses: int
    houses_with_risk_adjustments: int
    timestamp: datetime
    results: List[HouseAssessmentOutcome]


@dataclass
class AdvanceAudit:
    """Transaction-ledger view of advances, kept as a cross-check"""

    total_advanced: Decimal
    total_repaid: Decimal
    transaction_based: Decimal
    drift: Decimal
    drift_detected: bool


@dataclass
class UsageReport:
    allowance: Decimal
    outstanding_advanced: Decimal
    remaining: Decimal
    audit: AdvanceAudit


@dataclass
class AdvanceDecision:
    allowed: bool
    requested: Decimal
    allowance: Decimal
    outstanding_advanced: Decimal
    remaining: Decimal
    total_advanced: Decimal
    total_repaid: Decimal
    used: Decimal

    @property
    def shortfall(self) -> Decimal:
        return max(self.requested - self.remaining, Decimal("0.00"))


@dataclass
class AdvancedCharge:
    id: int
    amount: Decimal
    user_id: int


@dataclass
class AdvanceResult:
    bill_id: int
    house_id: Optional[int]
    advanced_amount: Decimal
    charges_advanced: List[AdvancedCharge]


@dataclass
class AdvanceMetadata:
    """Metadata written on ADVANCE ledger rows"""

    bill_id: int
    advance_date: datetime
    original_due_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bill_id": self.bill_id,
            "advance_date": self.advance_date.isoformat(),
            "original_due_date": self.original_due_date.isoformat() if self.original_due_date else None,
        }


@dataclass
class RepaymentMetadata:
    """Metadata written on ADVANCE_REPAYMENT ledger rows"""

    bill_id: Optional[int]
    repaid_at: datetime
    advanced_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bill_id": self.bill_id,
            "repaid_at": self.repaid_at.isoformat(),
            "advanced_at": self.advanced_at.isoformat() if self.advanced_at else None,
        }


@dataclass
class RepaymentResult:
    charge_id: int
    house_id: int
    amount: Decimal
    transaction_id: int


@dataclass
class AdvanceRepaymentPair:
    advance_transaction_id: int
    repayment_transaction_id: Optional[int]
    charge_id: Optional[int]
    amount: Decimal
    status: str  # repaid | outstanding
    days_between: Optional[int]
