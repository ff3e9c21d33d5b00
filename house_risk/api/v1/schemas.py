"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HSIResponse(BaseModel):
    """Response for POST /v1/houses/{house_id}/hsi"""

    house_id: int
    score: int
    bracket: int
    fee_multiplier: Decimal
    credit_multiplier: Decimal
    measured_score: int
    previous_score: Optional[int] = None
    current_risk_factor: float
    trend_factor: Decimal
    risk_multiplier: Decimal
    unpaid_charges_count: int
    unpaid_amount: Decimal
    updated_reason: str
    snapshot_type: Optional[str] = None
    warning: bool
    skipped: bool


class HSIStateResponse(BaseModel):
    """Response for GET /v1/houses/{house_id}/hsi"""

    house_id: int
    score: int
    bracket: int
    fee_multiplier: Decimal
    credit_multiplier: Decimal
    updated_reason: Optional[str] = None
    last_risk_assessment: Optional[datetime] = None
    current_risk_factor: Optional[Decimal] = None
    trend_factor: Optional[Decimal] = None
    risk_multiplier: Optional[Decimal] = None
    unpaid_charges_count: int
    unpaid_amount: Decimal
    risk_details: Optional[Dict[str, Any]] = None


class RiskHistoryItem(BaseModel):
    assessment_date: datetime
    snapshot_type: str
    hsi_score: Optional[int] = None
    risk_factor: Optional[Decimal] = None
    trend_factor: Optional[Decimal] = None
    multiplier: Optional[Decimal] = None
    fee_multiplier: Optional[Decimal] = None


class RiskHistoryResponse(BaseModel):
    house_id: int
    snapshots: List[RiskHistoryItem]


class ServiceFeeResponse(BaseModel):
    house_id: int
    fee_category: str
    fee: Decimal


class AllowanceResponse(BaseModel):
    house_id: int
    allowance: Decimal


class AuditSchema(BaseModel):
    total_advanced: Decimal
    total_repaid: Decimal
    transaction_based: Decimal
    drift: Decimal
    drift_detected: bool


class UsageResponse(BaseModel):
    """Response for GET /v1/houses/{house_id}/advance/usage"""

    house_id: int
    allowance: Decimal
    outstanding_advanced: Decimal
    remaining: Decimal
    audit: AuditSchema


class AdvanceCheckResponse(BaseModel):
    house_id: int
    allowed: bool
    requested: Decimal
    allowance: Decimal
    outstanding_advanced: Decimal
    remaining: Decimal
    shortfall: Decimal
    total_advanced: Decimal
    total_repaid: Decimal
    used: Decimal


class AdvancedChargeSchema(BaseModel):
    id: int
    amount: Decimal
    user_id: int
    bill_id: Optional[int] = None
    due_date: Optional[datetime] = None
    advanced_at: Optional[datetime] = None


class AdvancedChargesResponse(BaseModel):
    house_id: int
    charges: List[AdvancedChargeSchema]


class AdvanceResponse(BaseModel):
    """Response for POST /v1/bills/{bill_id}/advance"""

    bill_id: int
    house_id: Optional[int] = None
    advanced_amount: Decimal
    charges_advanced: List[AdvancedChargeSchema]


class RepaymentResponse(BaseModel):
    charge_id: int
    house_id: int
    amount: Decimal
    transaction_id: int


class HouseOutcomeSchema(BaseModel):
    house_id: int
    house_name: Optional[str] = None
    success: bool
    hsi_score: Optional[int] = None
    bracket: Optional[int] = None
    risk_level: Optional[str] = None
    error: Optional[str] = None


class BatchSummaryResponse(BaseModel):
    total_houses: int
    success_count: int
    failure_count: int
    average_hsi: int
    high_risk_houses: int
    excellent_houses: int
    houses_with_risk_adjustments: int
    timestamp: datetime
    results: List[HouseOutcomeSchema]


class CleanupResponse(BaseModel):
    deleted_count: int = Field(..., ge=0)
