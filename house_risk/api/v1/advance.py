"""Advance allowance endpoints - allowance, usage, checks, advancing and repayment"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from house_risk.api.dependencies import get_advance_service, get_request_id
from house_risk.api.v1.schemas import (
    AdvanceCheckResponse,
    AdvancedChargeSchema,
    AdvancedChargesResponse,
    AdvanceResponse,
    AllowanceResponse,
    AuditSchema,
    RepaymentResponse,
    UsageResponse,
)
from house_risk.domain.exceptions import (
    BillNotFoundError,
    ChargeNotAdvancedError,
    ChargeNotFoundError,
    InsufficientAllowanceError,
)
from house_risk.services.advance_service import AdvanceService

router = APIRouter()


@router.get("/houses/{house_id}/advance/allowance", response_model=AllowanceResponse)
def get_allowance(house_id: int, service: AdvanceService = Depends(get_advance_service)):
    return AllowanceResponse(house_id=house_id, allowance=service.get_allowance(house_id))


@router.get("/houses/{house_id}/advance/usage", response_model=UsageResponse)
def get_usage(house_id: int, service: AdvanceService = Depends(get_advance_service)):
    """Allowance, state-based outstanding and the ledger audit figures"""
    usage = service.get_usage(house_id)
    audit = usage.audit
    return UsageResponse(
        house_id=house_id,
        allowance=usage.allowance,
        outstanding_advanced=usage.outstanding_advanced,
        remaining=usage.remaining,
        audit=AuditSchema(
            total_advanced=audit.total_advanced,
            total_repaid=audit.total_repaid,
            transaction_based=audit.transaction_based,
            drift=audit.drift,
            drift_detected=audit.drift_detected,
        ),
    )


@router.get("/houses/{house_id}/advance/check", response_model=AdvanceCheckResponse)
def check_advance(
    house_id: int,
    amount: Decimal = Query(..., ge=0, description="Dollar amount to advance"),
    service: AdvanceService = Depends(get_advance_service),
):
    decision = service.can_advance(house_id, amount)
    return AdvanceCheckResponse(
        house_id=house_id,
        allowed=decision.allowed,
        requested=decision.requested,
        allowance=decision.allowance,
        outstanding_advanced=decision.outstanding_advanced,
        remaining=decision.remaining,
        shortfall=decision.shortfall,
        total_advanced=decision.total_advanced,
        total_repaid=decision.total_repaid,
        used=decision.used,
    )


@router.get("/houses/{house_id}/advance/charges", response_model=AdvancedChargesResponse)
def list_advanced_charges(house_id: int, service: AdvanceService = Depends(get_advance_service)):
    charges = service.get_advanced_charges(house_id)
    return AdvancedChargesResponse(
        house_id=house_id,
        charges=[
            AdvancedChargeSchema(
                id=c.id,
                amount=c.amount,
                user_id=c.user_id,
                bill_id=c.bill_id,
                due_date=c.due_date,
                advanced_at=c.advanced_at,
            )
            for c in charges
        ],
    )


@router.post("/bills/{bill_id}/advance", response_model=AdvanceResponse)
def advance_bill(
    bill_id: int,
    request: Request,
    service: AdvanceService = Depends(get_advance_service),
):
    """
    Front every unpaid charge on the bill.

    All-or-nothing: if the unpaid total exceeds the house's remaining
    allowance nothing is advanced and 409 carries the shortfall.
    """
    request_id = get_request_id(request)
    try:
        result = service.advance_unpaid_charges(bill_id)

    except BillNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except InsufficientAllowanceError as e:
        logging.info(f"Advance rejected: {e}", extra={"request_id": request_id, "bill_id": bill_id})
        raise HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "requested": str(e.requested),
                "remaining": str(e.remaining),
                "allowance": str(e.allowance),
                "shortfall": str(e.shortfall),
            },
        )

    return AdvanceResponse(
        bill_id=result.bill_id,
        house_id=result.house_id,
        advanced_amount=result.advanced_amount,
        charges_advanced=[
            AdvancedChargeSchema(id=c.id, amount=c.amount, user_id=c.user_id, bill_id=bill_id)
            for c in result.charges_advanced
        ],
    )


@router.post("/charges/{charge_id}/repayment", response_model=RepaymentResponse)
def record_repayment(charge_id: int, service: AdvanceService = Depends(get_advance_service)):
    """Payment path hook: an advanced charge has been paid by its member"""
    try:
        result = service.record_repayment(charge_id)
    except ChargeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ChargeNotAdvancedError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return RepaymentResponse(
        charge_id=result.charge_id,
        house_id=result.house_id,
        amount=result.amount,
        transaction_id=result.transaction_id,
    )
