"""House Status Index endpoints - recompute, current state, history and service fee"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from house_risk.api.dependencies import get_history_service, get_hsi_engine, get_request_id
from house_risk.api.v1.schemas import (
    HSIResponse,
    HSIStateResponse,
    RiskHistoryItem,
    RiskHistoryResponse,
    ServiceFeeResponse,
)
from house_risk.domain.exceptions import HouseNotFoundError
from house_risk.services.hsi_engine import HSIEngine
from house_risk.services.risk_history import RiskHistoryService

router = APIRouter()


@router.post("/houses/{house_id}/hsi", response_model=HSIResponse)
def compute_hsi(
    house_id: int,
    request: Request,
    engine: HSIEngine = Depends(get_hsi_engine),
):
    """
    Recompute the house's HSI now (e.g. after a payment lands).

    Scores, persists current state and a history snapshot, and warns the
    house if it slipped a bracket.
    """
    request_id = get_request_id(request)
    try:
        result = engine.compute_hsi(house_id)
    except HouseNotFoundError as e:
        logging.info(f"HSI requested for unknown house: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    assessment = result.risk_assessment
    return HSIResponse(
        house_id=result.house_id,
        score=result.score,
        bracket=result.bracket,
        fee_multiplier=result.fee_multiplier,
        credit_multiplier=result.credit_multiplier,
        measured_score=result.measured_score,
        previous_score=result.previous_score,
        current_risk_factor=assessment.current_risk_factor,
        trend_factor=assessment.trend_factor,
        risk_multiplier=assessment.final_multiplier,
        unpaid_charges_count=assessment.unpaid_charges_count,
        unpaid_amount=assessment.unpaid_amount,
        updated_reason=result.updated_reason,
        snapshot_type=result.snapshot_type,
        warning=result.warning,
        skipped=result.skipped,
    )


@router.get("/houses/{house_id}/hsi", response_model=HSIStateResponse)
def get_current_hsi(house_id: int, engine: HSIEngine = Depends(get_hsi_engine)):
    current = engine.get_current(house_id)
    if current is None:
        raise HTTPException(status_code=404, detail=f"No HSI computed yet for house {house_id}")

    return HSIStateResponse(
        house_id=current.house_id,
        score=current.score,
        bracket=current.bracket,
        fee_multiplier=current.fee_multiplier,
        credit_multiplier=current.credit_multiplier,
        updated_reason=current.updated_reason,
        last_risk_assessment=current.last_risk_assessment,
        current_risk_factor=current.current_risk_factor,
        trend_factor=current.trend_factor,
        risk_multiplier=current.risk_multiplier,
        unpaid_charges_count=current.unpaid_charges_count,
        unpaid_amount=current.unpaid_amount,
        risk_details=current.risk_details,
    )


@router.get("/houses/{house_id}/hsi/history", response_model=RiskHistoryResponse)
def get_hsi_history(
    house_id: int,
    snapshot_type: Optional[str] = Query(None, description="weekly | monthly | quarterly | manual"),
    limit: int = Query(52, ge=1, le=500),
    history: RiskHistoryService = Depends(get_history_service),
):
    """Snapshots for trend analysis, newest first"""
    snapshots = history.get_risk_history(house_id, snapshot_type=snapshot_type, limit=limit)
    return RiskHistoryResponse(
        house_id=house_id,
        snapshots=[
            RiskHistoryItem(
                assessment_date=s.assessment_date,
                snapshot_type=s.snapshot_type,
                hsi_score=s.hsi_score,
                risk_factor=s.risk_factor,
                trend_factor=s.trend_factor,
                multiplier=s.multiplier,
                fee_multiplier=s.fee_multiplier,
            )
            for s in snapshots
        ],
    )


@router.get("/houses/{house_id}/service-fee", response_model=ServiceFeeResponse)
def get_service_fee(
    house_id: int,
    fee_category: str = Query(..., min_length=1),
    engine: HSIEngine = Depends(get_hsi_engine),
):
    fee = engine.get_service_fee(house_id, fee_category)
    return ServiceFeeResponse(house_id=house_id, fee_category=fee_category, fee=fee)
