"""Manual triggers for the batch jobs the scheduler normally runs"""

from fastapi import APIRouter, Depends

from house_risk.api.dependencies import get_history_service, get_hsi_engine
from house_risk.api.v1.schemas import BatchSummaryResponse, CleanupResponse, HouseOutcomeSchema
from house_risk.services.hsi_engine import HSIEngine
from house_risk.services.risk_history import RiskHistoryService

router = APIRouter()


@router.post("/maintenance/risk-assessment", response_model=BatchSummaryResponse)
def run_risk_assessment(engine: HSIEngine = Depends(get_hsi_engine)):
    """Recompute every house now; per-house failures are reported, not raised"""
    summary = engine.recompute_all()
    return BatchSummaryResponse(
        total_houses=summary.total_houses,
        success_count=summary.success_count,
        failure_count=summary.failure_count,
        average_hsi=summary.average_hsi,
        high_risk_houses=summary.high_risk_houses,
        excellent_houses=summary.excellent_houses,
        houses_with_risk_adjustments=summary.houses_with_risk_adjustments,
        timestamp=summary.timestamp,
        results=[
            HouseOutcomeSchema(
                house_id=r.house_id,
                house_name=r.house_name,
                success=r.success,
                hsi_score=r.hsi_score,
                bracket=r.bracket,
                risk_level=r.risk_level,
                error=r.error,
            )
            for r in summary.results
        ],
    )


@router.post("/maintenance/risk-history/cleanup", response_model=CleanupResponse)
def cleanup_risk_history(history: RiskHistoryService = Depends(get_history_service)):
    return CleanupResponse(deleted_count=history.cleanup_old_risk_history())
