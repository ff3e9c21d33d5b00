"""Risk history archive - snapshot listing, manual snapshots and retention cleanup"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from house_risk.domain.exceptions import HouseNotFoundError, HSINotComputedError
from house_risk.domain.models import SnapshotType
from house_risk.infrastructure.database.models import HouseRiskHistory
from house_risk.infrastructure.database.repositories import HouseRepository, HSIRepository, RiskHistoryRepository
from house_risk.infrastructure.database.session import SessionFactory, SessionLocal, read_scope, session_scope
from house_risk.infrastructure.observability.metrics import risk_history_deleted_counter
from house_risk.utils.date_utils import subtract_months, utcnow

logger = logging.getLogger(__name__)

WEEKLY_RETENTION_MONTHS = 6


class RiskHistoryService:
    """Weekly snapshots are kept for six months; monthly and quarterly ones forever"""

    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.clock = clock

    def get_risk_history(
        self,
        house_id: int,
        snapshot_type: Optional[str] = None,
        limit: int = 52,
        db: Optional[Session] = None,
    ) -> List[HouseRiskHistory]:
        """Newest snapshots first"""
        if db is not None:
            return RiskHistoryRepository(db).list_for_house(house_id, snapshot_type, limit)
        with read_scope(self.session_factory) as session:
            return RiskHistoryRepository(session).list_for_house(house_id, snapshot_type, limit)

    def take_manual_snapshot(self, house_id: int, note: Optional[str] = None, db: Optional[Session] = None) -> HouseRiskHistory:
        """Archive the current HSI row as-is, outside the weekly cadence"""
        if db is not None:
            return self._snapshot(db, house_id, note)
        with session_scope(self.session_factory) as session:
            snapshot = self._snapshot(session, house_id, note)
            session.flush()
            session.refresh(snapshot)
            session.expunge(snapshot)
            return snapshot

    def _snapshot(self, db: Session, house_id: int, note: Optional[str]) -> HouseRiskHistory:
        if HouseRepository(db).get_house(house_id) is None:
            raise HouseNotFoundError(house_id)
        current = HSIRepository(db).get_by_house(house_id)
        if current is None:
            raise HSINotComputedError(house_id)
        return RiskHistoryRepository(db).create_snapshot(
            house_id=house_id,
            assessment_date=self.clock(),
            risk_factor=current.current_risk_factor,
            trend_factor=current.trend_factor,
            multiplier=current.risk_multiplier,
            hsi_score=current.score,
            fee_multiplier=current.fee_multiplier,
            snapshot_type=SnapshotType.MANUAL.value,
            meta={
                "unpaid_charges_count": current.unpaid_charges_count,
                "unpaid_amount": str(current.unpaid_amount),
                "risk_details": current.risk_details,
                "note": note,
            },
        )

    def cleanup_old_risk_history(self, db: Optional[Session] = None) -> int:
        """
        Delete weekly snapshots created more than six months ago.

        Idempotent: a second run with nothing new to purge deletes 0 rows.
        """
        cutoff = subtract_months(self.clock(), WEEKLY_RETENTION_MONTHS)
        if db is not None:
            deleted = RiskHistoryRepository(db).delete_before(SnapshotType.WEEKLY.value, cutoff)
        else:
            with session_scope(self.session_factory) as session:
                deleted = RiskHistoryRepository(session).delete_before(SnapshotType.WEEKLY.value, cutoff)

        risk_history_deleted_counter.inc(deleted)
        logger.info(
            "Old weekly risk history cleaned up",
            extra={"deleted_count": deleted, "cutoff": cutoff.isoformat()},
        )
        return deleted
