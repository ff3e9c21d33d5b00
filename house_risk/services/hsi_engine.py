"""HSI engine - recomputes a house's status index from observed group payment behavior"""

import logging
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.orm import Session

from house_risk.domain import hsi
from house_risk.domain.exceptions import DataIntegrityError, HouseNotFoundError, NotificationDeliveryError
from house_risk.domain.models import (
    BatchAssessmentSummary,
    HouseAssessmentOutcome,
    HSIResult,
    SnapshotMetadata,
)
from house_risk.domain.scoring import RISK_ASSESSMENT_DAYS, calculate_risk_assessment, neutral_assessment, risk_level
from house_risk.infrastructure.clients.notifications import HouseNotifier, NotificationClient
from house_risk.infrastructure.database.locks import HouseLockRegistry, house_locks
from house_risk.infrastructure.database.models import HouseStatusIndex
from house_risk.infrastructure.database.repositories import (
    ChargeRepository,
    HouseRepository,
    HSIRepository,
    RiskHistoryRepository,
)
from house_risk.infrastructure.database.session import SessionFactory, SessionLocal, read_scope, session_scope
from house_risk.infrastructure.observability.logging import log_hsi_update
from house_risk.infrastructure.observability.metrics import hsi_recompute_duration_histogram, record_hsi
from house_risk.utils.date_utils import utcnow

logger = logging.getLogger(__name__)

HIGH_RISK_SCORE = 40
EXCELLENT_SCORE = 80
SIGNIFICANT_ADJUSTMENT = Decimal("0.02")


def _ratio(value: float | Decimal) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.0001"))


class HSIEngine:
    """
    Produces one stable risk score per house.

    Recomputation for a house is serialized: in-process through the lock
    registry and across processes through a PostgreSQL advisory lock, so two
    runs cannot both smooth against the same previous score. All writes for one
    house (current row + history snapshot) land in a single transaction.
    """

    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        notifier: Optional[HouseNotifier] = None,
        locks: HouseLockRegistry = house_locks,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.notifier = notifier if notifier is not None else NotificationClient()
        self.locks = locks
        self.clock = clock

    def compute_hsi(self, house_id: int, db: Optional[Session] = None) -> HSIResult:
        """
        Recompute and persist the HSI for one house.

        With a caller-supplied session the caller owns commit/rollback and must
        call `send_warning` after committing; otherwise the whole recomputation
        commits or rolls back here and any warning is sent after commit.
        """
        if db is not None:
            return self._compute(db, house_id)

        start_time = time.time()
        try:
            with self.locks.hold(house_id):
                with session_scope(self.session_factory) as session:
                    result = self._compute(session, house_id)
        except HouseNotFoundError:
            record_hsi("failed")
            raise
        except Exception:
            record_hsi("failed")
            logger.exception("HSI recomputation failed", extra={"house_id": house_id})
            raise

        duration = time.time() - start_time
        hsi_recompute_duration_histogram.observe(duration)

        if result.skipped:
            record_hsi("skipped")
            logger.info("No users found for house, HSI left unchanged", extra={"house_id": house_id})
            return result

        record_hsi("success", result.bracket)
        log_hsi_update(house_id, result.score, result.bracket, result.risk_multiplier, result.updated_reason, duration * 1000)
        self.send_warning(result)
        return result

    def _compute(self, db: Session, house_id: int) -> HSIResult:
        now = self.clock()
        house_repo = HouseRepository(db)
        hsi_repo = HSIRepository(db)

        if house_repo.get_house(house_id) is None:
            raise HouseNotFoundError(house_id)

        self.locks.acquire_advisory(db, house_id)

        existing = hsi_repo.get_by_house(house_id, for_update=True)
        previous_score = existing.score if existing is not None else None

        member_ids = house_repo.get_member_ids(house_id)
        if not member_ids:
            return self._neutral_result(house_id, previous_score)

        # 1) Base score and risk assessment over the lookback window
        base_score = hsi.calculate_base_score()
        charges = ChargeRepository(db).get_charges_for_house_since(
            house_id, now - timedelta(days=RISK_ASSESSMENT_DAYS)
        )
        assessment = calculate_risk_assessment(charges, now)

        # 2) Risk-adjusted score, smoothed against the stored one
        measured = hsi.risk_adjusted_score(base_score, assessment.final_multiplier)
        score = hsi.smooth_score(measured, previous_score)
        if not hsi.MIN_SCORE <= score <= hsi.MAX_SCORE:
            raise DataIntegrityError(f"HSI score {score} out of range for house {house_id}")

        # 3) Derived metrics
        bracket = hsi.calculate_bracket(score)
        fee_multiplier = hsi.calculate_fee_multiplier(score)
        credit_multiplier = hsi.calculate_credit_multiplier(score)
        if existing is None:
            reason = hsi.INITIAL_REASON
        else:
            reason = hsi.generate_update_reason(base_score, assessment.final_multiplier, score)

        # 4) Current state
        hsi_repo.upsert(
            house_id,
            {
                "score": score,
                "bracket": bracket,
                "fee_multiplier": fee_multiplier,
                "credit_multiplier": credit_multiplier,
                "updated_reason": reason,
                "last_risk_assessment": now,
                "current_risk_factor": _ratio(assessment.current_risk_factor),
                "trend_factor": assessment.trend_factor,
                "risk_multiplier": assessment.final_multiplier,
                "unpaid_charges_count": assessment.unpaid_charges_count,
                "unpaid_amount": assessment.unpaid_amount,
                "risk_details": assessment.details.to_dict(),
            },
        )

        # 5) History snapshot
        snapshot_type = hsi.determine_snapshot_type(now.date())
        RiskHistoryRepository(db).create_snapshot(
            house_id=house_id,
            assessment_date=now,
            risk_factor=_ratio(assessment.current_risk_factor),
            trend_factor=assessment.trend_factor,
            multiplier=assessment.final_multiplier,
            hsi_score=score,
            fee_multiplier=fee_multiplier,
            snapshot_type=snapshot_type.value,
            meta=SnapshotMetadata(
                unpaid_charges_count=assessment.unpaid_charges_count,
                unpaid_amount=assessment.unpaid_amount,
                risk_details=assessment.details,
                previous_score=previous_score,
            ).to_dict(),
        )

        return HSIResult(
            house_id=house_id,
            score=score,
            bracket=bracket,
            fee_multiplier=fee_multiplier,
            credit_multiplier=credit_multiplier,
            measured_score=measured,
            previous_score=previous_score,
            risk_assessment=assessment,
            updated_reason=reason,
            snapshot_type=snapshot_type.value,
            warning=hsi.should_warn(previous_score, score, bracket),
            member_ids=member_ids,
        )

    def _neutral_result(self, house_id: int, previous_score: Optional[int]) -> HSIResult:
        score = previous_score if previous_score is not None else hsi.BASE_SCORE
        return HSIResult(
            house_id=house_id,
            score=score,
            bracket=hsi.calculate_bracket(score),
            fee_multiplier=hsi.calculate_fee_multiplier(score),
            credit_multiplier=hsi.calculate_credit_multiplier(score),
            measured_score=hsi.BASE_SCORE,
            previous_score=previous_score,
            risk_assessment=neutral_assessment("No users in house"),
            updated_reason="No users in house",
            skipped=True,
        )

    def send_warning(self, result: HSIResult) -> bool:
        """
        Tell every member the house is slipping. Framed as a group message.
        Delivery failures are logged; the score is already committed.
        """
        if not result.warning or not result.member_ids:
            return False

        message = hsi.group_warning_message(result.score)
        try:
            self.notifier.notify_house(
                result.house_id,
                result.member_ids,
                title="Group Payment Alert",
                message=message,
                data={
                    "type": "group_hsi_warning",
                    "house_id": result.house_id,
                    "new_hsi": result.score,
                    "new_bracket": result.bracket,
                    "group_impact": True,
                },
            )
        except NotificationDeliveryError as e:
            logger.warning(
                f"Group HSI warning not delivered: {e}",
                extra={"house_id": result.house_id},
            )
            return False

        logger.info(
            "Group HSI warning sent",
            extra={"house_id": result.house_id, "recipients": len(result.member_ids)},
        )
        return True

    def get_current(self, house_id: int, db: Optional[Session] = None) -> Optional[HouseStatusIndex]:
        if db is not None:
            return HSIRepository(db).get_by_house(house_id)
        with read_scope(self.session_factory) as session:
            return HSIRepository(session).get_by_house(house_id)

    def get_service_fee(self, house_id: int, fee_category: str, db: Optional[Session] = None) -> Decimal:
        """Base fee for the category scaled by the house's current fee multiplier"""
        current = self.get_current(house_id, db)
        fee_multiplier = current.fee_multiplier if current is not None else None
        return hsi.calculate_service_fee(fee_category, fee_multiplier)

    def recompute_all(
        self,
        delay_seconds: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> BatchAssessmentSummary:
        """
        Recompute every house sequentially with a small pause between houses.

        A failing house is recorded and the run moves on to the next one.
        """
        with read_scope(self.session_factory) as session:
            houses = [(h.id, h.name) for h in HouseRepository(session).list_houses()]

        results = []
        risk_adjustments = 0

        for house_id, house_name in houses:
            try:
                result = self.compute_hsi(house_id)
            except Exception as e:
                results.append(HouseAssessmentOutcome(house_id=house_id, house_name=house_name, success=False, error=str(e)))
            else:
                if result.skipped:
                    results.append(
                        HouseAssessmentOutcome(
                            house_id=house_id,
                            house_name=house_name,
                            success=False,
                            error="No users found",
                        )
                    )
                else:
                    if abs(1 - result.risk_multiplier) > SIGNIFICANT_ADJUSTMENT:
                        risk_adjustments += 1
                    results.append(
                        HouseAssessmentOutcome(
                            house_id=house_id,
                            house_name=house_name,
                            success=True,
                            hsi_score=result.score,
                            bracket=result.bracket,
                            fee_multiplier=result.fee_multiplier,
                            risk_multiplier=result.risk_multiplier,
                            unpaid_charges_count=result.risk_assessment.unpaid_charges_count,
                            unpaid_amount=result.risk_assessment.unpaid_amount,
                            risk_level=risk_level(result.risk_assessment.current_risk_factor),
                        )
                    )

            if delay_seconds > 0:
                sleep(delay_seconds)

        successes = [r for r in results if r.success]
        average = hsi.round_half_up(Decimal(sum(r.hsi_score for r in successes)) / len(successes)) if successes else hsi.BASE_SCORE

        summary = BatchAssessmentSummary(
            total_houses=len(houses),
            success_count=len(successes),
            failure_count=len(results) - len(successes),
            average_hsi=average,
            high_risk_houses=sum(1 for r in successes if r.hsi_score < HIGH_RISK_SCORE),
            excellent_houses=sum(1 for r in successes if r.hsi_score >= EXCELLENT_SCORE),
            houses_with_risk_adjustments=risk_adjustments,
            timestamp=self.clock(),
            results=results,
        )
        logger.info(
            "Risk assessment run completed",
            extra={
                "total_houses": summary.total_houses,
                "success_count": summary.success_count,
                "failure_count": summary.failure_count,
                "average_hsi": summary.average_hsi,
            },
        )
        return summary
