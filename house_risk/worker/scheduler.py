"""Periodic risk worker - weekly HSI run and monthly history cleanup"""

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from house_risk.config import Settings, settings as default_settings
from house_risk.domain.models import BatchAssessmentSummary, HSIResult
from house_risk.services.hsi_engine import HSIEngine
from house_risk.services.risk_history import RiskHistoryService

logger = logging.getLogger(__name__)

WEEKLY_JOB_ID = "hsi_weekly_assessment"
CLEANUP_JOB_ID = "risk_history_cleanup"


class RiskScheduler:
    """
    Owned by the process lifecycle: nothing runs until `start()`, and
    `shutdown()` stops the background scheduler. Jobs run in the scheduler's
    worker threads, one instance per job at a time.
    """

    def __init__(
        self,
        engine: HSIEngine,
        history: RiskHistoryService,
        config: Settings = default_settings,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.engine = engine
        self.history = history
        self.config = config
        self.scheduler = scheduler if scheduler is not None else BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def weekly_trigger(self) -> CronTrigger:
        return CronTrigger(
            day_of_week=self.config.scheduler_weekday,
            hour=self.config.scheduler_hour,
            minute=0,
            timezone="UTC",
        )

    def cleanup_trigger(self) -> CronTrigger:
        return CronTrigger(
            day=self.config.cleanup_day_of_month,
            hour=self.config.cleanup_hour,
            minute=0,
            timezone="UTC",
        )

    def start(self) -> None:
        if self.running:
            return
        self.scheduler.add_job(
            self.run_weekly_assessment,
            self.weekly_trigger(),
            id=WEEKLY_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self.run_monthly_cleanup,
            self.cleanup_trigger(),
            id=CLEANUP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("Risk scheduler started")

    def shutdown(self, wait: bool = True) -> None:
        if self.running:
            self.scheduler.shutdown(wait=wait)
        logger.info("Risk scheduler stopped")

    def run_weekly_assessment(self) -> Optional[BatchAssessmentSummary]:
        try:
            return self.engine.recompute_all(self.config.scheduler_inter_house_delay_seconds)
        except Exception:
            # A failed run is retried at the next scheduled slot
            logger.exception("Weekly risk assessment failed")
            return None

    def run_monthly_cleanup(self) -> Optional[int]:
        try:
            return self.history.cleanup_old_risk_history()
        except Exception:
            logger.exception("Risk history cleanup failed")
            return None

    def trigger_house(self, house_id: int) -> HSIResult:
        """On-demand recompute, e.g. after a payment lands"""
        return self.engine.compute_hsi(house_id)
