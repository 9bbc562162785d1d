from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from config.settings import Settings, get_settings
from errors import RunInProgressError
from models import RunResult


logger = logging.getLogger(__name__)

JOB_ID = "scrape_posts"


class ScrapeScheduler:
    """Periodic trigger for the batch orchestrator.

    Overlapping triggers are skipped with a warning; errors from a scheduled
    run are logged and the schedule keeps going.
    """

    def __init__(self, orchestrator, settings: Optional[Settings] = None, scheduler: Optional[BackgroundScheduler] = None) -> None:
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()
        self.interval_minutes = self.settings.scrape_interval_minutes
        self.scheduler = scheduler or BackgroundScheduler(timezone=self.settings.scheduler_timezone)

    def run_scheduled(self) -> Optional[RunResult]:
        if self.orchestrator.is_running:
            logger.warning("Scrape already running, skipping this trigger", extra={"step": "scheduler", "status": "skipped"})
            return None
        try:
            result = self.orchestrator.run_batch(trigger="scheduled")
        except RunInProgressError:
            logger.warning("Scrape already running, skipping this trigger", extra={"step": "scheduler", "status": "skipped"})
            return None
        except Exception as e:
            logger.error(f"Scheduled run failed: {e}", exc_info=True, extra={"step": "scheduler", "status": "failed", "error": type(e).__name__})
            return None
        logger.info(f"Scheduled run finished (success={result.success})", extra={"step": "scheduler", "run_id": result.run_id or "-"})
        return result

    def start(self, run_immediately: bool = False) -> bool:
        """Schedule the job; returns False when the interval disables scheduling."""
        if self.interval_minutes < 1:
            logger.info("Scheduler disabled (SCRAPE_INTERVAL_MINUTES not set or < 1)", extra={"step": "scheduler"})
            return False
        job_kwargs: Dict[str, Any] = {}
        if run_immediately:
            job_kwargs["next_run_time"] = datetime.now(self.scheduler.timezone)
        self.scheduler.add_job(
            self.run_scheduled,
            "interval",
            minutes=self.interval_minutes,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_kwargs,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Scheduler started: every {self.interval_minutes} minute(s)", extra={"step": "scheduler"})
        return True

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped", extra={"step": "scheduler"})

    def status(self) -> Dict[str, Any]:
        return {
            "is_running": self.orchestrator.is_running,
            "is_scheduled": self.scheduler.running and self.scheduler.get_job(JOB_ID) is not None,
            "interval_minutes": self.interval_minutes,
        }
