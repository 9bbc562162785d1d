from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence

from config.settings import Settings, get_settings
from errors import RunInProgressError
from models import RunResult, RunSummary
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import (
    CheckQuota,
    ExtractPosts,
    FetchCandidates,
    IncrementQuota,
    PersistPosts,
    ReconcilePosts,
    ResetWhenExhausted,
    TruncateToQuota,
)
from ports.extraction import ExtractionPort
from ports.sink import SinkPort
from ports.source import ProfileSourcePort
from services.matching import MatchStrategy
from services.rate_limiter import RateLimiter
from utils.run_logger import log_run


logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """Runs one quota-bounded scrape: select, extract, reconcile, write, rotate.

    At most one run is active per orchestrator; a second caller gets
    RunInProgressError instead of waiting.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        source: ProfileSourcePort,
        extractor: ExtractionPort,
        sink: SinkPort,
        strategies: Optional[Sequence[MatchStrategy]] = None,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.source = source
        self.extractor = extractor
        self.sink = sink
        self.strategies = strategies
        self._lock = threading.Lock()
        self.last_result: Optional[RunResult] = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def build_pipeline(self) -> Pipeline:
        return Pipeline([
            CheckQuota(self.rate_limiter),
            FetchCandidates(self.source),
            TruncateToQuota(self.rate_limiter),
            ExtractPosts(self.extractor),
            ReconcilePosts(self.strategies),
            PersistPosts(self.source, self.sink),
            IncrementQuota(self.rate_limiter),
            ResetWhenExhausted(self.source),
        ])

    def run_batch(self, profile_urls: Optional[List[str]] = None, trigger: str = "manual") -> RunResult:
        """Run once. Expected stops come back as ``success=False``; fetch/extract errors raise."""
        if not self._lock.acquire(blocking=False):
            raise RunInProgressError("A scrape run is already in progress")
        run_id = uuid.uuid4().hex
        t0 = time.time()
        try:
            logger.info(f"Run started ({trigger})", extra={"step": "run", "status": "started", "run_id": run_id})
            ctx = RunContext(run_id=run_id, profile_urls=profile_urls)
            try:
                ctx = self.build_pipeline().run(ctx)
            except Exception as e:
                logger.error(f"Run failed: {e}", extra={"step": "run", "status": "failed", "run_id": run_id, "error": type(e).__name__})
                log_run(run_id=run_id, trigger=trigger, success=False, error=str(e), duration_ms=int((time.time() - t0) * 1000))
                raise

            if ctx.halted:
                result = ctx.result
            else:
                summary = RunSummary.from_outcomes(ctx.results, ctx.profiles_processed)
                result = RunResult(
                    success=True,
                    results=ctx.results,
                    summary=summary,
                    stats=self.rate_limiter.get_stats(),
                    run_id=run_id,
                    reset_triggered=ctx.reset_triggered,
                )
                logger.info(
                    f"Run summary: total={summary.total} successful={summary.successful} failed={summary.failed} "
                    f"duplicates={summary.duplicates} profiles_processed={summary.profiles_processed}",
                    extra={"step": "run", "status": "ok", "run_id": run_id},
                )

            log_run(
                run_id=run_id,
                trigger=trigger,
                success=result.success,
                error=result.error,
                summary=result.summary.model_dump() if result.summary else None,
                stats=result.stats.model_dump() if result.stats else None,
                duration_ms=int((time.time() - t0) * 1000),
                reset_triggered=result.reset_triggered,
            )
            self.last_result = result
            return result
        finally:
            self._lock.release()

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "rate_limit": self.rate_limiter.get_stats().model_dump(),
        }


def build_orchestrator(settings: Optional[Settings] = None, source_name: Optional[str] = None) -> BatchOrchestrator:
    """Wire the HubSpot repos, the registered extraction source and the counter file."""
    from crm.client import HubSpotClient
    from crm.repos import ContactsRepo, DealsRepo
    import sources  # noqa: F401  (registers built-in sources)
    from sources.registry import DEFAULT_SOURCE, get_source

    settings = settings or get_settings()
    client = HubSpotClient(settings)
    extractor = get_source(source_name or DEFAULT_SOURCE, settings=settings)
    return BatchOrchestrator(
        rate_limiter=RateLimiter(settings),
        source=ContactsRepo(client),
        extractor=extractor,
        sink=DealsRepo(client),
    )
