from __future__ import annotations

import logging

from pipelines.runner import RunContext
from ports.source import ProfileSourcePort
from services.rate_limiter import RateLimiter


logger = logging.getLogger(__name__)


class IncrementQuota:
    """Quota counts submitted profiles, not saved posts."""

    def __init__(self, rate_limiter: RateLimiter) -> None:
        self.rate_limiter = rate_limiter

    def run(self, ctx: RunContext) -> RunContext:
        self.rate_limiter.increment_count(len(ctx.to_process))
        return ctx


class ResetWhenExhausted:
    """Start a new rotation once every known profile is processed."""

    def __init__(self, source: ProfileSourcePort) -> None:
        self.source = source

    def run(self, ctx: RunContext) -> RunContext:
        run_id = ctx.run_id or "-"
        try:
            if not self.source.all_processed():
                logger.info("Unprocessed profiles remain; no reset", extra={"step": "rotate", "run_id": run_id})
                return ctx
            logger.info("All profiles processed; resetting processed state", extra={"step": "rotate", "run_id": run_id})
            ctx.reset_triggered = True
            if not self.source.reset_all_processed():
                logger.warning("Processed-state reset finished with errors", extra={"step": "rotate", "status": "partial", "run_id": run_id})
        except Exception as e:
            logger.error(f"Exhaustion check failed: {e}", extra={"step": "rotate", "status": "failed", "run_id": run_id, "error": type(e).__name__})
        return ctx
