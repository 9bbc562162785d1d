from __future__ import annotations

from pipelines.runner import RunContext
from services.rate_limiter import RateLimiter


DAILY_LIMIT_REACHED = "Daily limit reached"


class CheckQuota:
    def __init__(self, rate_limiter: RateLimiter) -> None:
        self.rate_limiter = rate_limiter

    def run(self, ctx: RunContext) -> RunContext:
        if not self.rate_limiter.can_process_more():
            return ctx.halt(DAILY_LIMIT_REACHED, stats=self.rate_limiter.get_stats())
        ctx.stats = self.rate_limiter.get_stats()
        return ctx
