from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from models import ExtractionBatchResult, PostOutcome, Profile, ProfilePostGroup, RateLimitStats, RunResult
from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    run_id: Optional[str] = None
    # Explicit profile URLs replace the CRM candidates when given
    profile_urls: Optional[List[str]] = None
    stats: Optional[RateLimitStats] = None
    candidates: List[Profile] = field(default_factory=list)
    to_process: List[Profile] = field(default_factory=list)
    extraction: Optional[ExtractionBatchResult] = None
    groups: List[ProfilePostGroup] = field(default_factory=list)
    results: List[PostOutcome] = field(default_factory=list)
    profiles_processed: int = 0
    reset_triggered: bool = False
    meta: dict = field(default_factory=dict)
    # Set by a step that ends the run early
    result: Optional[RunResult] = None

    @property
    def halted(self) -> bool:
        return self.result is not None

    def halt(self, error: str, stats: Optional[RateLimitStats] = None) -> "RunContext":
        self.result = RunResult(success=False, error=error, stats=stats, run_id=self.run_id)
        return self


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        # Make logging idempotent for any direct runner use
        init_logging()
        for step in self.steps:
            name = type(step).__name__
            t0 = time.time()
            ctx = step.run(ctx)
            logger.debug(
                f"{name} done",
                extra={"step": name, "run_id": ctx.run_id or "-", "duration_ms": int((time.time() - t0) * 1000)},
            )
            if ctx.halted:
                logger.info(f"Run stopped at {name}: {ctx.result.error}", extra={"step": name, "status": "halted", "run_id": ctx.run_id or "-"})
                break
        return ctx
