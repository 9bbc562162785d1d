from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .rate_limit import RateLimitStats


class PostOutcome(BaseModel):
    profile_url: str
    profile_name: str
    post_url: str
    success: bool
    deal_id: Optional[str] = None
    duplicate: bool = False
    error: Optional[str] = None


class RunSummary(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    duplicates: int = 0
    profiles_processed: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: List[PostOutcome], profiles_processed: int) -> "RunSummary":
        return cls(
            total=len(outcomes),
            successful=sum(1 for o in outcomes if o.success),
            failed=sum(1 for o in outcomes if not o.success and not o.duplicate),
            duplicates=sum(1 for o in outcomes if o.duplicate),
            profiles_processed=profiles_processed,
        )


class RunResult(BaseModel):
    """What every run returns, including graceful early stops."""

    success: bool
    error: Optional[str] = None
    results: List[PostOutcome] = Field(default_factory=list)
    summary: Optional[RunSummary] = None
    stats: Optional[RateLimitStats] = None
    run_id: Optional[str] = None
    reset_triggered: bool = False

    model_config = ConfigDict(extra="ignore")
