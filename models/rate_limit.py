from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RateLimitCounter(BaseModel):
    """Persisted shape of the daily counter file."""

    date: str
    count: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="ignore")


class RateLimitStats(BaseModel):
    date: str
    count: int
    limit: int
    remaining: int
