from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SinkRecord(BaseModel):
    """Deal created (or found) for a post."""

    id: str | None = None
    name: str | None = None
    description: str | None = None
    duplicate: bool = False

    model_config = ConfigDict(extra="ignore")
