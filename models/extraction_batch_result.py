from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExtractionBatchResult(BaseModel):
    """Raw actor output for one logical extraction request."""

    # Items are kept as the actor returned them; reconciliation skips non-objects
    raw_items: list[Any] = Field(default_factory=list)
    total_items: int = 0
    batches_processed: int = 0

    model_config = ConfigDict(extra="ignore")
