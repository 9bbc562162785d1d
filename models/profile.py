from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Profile(BaseModel):
    """CRM contact (or company page) eligible for scraping."""

    id: str | None = None
    display_name: str | None = None
    canonical_url: str
    processed: bool = False

    model_config = ConfigDict(extra="ignore", frozen=True)
