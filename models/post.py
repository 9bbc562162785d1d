from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Post(BaseModel):
    """One extracted post; ``url`` is the dedup key downstream."""

    url: str
    text: str = ""
    author: str | None = None
    created_at: str | None = None
    reaction_count: int | None = None
    comment_count: int | None = None

    model_config = ConfigDict(extra="ignore")


class ProfilePostGroup(BaseModel):
    """Posts of one batch attributed to a single profile, in arrival order."""

    profile_url: str
    profile_display_name: str
    posts: list[Post] = Field(default_factory=list)
    profile_id: str | None = None
    matched: bool = False
    match_tier: str | None = None
    match_confidence: float = 0.0

    model_config = ConfigDict(extra="ignore")
