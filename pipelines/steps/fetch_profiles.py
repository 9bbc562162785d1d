from __future__ import annotations

import logging
from typing import List

from models import Profile
from pipelines.runner import RunContext
from ports.source import ProfileSourcePort
from services.rate_limiter import RateLimiter
from services.url_utils import normalize_url


logger = logging.getLogger(__name__)

NO_PROFILES_FOUND = "No profiles found"
NO_REMAINING_QUOTA = "No remaining profiles for today"


def profiles_from_urls(urls: List[str]) -> List[Profile]:
    """Ad-hoc profiles for an explicit URL list (no CRM id, nothing to mark)."""
    profiles: List[Profile] = []
    seen = set()
    for url in urls or []:
        normalized = normalize_url(url)
        if not normalized or normalized.lower() in seen:
            continue
        seen.add(normalized.lower())
        profiles.append(Profile(canonical_url=normalized))
    return profiles


class FetchCandidates:
    def __init__(self, source: ProfileSourcePort) -> None:
        self.source = source

    def run(self, ctx: RunContext) -> RunContext:
        if ctx.profile_urls is not None:
            ctx.candidates = profiles_from_urls(ctx.profile_urls)
        else:
            # Source errors end the run; the caller decides how to surface them
            ctx.candidates = list(self.source.fetch_unprocessed_profiles())
        if not ctx.candidates:
            logger.warning("No candidate profiles", extra={"step": "fetch_profiles", "run_id": ctx.run_id or "-"})
            return ctx.halt(NO_PROFILES_FOUND, stats=ctx.stats)
        return ctx


class TruncateToQuota:
    """First-come: keep the first ``remaining`` candidates in fetch order."""

    def __init__(self, rate_limiter: RateLimiter) -> None:
        self.rate_limiter = rate_limiter

    def run(self, ctx: RunContext) -> RunContext:
        stats = ctx.stats or self.rate_limiter.get_stats()
        remaining = max(0, stats.remaining)
        ctx.to_process = ctx.candidates[:remaining]
        if not ctx.to_process:
            return ctx.halt(NO_REMAINING_QUOTA, stats=stats)
        logger.info(
            f"Processing {len(ctx.to_process)} of {len(ctx.candidates)} profiles ({remaining} left in today's quota)",
            extra={"step": "truncate", "run_id": ctx.run_id or "-"},
        )
        return ctx
