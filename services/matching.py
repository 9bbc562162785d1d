from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence

from models import Profile
from services.url_utils import extract_profile_slug, last_path_segment, normalize_url


logger = logging.getLogger(__name__)

MIN_SLUG_LENGTH = 3
LOW_CONFIDENCE_THRESHOLD = 0.6


@dataclass(frozen=True)
class MatchCandidate:
    """What the matcher knows about one raw item."""

    profile_url: Optional[str]
    post_url: Optional[str] = None
    author_name: Optional[str] = None


@dataclass(frozen=True)
class MatchResult:
    profile: Profile
    tier: str
    confidence: float


class MatchStrategy(Protocol):
    tier: str
    confidence: float

    def find(self, candidate: MatchCandidate, profiles: Sequence[Profile]) -> Optional[Profile]:
        ...


class ExactUrlMatch:
    """Normalized profile URL equals a known canonical URL (case-insensitive)."""

    tier = "exact"
    confidence = 1.0

    def find(self, candidate: MatchCandidate, profiles: Sequence[Profile]) -> Optional[Profile]:
        url = normalize_url(candidate.profile_url)
        if not url:
            return None
        key = url.rstrip("/").lower()
        for profile in profiles:
            known = (normalize_url(profile.canonical_url) or "").rstrip("/").lower()
            if known and known == key:
                return profile
        return None


class SlugMatch:
    """Final path segment of the item's URL equals a known profile's slug."""

    tier = "slug"
    confidence = 0.8

    def __init__(self, min_length: int = MIN_SLUG_LENGTH) -> None:
        self.min_length = min_length

    def find(self, candidate: MatchCandidate, profiles: Sequence[Profile]) -> Optional[Profile]:
        slugs: List[str] = []
        for url in (candidate.profile_url, candidate.post_url):
            if not url:
                continue
            for slug in (last_path_segment(url), extract_profile_slug(url)):
                if len(slug) > self.min_length and slug not in slugs:
                    slugs.append(slug)
        if not slugs:
            return None
        for profile in profiles:
            known = last_path_segment(profile.canonical_url)
            if len(known) > self.min_length and known in slugs:
                return profile
        return None


class NameContainmentMatch:
    """Author name contained in (or containing) a known display name."""

    tier = "name"
    confidence = 0.5

    def find(self, candidate: MatchCandidate, profiles: Sequence[Profile]) -> Optional[Profile]:
        author = (candidate.author_name or "").strip().casefold()
        if not author:
            return None
        for profile in profiles:
            known = (profile.display_name or "").strip().casefold()
            if not known:
                continue
            if author in known or known in author:
                return profile
        return None


def default_strategies() -> List[MatchStrategy]:
    return [ExactUrlMatch(), SlugMatch(), NameContainmentMatch()]


class ProfileMatcher:
    """Attribute raw items to known profiles; strategies run in order, first hit wins."""

    def __init__(
        self,
        profiles: Sequence[Profile],
        strategies: Optional[Sequence[MatchStrategy]] = None,
        low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD,
    ) -> None:
        self.profiles = list(profiles)
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self.low_confidence_threshold = low_confidence_threshold
        self.tier_counts: Dict[str, int] = {}

    def match(self, candidate: MatchCandidate) -> Optional[MatchResult]:
        for strategy in self.strategies:
            profile = strategy.find(candidate, self.profiles)
            if profile is None:
                continue
            result = MatchResult(profile=profile, tier=strategy.tier, confidence=strategy.confidence)
            self.tier_counts[result.tier] = self.tier_counts.get(result.tier, 0) + 1
            if result.confidence < self.low_confidence_threshold:
                logger.warning(
                    f"Low-confidence {result.tier} match: {candidate.profile_url or candidate.author_name} -> {profile.canonical_url}",
                    extra={"step": "reconcile", "status": "low_confidence", "profile": profile.id or "-"},
                )
            elif result.tier != "exact":
                logger.info(
                    f"Approximate {result.tier} match: {candidate.profile_url} -> {profile.canonical_url}",
                    extra={"step": "reconcile", "profile": profile.id or "-"},
                )
            return result
        return None
