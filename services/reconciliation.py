from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from models import Profile, ProfilePostGroup
from services.mapping import map_raw_item
from services.matching import MatchCandidate, MatchStrategy, ProfileMatcher


logger = logging.getLogger(__name__)

UNKNOWN_PROFILE_LABEL = "Unknown profile"


def resolve_display_name(
    stored_name: Optional[str],
    author_name: Optional[str],
    profile_url: Optional[str],
) -> str:
    """Known profile name > item author > the URL itself > placeholder; always a str."""
    for value in (stored_name, author_name, profile_url):
        if isinstance(value, str) and value.strip():
            return value.strip()
    return UNKNOWN_PROFILE_LABEL


def reconcile(
    raw_items: Iterable[Any],
    known_profiles: Sequence[Profile],
    strategies: Optional[Sequence[MatchStrategy]] = None,
) -> List[ProfilePostGroup]:
    """Group raw extraction items into per-profile post groups.

    Matched items are filed under the known profile's canonical URL, so
    near-duplicate URL variants from the actor never reach the sink. Items
    nothing matches still form their own (unmatched) group. A post URL seen
    twice in the same batch is kept once.
    """
    matcher = ProfileMatcher(known_profiles, strategies=strategies)
    groups: Dict[str, ProfilePostGroup] = {}
    seen_posts: Set[str] = set()
    skipped = 0

    for item in raw_items:
        try:
            mapped = map_raw_item(item)
            if mapped is None:
                skipped += 1
                continue
            post_key = mapped.post.url.lower()
            if post_key in seen_posts:
                logger.debug(f"Duplicate post in batch dropped: {mapped.post.url}", extra={"step": "reconcile"})
                continue
            result = matcher.match(MatchCandidate(
                profile_url=mapped.profile_url,
                post_url=mapped.post.url,
                author_name=mapped.author_name,
            ))
        except Exception as e:
            skipped += 1
            logger.warning(f"Skipping extraction item that could not be decoded: {e}", extra={"step": "reconcile", "status": "skipped", "error": type(e).__name__})
            continue
        seen_posts.add(post_key)

        if result is not None:
            profile = result.profile
            key = profile.canonical_url
            group = groups.get(key)
            if group is None:
                group = ProfilePostGroup(
                    profile_url=profile.canonical_url,
                    profile_display_name=resolve_display_name(profile.display_name, mapped.author_name, profile.canonical_url),
                    profile_id=profile.id,
                    matched=True,
                    match_tier=result.tier,
                    match_confidence=result.confidence,
                )
                groups[key] = group
            elif result.confidence < group.match_confidence:
                # Group confidence is the weakest link that fed into it
                group.match_tier = result.tier
                group.match_confidence = result.confidence
        else:
            key = mapped.profile_url or mapped.post.url
            group = groups.get(key)
            if group is None:
                logger.warning(
                    f"No known profile matches {key}; keeping its posts unassociated",
                    extra={"step": "reconcile", "status": "unmatched"},
                )
                group = ProfilePostGroup(
                    profile_url=key,
                    profile_display_name=resolve_display_name(None, mapped.author_name, key),
                    matched=False,
                )
                groups[key] = group

        if mapped.author_name and group.profile_display_name in (group.profile_url, UNKNOWN_PROFILE_LABEL):
            group.profile_display_name = mapped.author_name
        if mapped.post.author is None:
            mapped.post.author = group.profile_display_name
        group.posts.append(mapped.post)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed extraction item(s)", extra={"step": "reconcile", "status": "skipped"})
    logger.info(
        f"Reconciled {sum(len(g.posts) for g in groups.values())} posts into {len(groups)} profile group(s); tiers={matcher.tier_counts}",
        extra={"step": "reconcile", "status": "ok"},
    )
    return list(groups.values())
