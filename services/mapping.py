from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from models import Post
from services.url_utils import is_post_url, is_profile_url, normalize_url


logger = logging.getLogger(__name__)

PROFILE_URL_FIELDS = ("profileUrl", "authorProfileUrl", "authorUrl", "linkedinUrl", "url")
POST_URL_FIELDS = ("postUrl", "url", "linkedinUrl", "shareUrl")
TEXT_FIELDS = ("text", "content", "description")
CREATED_AT_FIELDS = ("createdAt", "postedAt", "date", "publishedAt")
REACTION_FIELDS = ("reactionCount", "numLikes", "reactions", "likes")
COMMENT_FIELDS = ("commentCount", "numComments", "comments")
_NAME_KEYS = ("name", "authorName", "fullName")


@dataclass
class MappedItem:
    """One raw actor item decoded into canonical shapes."""

    profile_url: Optional[str]
    post: Post
    author_name: Optional[str]


def _first_present(item: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def decode_display_name(value: Any) -> Optional[str]:
    """Collapse the author/name shapes seen in actor output to ``str | None``.

    Strings are used as is, mappings yield their name-like field (or
    first/last name), other scalars are coerced to text.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    if isinstance(value, dict):
        for key in _NAME_KEYS:
            nested = value.get(key)
            if isinstance(nested, str) and nested.strip():
                return nested.strip()
        first = value.get("firstName") or value.get("first_name") or ""
        last = value.get("lastName") or value.get("last_name") or ""
        full = f"{first} {last}".strip()
        return full or None
    if isinstance(value, (list, tuple, set)):
        return None
    text = str(value).strip()
    return text or None


def _parse_int_shorthand(value: Any) -> Optional[int]:
    """Parse strings like '1.2K', '3M', '4500', '500+' into an integer."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(round(value))
        s = str(value).strip().upper().replace(",", "")
        if not s:
            return None
        if s.endswith('+'):
            s = s[:-1]
        m = re.match(r"^([0-9]+(?:\.[0-9]+)?)([KMB]?)$", s)
        if m:
            num = float(m.group(1))
            factor = {"K": 1000, "M": 1000000, "B": 1000000000}.get(m.group(2), 1)
            return int(round(num * factor))
        digits = ''.join(ch for ch in s if ch.isdigit())
        return int(digits) if digits else None
    except Exception:
        return None


def _parse_count(value: Any) -> Optional[int]:
    # Engagement arrives as a number, a shorthand string or {"count"/"total": n}
    if isinstance(value, dict):
        value = value.get("count", value.get("total"))
    elif isinstance(value, list):
        return len(value)
    return _parse_int_shorthand(value)


def _profile_url_of(item: Dict[str, Any]) -> Optional[str]:
    raw = _first_present(item, PROFILE_URL_FIELDS)
    if not isinstance(raw, str):
        raw = None
    # Top-level url/linkedinUrl often hold the post URL; the author block has the profile
    if raw is None or is_post_url(raw) or not is_profile_url(raw):
        author = item.get("author")
        if isinstance(author, dict):
            nested = _first_present(author, ("profileUrl", "linkedinUrl", "url"))
            if isinstance(nested, str) and is_profile_url(nested):
                raw = nested
    return normalize_url(raw)


def map_raw_item(item: Any) -> Optional[MappedItem]:
    """Decode a raw actor item; returns None (and warns) when it has no post URL."""
    if not isinstance(item, dict):
        logger.warning(f"Skipping non-object extraction item: {type(item).__name__}", extra={"step": "reconcile", "status": "skipped"})
        return None

    post_url = _first_present(item, POST_URL_FIELDS)
    if not isinstance(post_url, str) or not post_url.strip():
        logger.warning("Skipping extraction item without post URL", extra={"step": "reconcile", "status": "skipped"})
        return None

    author_name = decode_display_name(item.get("author")) or decode_display_name(item.get("authorName"))
    text = _first_present(item, TEXT_FIELDS)
    created_at = _first_present(item, CREATED_AT_FIELDS)

    post = Post(
        url=normalize_url(post_url) or post_url.strip(),
        text=text if isinstance(text, str) else "",
        author=author_name,
        created_at=str(created_at) if created_at is not None else None,
        reaction_count=_parse_count(_first_present(item, REACTION_FIELDS)),
        comment_count=_parse_count(_first_present(item, COMMENT_FIELDS)),
    )
    return MappedItem(profile_url=_profile_url_of(item), post=post, author_name=author_name)
