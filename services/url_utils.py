from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse


_PROFILE_MARKERS = ("/in/", "/company/", "/school/", "/showcase/")
_POST_MARKERS = ("/posts/", "/feed/update/", "/pulse/")


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Canonicalize a profile/post URL for exact comparison.

    Trims whitespace, coerces a missing scheme to https and strips the query
    string and fragment. Case is preserved; matching folds case itself.
    """
    if url is None:
        return None
    text = str(url).strip()
    if not text:
        return None
    if not text.lower().startswith(("http://", "https://")):
        text = f"https://{text}"
    text = text.split("?", 1)[0].split("#", 1)[0]
    return text


def _path(url: Optional[str]) -> str:
    if not url:
        return ""
    normalized = normalize_url(url) or ""
    try:
        return (urlparse(normalized).path or "").lower()
    except ValueError:
        return ""


def is_profile_url(url: Optional[str]) -> bool:
    path = _path(url)
    return any(marker in path for marker in _PROFILE_MARKERS)


def is_post_url(url: Optional[str]) -> bool:
    path = _path(url)
    return any(marker in path for marker in _POST_MARKERS)


def last_path_segment(url: Optional[str]) -> str:
    """Final non-empty path segment, lowercased ('' when there is none)."""
    parts = [p for p in _path(url).split("/") if p]
    return parts[-1] if parts else ""


def extract_profile_slug(url: Optional[str]) -> str:
    """Slug identifying the profile a URL belongs to.

    For profile URLs this is the last path segment. Post URLs look like
    ``/posts/jane-doe_some-title-activity-123`` and carry the author's slug
    before the first underscore.
    """
    segment = last_path_segment(url)
    if is_post_url(url) and "_" in segment:
        return segment.split("_", 1)[0]
    return segment
