from __future__ import annotations

from typing import Any, Dict


_REGISTRY: Dict[str, Any] = {}

DEFAULT_SOURCE = "apify_linkedin_posts"


def register(name: str, factory) -> None:
    _REGISTRY[name] = factory


def get_source(name: str = DEFAULT_SOURCE, **kwargs: Any):
    if name not in _REGISTRY:
        raise KeyError(f"Unknown source: {name}")
    return _REGISTRY[name](**kwargs)


def available_sources() -> Dict[str, Any]:
    return dict(_REGISTRY)
