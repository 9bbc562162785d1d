from __future__ import annotations

import pytest


def test_builtin_sources_registered(make_settings):
    # Import package to trigger registration
    import sources  # noqa: F401
    from sources.registry import DEFAULT_SOURCE, available_sources, get_source

    assert DEFAULT_SOURCE in available_sources()

    settings = make_settings(max_posts=2)
    src = get_source(DEFAULT_SOURCE, settings=settings)
    assert src.source_name == "apify_linkedin_posts"
    assert src.settings is settings


def test_unknown_source_raises():
    from sources.registry import get_source
    with pytest.raises(KeyError):
        get_source("does_not_exist")
