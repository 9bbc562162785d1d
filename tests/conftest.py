from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'pipelines.steps.check_quota'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")
    os.environ.setdefault("RUN_TRACE", "false")


@pytest.fixture
def make_settings(tmp_path):
    """Build a Settings object without touching the environment."""
    from config.settings import get_settings

    def _make(**overrides: Any):
        base = get_settings()
        values: Dict[str, Any] = {
            "hubspot_token": "test-token",
            "apify_api_token": "apify-test-token",
            "rate_limit_file": str(tmp_path / "rate-limit.json"),
            "rate_limit_timezone": "UTC",
            "max_profiles_per_day": 50,
            "apify_batch_size": 10,
            "apify_batch_delay_seconds": 0,
            "max_retries": 3,
            "log_dir": None,
            "run_trace": False,
            "run_log_path": str(tmp_path / "runs.jsonl"),
            "run_env": "test",
            "scrape_interval_minutes": 0,
            "run_on_startup": False,
        }
        values.update(overrides)
        return dataclasses.replace(base, **values)

    return _make


class StubSource:
    """In-memory profile source recording every mark/reset call."""

    def __init__(self, profiles=None, all_processed: bool = False, fail_mark_ids=()):
        self.profiles = list(profiles or [])
        self._all_processed = all_processed
        self.fail_mark_ids = set(fail_mark_ids)
        self.marked: List[str] = []
        self.resets = 0
        self.fetch_calls = 0

    def fetch_unprocessed_profiles(self):
        self.fetch_calls += 1
        return [p for p in self.profiles if not p.processed]

    def mark_profile_processed(self, profile_id: str) -> bool:
        if profile_id in self.fail_mark_ids:
            return False
        self.marked.append(profile_id)
        return True

    def reset_all_processed(self) -> bool:
        self.resets += 1
        return True

    def all_processed(self) -> bool:
        return self._all_processed


class StubExtractor:
    source_name = "stub"

    def __init__(self, items=None, error: Optional[Exception] = None):
        self.items = list(items or [])
        self.error = error
        self.calls: List[List[str]] = []

    def submit_extraction_batch(self, urls):
        from models import ExtractionBatchResult
        self.calls.append(list(urls))
        if self.error is not None:
            raise self.error
        return ExtractionBatchResult(raw_items=self.items, total_items=len(self.items), batches_processed=1)


class StubSink:
    """Sink that saves everything except configured post URLs."""

    def __init__(self, fail_urls=(), duplicate_urls=(), none_urls=()):
        self.fail_urls = set(fail_urls)
        self.duplicate_urls = set(duplicate_urls)
        self.none_urls = set(none_urls)
        self.written: List[tuple] = []

    def create_sink_record(self, post, profile_url, display_name):
        from models import SinkRecord
        if post.url in self.fail_urls:
            raise RuntimeError(f"boom for {post.url}")
        if post.url in self.none_urls:
            return None
        if post.url in self.duplicate_urls:
            return SinkRecord(id="existing-1", duplicate=True)
        self.written.append((post.url, profile_url, display_name))
        return SinkRecord(id=f"deal-{len(self.written)}", name=f"{display_name} - LinkedIn post")


@pytest.fixture
def stub_source_cls():
    return StubSource


@pytest.fixture
def stub_extractor_cls():
    return StubExtractor


@pytest.fixture
def stub_sink_cls():
    return StubSink
