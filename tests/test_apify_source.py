from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from errors import ConfigurationError, ExtractionError
from sources.apify_posts import ApifyPostsSource


class FakeActor:
    def __init__(self, owner: "FakeApifyClient"):
        self.owner = owner

    def call(self, run_input: Dict[str, Any]):
        self.owner.run_inputs.append(run_input)
        number = len(self.owner.run_inputs)
        if number in self.owner.fail_on:
            raise RuntimeError("actor crashed")
        return {"id": f"run-{number}", "status": "SUCCEEDED", "defaultDatasetId": f"ds-{number}"}


class FakeApifyClient:
    def __init__(self, fail_on=()):
        self.run_inputs: List[Dict[str, Any]] = []
        self.actor_ids: List[str] = []
        self.fail_on = set(fail_on)

    def actor(self, actor_id: str):
        self.actor_ids.append(actor_id)
        return FakeActor(self)

    def dataset(self, dataset_id: str):
        urls = self.run_inputs[-1]["targetUrls"]
        items = [{"profileUrl": u, "postUrl": f"{u}/post", "datasetId": dataset_id} for u in urls]
        return SimpleNamespace(list_items=lambda: SimpleNamespace(items=items))


def test_chunks_and_delays(make_settings):
    sleeps = []
    client = FakeApifyClient()
    source = ApifyPostsSource(make_settings(apify_batch_size=2, apify_batch_delay_seconds=1.5, apify_actor_id="actor-x"), client=client, sleep=sleeps.append)
    urls = [f"https://www.linkedin.com/in/user-{i}" for i in range(5)]

    result = source.submit_extraction_batch(urls)

    assert result.batches_processed == 3
    assert result.total_items == 5
    assert [r["targetUrls"] for r in client.run_inputs] == [urls[0:2], urls[2:4], urls[4:5]]
    assert sleeps == [1.5, 1.5]
    assert client.actor_ids == ["actor-x"] * 3


def test_run_input_carries_options(make_settings):
    source = ApifyPostsSource(make_settings(max_posts=3, scrape_comments=True, max_comments=9), client=FakeApifyClient())
    run_input = source.build_run_input(["https://www.linkedin.com/in/a"])
    assert run_input["maxPosts"] == 3
    assert run_input["scrapeComments"] is True
    assert run_input["maxComments"] == 9
    assert run_input["targetUrls"] == ["https://www.linkedin.com/in/a"]


def test_empty_url_list_is_rejected(make_settings):
    with pytest.raises(ExtractionError):
        ApifyPostsSource(make_settings(), client=FakeApifyClient()).submit_extraction_batch([])


def test_chunk_failure_fails_whole_request(make_settings):
    source = ApifyPostsSource(make_settings(apify_batch_size=1), client=FakeApifyClient(fail_on={2}), sleep=lambda s: None)
    with pytest.raises(ExtractionError) as exc:
        source.submit_extraction_batch(["https://www.linkedin.com/in/a", "https://www.linkedin.com/in/b"])
    assert "batch 2/2" in str(exc.value)


def test_missing_token_is_a_configuration_error(make_settings):
    source = ApifyPostsSource(make_settings(apify_api_token=None))
    with pytest.raises(ConfigurationError):
        source.submit_extraction_batch(["https://www.linkedin.com/in/a"])


def test_non_object_dataset_items_are_passed_through(make_settings):
    class OddClient(FakeApifyClient):
        def dataset(self, dataset_id):
            items = ["not-an-object", {"postUrl": "https://www.linkedin.com/posts/a_b-activity-1"}]
            return SimpleNamespace(list_items=lambda: SimpleNamespace(items=items))

    source = ApifyPostsSource(make_settings(), client=OddClient())
    result = source.submit_extraction_batch(["https://www.linkedin.com/in/a"])

    assert result.total_items == 2
    assert result.raw_items[0] == "not-an-object"

    from services.reconciliation import reconcile
    groups = reconcile(result.raw_items, [])
    assert [len(g.posts) for g in groups] == [1]
