from __future__ import annotations

import json as _json
from typing import Any, Dict, List

import pytest

from crm.client import HubSpotClient
from crm.repos import ContactsRepo, DealsRepo
from crm.repos.deals_repo import build_deal_description
from errors import ConfigurationError, CRMError
from models import Post


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else _json.dumps(payload).encode("utf-8")
        self.text = self.content.decode("utf-8")

    def json(self):
        return self._payload


class FakeSession:
    """Replays queued responses per (method, path-suffix) and records calls."""

    def __init__(self):
        self.headers: Dict[str, str] = {}
        self.routes: Dict[tuple, List[FakeResponse]] = {}
        self.calls: List[Dict[str, Any]] = []

    def add(self, method: str, path: str, *responses: FakeResponse) -> None:
        self.routes.setdefault((method, path), []).extend(responses)

    def request(self, method, url, params=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "json": json})
        for (m, path), queue in self.routes.items():
            if m == method and url.endswith(path) and queue:
                return queue.pop(0) if len(queue) > 1 else queue[0]
        return FakeResponse(404, {"message": "not found"})


def _contact(vid, url, first="", last="", processed=None):
    props = {"linkedin": {"value": url}, "firstname": {"value": first}, "lastname": {"value": last}}
    if processed is not None:
        props["scrapeado_linkedin"] = {"value": processed}
    return {"vid": vid, "properties": props}


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(make_settings, session):
    return HubSpotClient(make_settings(hubspot_list_id="77"), session=session, sleep=lambda s: None)


def test_client_requires_token(make_settings):
    with pytest.raises(ConfigurationError):
        HubSpotClient(make_settings(hubspot_token=None), session=FakeSession())


def test_client_sets_bearer_header(client, session):
    assert session.headers["Authorization"] == "Bearer test-token"


def test_client_retries_on_429_then_succeeds(make_settings, session):
    sleeps = []
    client = HubSpotClient(make_settings(), session=session, sleep=sleeps.append)
    session.add("GET", "/thing", FakeResponse(429, {"m": "slow"}), FakeResponse(200, {"ok": True}))
    assert client.get("/thing") == {"ok": True}
    assert sleeps == [1]
    assert client.api_calls_made == 2


def test_client_raises_on_client_error(client, session):
    session.add("GET", "/bad", FakeResponse(400, {"message": "bad"}))
    with pytest.raises(CRMError) as exc:
        client.get("/bad")
    assert exc.value.status_code == 400


def test_contacts_paginate_and_filter(client, session):
    path = "/contacts/v1/lists/77/contacts/all"
    session.add(
        "GET",
        path,
        FakeResponse(200, {
            "contacts": [
                _contact(1, "https://www.linkedin.com/in/jane-doe?trk=x", "Jane", "Doe"),
                _contact(2, "https://example.com/jane"),
            ],
            "has-more": True,
            "vid-offset": 2,
        }),
        FakeResponse(200, {
            "contacts": [
                _contact(3, "linkedin.com/in/john-smith", "John", "Smith", processed="true"),
                _contact(4, "https://www.linkedin.com/company/acme", processed="false"),
            ],
            "has-more": False,
        }),
    )
    repo = ContactsRepo(client)
    profiles = repo.fetch_unprocessed_profiles()

    assert [p.id for p in profiles] == ["1", "4"]
    assert profiles[0].canonical_url == "https://www.linkedin.com/in/jane-doe"
    assert profiles[0].display_name == "Jane Doe"
    assert profiles[1].display_name is None
    second_params = session.calls[1]["params"]
    assert ("vidOffset", "2") in second_params
    assert ("property", "scrapeado_linkedin") in second_params


def test_missing_list_is_a_hard_error(client, session):
    with pytest.raises(CRMError) as exc:
        ContactsRepo(client).fetch_unprocessed_profiles()
    assert exc.value.status_code == 404


def test_all_processed(client, session):
    session.add("GET", "/contacts/v1/lists/77/contacts/all", FakeResponse(200, {
        "contacts": [_contact(1, "https://www.linkedin.com/in/jane-doe", processed="true")],
        "has-more": False,
    }))
    assert ContactsRepo(client).all_processed() is True


def test_all_processed_false_for_empty_list(client, session):
    session.add("GET", "/contacts/v1/lists/77/contacts/all", FakeResponse(200, {"contacts": [], "has-more": False}))
    assert ContactsRepo(client).all_processed() is False


def test_mark_and_reset(client, session):
    session.add("GET", "/contacts/v1/lists/77/contacts/all", FakeResponse(200, {
        "contacts": [
            _contact(1, "https://www.linkedin.com/in/jane-doe", processed="true"),
            _contact(2, "https://www.linkedin.com/in/john-smith", processed="false"),
        ],
        "has-more": False,
    }))
    session.add("PATCH", "/crm/v3/objects/contacts/1", FakeResponse(200, {"id": "1"}))
    session.add("POST", "/crm/v3/objects/contacts/batch/update", FakeResponse(200, {"status": "COMPLETE"}))
    repo = ContactsRepo(client)

    assert repo.mark_profile_processed("1") is True
    patch = [c for c in session.calls if c["method"] == "PATCH"][0]
    assert patch["json"] == {"properties": {"scrapeado_linkedin": "true"}}

    assert repo.reset_all_processed() is True
    batch = [c for c in session.calls if c["url"].endswith("/batch/update")][0]
    assert batch["json"] == {"inputs": [{"id": "1", "properties": {"scrapeado_linkedin": "false"}}]}


def test_mark_failure_returns_false(client, session):
    assert ContactsRepo(client).mark_profile_processed("999") is False


def test_deal_description_truncates_text():
    post = Post(url="https://www.linkedin.com/posts/a_b-activity-1", text="x" * 1200, created_at="2024-05-01")
    text = build_deal_description(post, None, "Jane Doe")
    assert "Author/Profile: Jane Doe" in text
    assert "Profile URL: Not available" in text
    assert "Post URL: https://www.linkedin.com/posts/a_b-activity-1" in text
    assert ("x" * 1000 + "...") in text
    assert "Posted at: 2024-05-01" in text


def test_create_deal(make_settings, session):
    client = HubSpotClient(make_settings(hubspot_deal_stage_id="12345"), session=session, sleep=lambda s: None)
    session.add("POST", "/crm/v3/objects/deals/search", FakeResponse(200, {"results": []}))
    session.add("POST", "/crm/v3/objects/deals", FakeResponse(201, {"id": "555"}))
    post = Post(url="https://www.linkedin.com/posts/a_b-activity-1", text="hello")

    record = DealsRepo(client).create_sink_record(post, "https://www.linkedin.com/in/a", "Jane Doe")

    assert record.id == "555"
    assert record.duplicate is False
    create = [c for c in session.calls if c["url"].endswith("/crm/v3/objects/deals")][0]
    props = create["json"]["properties"]
    assert props["dealname"] == "Jane Doe - LinkedIn post"
    assert props["dealstage"] == "12345"
    assert props["pipeline"] == "811215668"
    assert props["amount"] == "0"


def test_existing_deal_is_reported_as_duplicate(client, session):
    url = "https://www.linkedin.com/posts/a_b-activity-1"
    session.add("POST", "/crm/v3/objects/deals/search", FakeResponse(200, {
        "results": [{"id": "42", "properties": {"description": f"Post URL: {url}"}}],
    }))
    record = DealsRepo(client).create_sink_record(Post(url=url), "https://www.linkedin.com/in/a", "Jane")
    assert record.duplicate is True
    assert record.id == "42"
    assert not any(c["url"].endswith("/crm/v3/objects/deals") for c in session.calls)


def test_stage_resolved_from_pipeline(client, session):
    session.add("POST", "/crm/v3/objects/deals/search", FakeResponse(200, {"results": []}))
    session.add("GET", "/crm/v3/pipelines/deals", FakeResponse(200, {
        "results": [{"id": "811215668", "stages": [{"id": "900"}, {"id": "901"}]}],
    }))
    session.add("POST", "/crm/v3/objects/deals", FakeResponse(201, {"id": "1"}))
    DealsRepo(client).create_sink_record(Post(url="https://www.linkedin.com/posts/a_b-activity-2"), "u", "Jane")
    create = [c for c in session.calls if c["url"].endswith("/crm/v3/objects/deals")][0]
    assert create["json"]["properties"]["dealstage"] == "900"


def test_create_failure_returns_none(client, session):
    session.add("POST", "/crm/v3/objects/deals/search", FakeResponse(200, {"results": []}))
    session.add("GET", "/crm/v3/pipelines/deals", FakeResponse(200, {"results": []}))
    session.add("POST", "/crm/v3/objects/deals", FakeResponse(400, {"message": "invalid"}))
    assert DealsRepo(client).create_sink_record(Post(url="https://www.linkedin.com/posts/a_b-activity-3"), "u", "Jane") is None
