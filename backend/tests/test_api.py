"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from pos_search.config import Settings
from pos_search.main import create_app


@pytest.fixture
def client(engine, tmp_path):
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'unused.db'}")
    with TestClient(create_app(settings=settings, engine=engine)) as c:
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_trace_id_echoed(client):
    r = client.get("/health", headers={"X-Trace-Id": "till-7"})
    assert r.headers["X-Trace-Id"] == "till-7"


def test_get_and_post_search_agree(client, engine):
    got = client.get("/v1/search", params={"q": "gita", "priceMax": "300", "sort": "price_asc"})
    posted = client.post("/v1/search", json={"text": "gita", "filters": {"priceMax": 300}, "sortBy": "price_asc"})
    assert got.status_code == 200
    assert posted.status_code == 200
    assert got.json()["hits"] == posted.json()["hits"]
    body = got.json()
    assert body["total"] == 1
    assert body["hits"][0]["entry_id"] == "p-gita"
    assert body["hits"][0]["name"] == "Bhagavad Gita As It Is"
    assert body["event_id"]
    assert engine.recorder.drain(timeout=5)


def test_search_with_bad_sort_is_400(client):
    r = client.get("/v1/search", params={"q": "gita", "sort": "random"})
    assert r.status_code == 400
    assert r.json()["field"] == "sortBy"
    assert "trace_id" in r.json()


def test_search_with_negative_offset_is_400(client):
    r = client.post("/v1/search", json={"text": "gita", "offset": -1})
    assert r.status_code == 400


def test_malformed_filters_still_search(client):
    r = client.get("/v1/search", params={"q": "gita", "attributes": "{oops"})
    assert r.status_code == 200
    assert r.json()["total"] == 1


def test_user_id_header_recorded(client, engine):
    r = client.get("/v1/search", params={"q": "mala", "lang": "hi"}, headers={"X-User-Id": "cashier-9"})
    assert r.status_code == 200
    assert engine.recorder.drain(timeout=5)
    assert engine.analytics.get_event(r.json()["event_id"]).user_id == "cashier-9"


def test_suggestions_endpoint(client, engine):
    client.get("/v1/search", params={"q": "gita"})
    assert engine.recorder.drain(timeout=5)
    r = client.get("/v1/search/suggestions", params={"q": "gi"})
    assert r.json() == {"query": "gi", "language": "en", "suggestions": ["gita"]}
    assert client.get("/v1/search/suggestions", params={"q": "g"}).json()["suggestions"] == []


def test_click_flow_and_ctr(client, engine):
    event_id = client.post("/v1/search/events/search", json={"queryText": "ghee", "resultCount": 2}).json()["event_id"]
    r = client.post("/v1/search/events/click", json={"eventId": event_id, "entryId": "p-ghee"})
    assert r.status_code == 200
    assert r.json()["click_id"]

    r = client.get("/v1/search/analytics", params={"type": "click-through"})
    assert r.status_code == 200
    assert r.json()["data"] == [{"query": "ghee", "searches": 1, "clicks": 1, "ctr": 1.0}]


def test_click_on_unknown_event_is_404(client):
    r = client.post("/v1/search/events/click", json={"eventId": "nope", "entryId": "p-gita"})
    assert r.status_code == 404


def test_generic_event_endpoint(client):
    r = client.post("/v1/search/events", json={"type": "search", "query": "tulsi", "resultCount": 0})
    assert r.status_code == 200
    assert "event_id" in r.json()
    assert client.post("/v1/search/events", json={"type": "refund"}).status_code == 400


def test_trends_endpoint(client):
    r = client.get("/v1/search/analytics", params={"type": "trends", "days": 7})
    body = r.json()
    assert r.status_code == 200
    assert len(body["data"]) == 7
    assert body["data"][0].keys() == {"date", "count", "unique_queries"}


def test_unknown_analytics_type_is_400(client):
    r = client.get("/v1/search/analytics", params={"type": "revenue"})
    assert r.status_code == 400


@pytest.mark.parametrize(
    "params",
    [
        {"type": "trends", "days": 0},
        {"type": "trends", "days": 4000},
        {"type": "popular", "days": "abc"},
        {"type": "popular", "limit": -1},
    ],
)
def test_bad_analytics_bounds_are_400(client, params):
    r = client.get("/v1/search/analytics", params=params)
    assert r.status_code == 400
    assert "trace_id" in r.json()


def test_search_response_includes_suggestions(client, engine):
    client.get("/v1/search", params={"q": "mala"})
    assert engine.recorder.drain(timeout=5)
    assert client.get("/v1/search", params={"q": "ma"}).json()["suggestions"] == ["mala"]


def test_prune_endpoint(client):
    r = client.post("/v1/search/maintenance/prune")
    assert r.json() == {"events": 0, "clicks": 0, "suggestions": 0}
