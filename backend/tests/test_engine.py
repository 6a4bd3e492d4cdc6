"""Tests for the search facade."""

import pytest

from pos_search.core.exceptions import InvalidQueryError, StoreUnavailableError
from pos_search.services.catalog.base import CatalogSource
from pos_search.services.engine import SearchEngine
from pos_search.services.recording import BackgroundRecorder


class DownCatalog(CatalogSource):
    def entries(self, *, language=None, category_ids=None, active_only=True):
        raise ConnectionError("catalog host unreachable")


class BrokenSuggestions:
    def suggest(self, *args, **kwargs):
        return []

    def record(self, *args, **kwargs):
        raise RuntimeError("suggestion table locked")


def test_search_returns_hits_and_event(engine):
    result = engine.search({"text": "Gita"}, user_id="cashier-1")
    assert [h.entry_id for h in result.hits] == ["p-gita"]
    assert result.total == 1
    assert result.query == "Gita"
    assert result.normalized_query == "gita"
    assert result.trace_id
    assert engine.recorder.drain(timeout=5)

    event = engine.analytics.get_event(result.event_id)
    assert event.result_count == 1
    assert event.user_id == "cashier-1"


def test_suggestions_follow_searches(engine):
    assert engine.get_suggestions("g", "en", 10) == []
    engine.search({"text": "gita"})
    assert engine.recorder.drain(timeout=5)
    assert engine.get_suggestions("g", "en", 10) == []
    assert engine.get_suggestions("gi", "en", 10) == ["gita"]
    assert engine.get_suggestions("gi", "hi", 10) == []


def test_search_result_carries_suggestions(engine):
    first = engine.search({"text": "gita"})
    assert first.suggestions == []
    assert engine.recorder.drain(timeout=5)
    assert engine.search({"text": "gi"}).suggestions == ["gita"]
    assert engine.search({}).suggestions == []


def test_exclusion_only_search(engine):
    result = engine.search({"text": "-gita"}, track=False)
    assert [h.entry_id for h in result.hits] == ["p-bhag"]


def test_browse_records_nothing(engine):
    result = engine.search({"filters": {"priceMin": 300}})
    assert [h.entry_id for h in result.hits] == ["p-bhag"]
    assert result.event_id is None
    assert engine.recorder.drain(timeout=5)
    assert engine.analytics.popular_searches() == []


def test_tracking_can_be_disabled_per_call(engine):
    result = engine.search({"text": "gita"}, track=False)
    assert result.event_id is None
    assert engine.recorder.drain(timeout=5)
    assert engine.analytics.popular_searches() == []
    assert engine.get_suggestions("gi") == ["gita"]


def test_no_result_search_is_tracked(engine):
    result = engine.search({"text": "camphor"})
    assert result.total == 0
    assert engine.recorder.drain(timeout=5)
    assert [r.query for r in engine.get_analytics("no-results")] == ["camphor"]


def test_background_failure_does_not_fail_search(catalog, analytics, clock):
    engine = SearchEngine(
        catalog=catalog,
        suggestions=BrokenSuggestions(),
        analytics=analytics,
        recorder=BackgroundRecorder(max_workers=1),
        clock=clock,
    )
    result = engine.search({"text": "gita"})
    assert result.total == 1
    assert engine.recorder.drain(timeout=5)
    assert engine.recorder.failed == 1
    assert engine.analytics.get_event(result.event_id).normalized_text == "gita"
    engine.close()


def test_catalog_outage_is_store_unavailable(suggestions, analytics):
    engine = SearchEngine(catalog=DownCatalog(), suggestions=suggestions, analytics=analytics)
    with pytest.raises(StoreUnavailableError):
        engine.search({"text": "gita"})
    engine.close()


def test_invalid_request_rejected_before_any_write(engine):
    with pytest.raises(InvalidQueryError):
        engine.search({"text": "gita", "sortBy": "random"})
    assert engine.recorder.drain(timeout=5)
    assert engine.get_suggestions("gi") == []


def test_popularity_sort_uses_recorded_clicks(engine):
    first = engine.search({"text": "bhag"})
    assert engine.recorder.drain(timeout=5)
    engine.record_click_event(first.event_id, "p-gita")
    engine.record_click_event(first.event_id, "p-gita")

    ranked = engine.search({"text": "bhag", "sortBy": "popularity"})
    assert [h.entry_id for h in ranked.hits] == ["p-gita", "p-bhag"]
    assert [h.entry_id for h in first.hits] == ["p-bhag", "p-gita"]


def test_ingest_event_dispatch(engine):
    created = engine.ingest_event({"type": "search", "queryText": "mala", "resultCount": 2})
    clicked = engine.ingest_event({"type": "Click", "eventId": created["event_id"], "entryId": "p-mala"})
    assert set(clicked) == {"click_id"}
    assert engine.analytics.get_event(created["event_id"]).clicked_entry_id == "p-mala"
    with pytest.raises(InvalidQueryError):
        engine.ingest_event({"type": "purchase"})


@pytest.mark.parametrize("kind", ["popular", "no-results", "trends", "click-through"])
def test_analytics_kinds(engine, kind):
    assert isinstance(engine.get_analytics(kind, 10, 7), list)


def test_unknown_analytics_kind(engine):
    with pytest.raises(InvalidQueryError) as exc:
        engine.get_analytics("revenue", 10, 7)
    assert "popular" in exc.value.details["allowed"]


def test_trends_have_window_points(engine):
    assert len(engine.get_analytics("trends", 10, 7)) == 7


def test_prune_is_noop_with_unbounded_retention(engine):
    engine.search({"text": "gita"})
    assert engine.recorder.drain(timeout=5)
    assert engine.prune() == {"events": 0, "clicks": 0, "suggestions": 0}


def test_prune_applies_retention(catalog, suggestions, analytics, clock):
    engine = SearchEngine(
        catalog=catalog,
        suggestions=suggestions,
        analytics=analytics,
        event_retention_days=7,
        suggestion_retention_days=7,
        clock=clock,
    )
    engine.search({"text": "gita"})
    assert engine.recorder.drain(timeout=5)
    clock.advance(days=8)
    assert engine.prune() == {"events": 1, "clicks": 0, "suggestions": 1}
    assert engine.get_suggestions("gi") == []
    engine.close()
