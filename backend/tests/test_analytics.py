"""Tests for search/click recording and analytics rollups."""

from datetime import date, timedelta

import pytest

from pos_search.core.exceptions import InvalidQueryError, NotFoundError
from pos_search.services.analytics.aggregator import AnalyticsAggregator


def test_search_click_round_trip(analytics):
    event_id = analytics.record_search("Gita", 3, "cashier-1")
    analytics.record_click(event_id, "p-gita")

    event = analytics.get_event(event_id)
    assert event.query_text == "Gita"
    assert event.normalized_text == "gita"
    assert event.result_count == 3
    assert event.user_id == "cashier-1"
    assert event.clicked_entry_id == "p-gita"

    rows = analytics.click_through_rates()
    assert len(rows) == 1
    assert (rows[0].query, rows[0].searches, rows[0].clicks, rows[0].ctr) == ("gita", 1, 1, 1.0)


def test_latest_click_wins(analytics, clock):
    event_id = analytics.record_search("gita", 2)
    analytics.record_click(event_id, "p-gita")
    clock.advance(seconds=10)
    analytics.record_click(event_id, "p-bhag")
    assert analytics.get_event(event_id).clicked_entry_id == "p-bhag"
    assert analytics.click_through_rates()[0].clicks == 1


def test_ctr_is_fraction(analytics):
    clicked = analytics.record_search("ghee", 4)
    analytics.record_search("ghee", 4)
    analytics.record_search("ghee", 0)
    analytics.record_search("ghee", 1)
    analytics.record_click(clicked, "p-ghee")
    row = analytics.click_through_rates()[0]
    assert row.searches == 4
    assert row.ctr == 0.25


def test_ctr_none_when_no_searches_in_window(analytics, clock):
    event_id = analytics.record_search("gita", 1, occurred_at=clock.now - timedelta(days=40))
    analytics.record_click(event_id, "p-gita")
    rows = analytics.click_through_rates(window_days=30)
    assert len(rows) == 1
    assert rows[0].searches == 0
    assert rows[0].clicks == 0
    assert rows[0].ctr is None


def test_ctr_ignores_clicks_on_searches_before_window(analytics, clock):
    old = analytics.record_search("gita", 1, occurred_at=clock.now - timedelta(days=40))
    analytics.record_click(old, "p-gita")
    recent = analytics.record_search("gita", 1)
    analytics.record_click(recent, "p-gita")

    [row] = analytics.click_through_rates(window_days=30)
    assert (row.searches, row.clicks) == (1, 1)
    assert row.ctr == 1.0
    assert row.clicks <= row.searches


def test_ctr_min_searches_hides_sparse_queries(database, clock):
    agg = AnalyticsAggregator(database, ctr_min_searches=2, clock=clock)
    agg.record_search("gita", 1)
    agg.record_search("mala", 1)
    agg.record_search("mala", 1)
    assert [r.query for r in agg.click_through_rates()] == ["mala"]


def test_trends_always_have_one_point_per_day(analytics, clock):
    analytics.record_search("gita", 1)
    analytics.record_search("gita", 1)
    analytics.record_search("mala", 0, occurred_at=clock.now - timedelta(days=2))
    analytics.record_search("ancient", 0, occurred_at=clock.now - timedelta(days=30))

    points = analytics.search_trends(7)
    assert len(points) == 7
    assert points[0].date == date(2026, 3, 4)
    assert points[-1].date == date(2026, 3, 10)
    assert [p.date for p in points] == [date(2026, 3, 4) + timedelta(days=i) for i in range(7)]
    assert [p.count for p in points] == [0, 0, 0, 0, 1, 0, 2]
    assert points[-1].unique_queries == 1


def test_trends_with_no_events(analytics):
    points = analytics.search_trends(3)
    assert len(points) == 3
    assert all(p.count == 0 and p.unique_queries == 0 for p in points)


def test_popular_searches(analytics, clock):
    analytics.record_search("Gita", 4)
    analytics.record_search("gita", 2)
    analytics.record_search("mala", 1)
    clock.advance(minutes=1)
    analytics.record_search("ghee", 0)

    rows = analytics.popular_searches(10)
    assert [r.query for r in rows] == ["gita", "ghee", "mala"]
    assert rows[0].count == 2
    assert rows[0].avg_results == 3.0
    assert analytics.popular_searches(1)[0].query == "gita"


def test_no_result_searches(analytics):
    analytics.record_search("xyz soap", 0)
    analytics.record_search("XYZ  soap", 0)
    analytics.record_search("gita", 3)
    rows = analytics.no_result_searches()
    assert [(r.query, r.count) for r in rows] == [("xyz soap", 2)]


def test_window_excludes_old_events(analytics, clock):
    analytics.record_search("old", 1, occurred_at=clock.now - timedelta(days=10))
    analytics.record_search("new", 1)
    assert [r.query for r in analytics.popular_searches(10, window_days=7)] == ["new"]


def test_click_on_unknown_event(analytics):
    with pytest.raises(NotFoundError):
        analytics.record_click("missing", "p-gita")


def test_click_on_expired_event(database, clock):
    agg = AnalyticsAggregator(database, retention_days=30, clock=clock)
    event_id = agg.record_search("gita", 1, occurred_at=clock.now - timedelta(days=31))
    with pytest.raises(NotFoundError):
        agg.record_click(event_id, "p-gita")


@pytest.mark.parametrize(
    "args",
    [("", 1), ("   ", 1), ("gita", -1), ("gita", "3"), (None, 0)],
)
def test_record_search_validation(analytics, args):
    with pytest.raises(InvalidQueryError):
        analytics.record_search(*args)


def test_click_requires_ids(analytics):
    event_id = analytics.record_search("gita", 1)
    with pytest.raises(InvalidQueryError):
        analytics.record_click(event_id, " ")
    with pytest.raises(InvalidQueryError):
        analytics.record_click(None, "p-gita")


@pytest.mark.parametrize("days", [0, -1, 4000, "7"])
def test_bad_window_rejected(analytics, days):
    with pytest.raises(InvalidQueryError):
        analytics.search_trends(days)


def test_negative_limit_rejected(analytics):
    with pytest.raises(InvalidQueryError):
        analytics.popular_searches(-1)


def test_entry_popularity(analytics):
    e1 = analytics.record_search("gita", 2)
    e2 = analytics.record_search("gita", 2)
    analytics.record_click(e1, "p-gita")
    analytics.record_click(e2, "p-gita")
    analytics.record_click(e2, "p-bhag")
    assert analytics.entry_popularity() == {"p-gita": 2, "p-bhag": 1}


def test_prune_deletes_old_events_and_clicks(analytics, clock):
    old = analytics.record_search("old", 1, occurred_at=clock.now - timedelta(days=60))
    analytics.record_click(old, "p-gita")
    keep = analytics.record_search("new", 1)

    result = analytics.prune(clock.now - timedelta(days=30))
    assert result == {"events": 1, "clicks": 1}
    with pytest.raises(NotFoundError):
        analytics.get_event(old)
    assert analytics.get_event(keep).query_text == "new"
