"""Analytics aggregator - append-only search/click log and read-time rollups."""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import case, delete, distinct, func, select

from pos_search.core.clock import Clock, utcnow
from pos_search.core.exceptions import InvalidQueryError, NotFoundError
from pos_search.core.logging import get_logger
from pos_search.db.models import SearchClick, SearchEvent
from pos_search.db.session import Database
from pos_search.services.search.normalizer import display_text, normalize_text

logger = get_logger("pos_search.services.analytics.aggregator")

MAX_WINDOW_DAYS = 3650


@dataclass(frozen=True)
class SearchEventView:
    id: str
    query_text: str
    normalized_text: str
    language: str
    result_count: int
    user_id: str | None
    timestamp: datetime
    clicked_entry_id: str | None = None


@dataclass(frozen=True)
class PopularQuery:
    query: str
    count: int
    avg_results: float
    last_searched_at: datetime


@dataclass(frozen=True)
class NoResultQuery:
    query: str
    count: int
    last_searched_at: datetime


@dataclass(frozen=True)
class TrendPoint:
    date: date
    count: int
    unique_queries: int


@dataclass(frozen=True)
class ClickThroughRow:
    query: str
    searches: int
    clicks: int
    ctr: float | None


def _new_id() -> str:
    return str(uuid.uuid4())


def _window(window_days: Any) -> int:
    if isinstance(window_days, bool) or not isinstance(window_days, int):
        raise InvalidQueryError("windowDays must be an integer", details={"field": "windowDays"})
    if not 1 <= window_days <= MAX_WINDOW_DAYS:
        raise InvalidQueryError(
            f"windowDays must be between 1 and {MAX_WINDOW_DAYS}",
            details={"field": "windowDays"},
        )
    return window_days


class AnalyticsAggregator:
    """Records search and click events; computes rollups over a time window."""

    def __init__(
        self,
        database: Database,
        *,
        retention_days: int | None = None,
        ctr_min_searches: int = 1,
        max_limit: int = 100,
        clock: Clock = utcnow,
    ) -> None:
        self._db = database
        self.retention_days = retention_days
        self.ctr_min_searches = ctr_min_searches
        self.max_limit = max_limit
        self._clock = clock

    # ---- writes -------------------------------------------------------

    def record_search(
        self,
        query_text: str,
        result_count: int,
        user_id: str | None = None,
        *,
        language: str = "en",
        event_id: str | None = None,
        occurred_at: datetime | None = None,
    ) -> str:
        """Append a search event and return its id."""
        if not isinstance(query_text, str) or not normalize_text(query_text):
            raise InvalidQueryError("queryText is required", details={"field": "queryText"})
        if isinstance(result_count, bool) or not isinstance(result_count, int) or result_count < 0:
            raise InvalidQueryError(
                "resultCount must be a non-negative integer",
                details={"field": "resultCount"},
            )
        event = SearchEvent(
            id=event_id or _new_id(),
            query_text=display_text(query_text),
            normalized_text=normalize_text(query_text),
            language=language,
            result_count=result_count,
            user_id=user_id or None,
            created_at=occurred_at or self._clock(),
        )
        with self._db.session() as db:
            db.add(event)
        logger.debug("Recorded search event %s (%r, %d results)", event.id, event.normalized_text, result_count)
        return event.id

    def record_click(self, event_id: str, entry_id: str) -> str:
        """Correlate a click with a prior search event. Returns the click id."""
        if not isinstance(event_id, str) or not event_id.strip():
            raise InvalidQueryError("eventId is required", details={"field": "eventId"})
        if not entry_id or not str(entry_id).strip():
            raise InvalidQueryError("entryId is required", details={"field": "entryId"})
        now = self._clock()
        with self._db.session() as db:
            event = db.get(SearchEvent, event_id)
            if event is None:
                raise NotFoundError("Search event not found", details={"event_id": event_id})
            if self.retention_days is not None and event.created_at < now - timedelta(days=self.retention_days):
                raise NotFoundError("Search event expired", details={"event_id": event_id})
            click = SearchClick(id=_new_id(), event_id=event_id, entry_id=str(entry_id).strip(), created_at=now)
            db.add(click)
        logger.debug("Recorded click %s on %s for event %s", click.id, click.entry_id, event_id)
        return click.id

    def prune(self, older_than: datetime) -> dict[str, int]:
        """Delete events (and their clicks) older than older_than. Maintenance only."""
        with self._db.session() as db:
            old_events = select(SearchEvent.id).where(SearchEvent.created_at < older_than)
            clicks = db.execute(
                delete(SearchClick).where(
                    (SearchClick.event_id.in_(old_events)) | (SearchClick.created_at < older_than)
                )
            ).rowcount or 0
            events = db.execute(delete(SearchEvent).where(SearchEvent.created_at < older_than)).rowcount or 0
        logger.info("Pruned %d search events and %d clicks older than %s", events, clicks, older_than.isoformat())
        return {"events": events, "clicks": clicks}

    # ---- reads --------------------------------------------------------

    def get_event(self, event_id: str) -> SearchEventView:
        with self._db.session() as db:
            event = db.get(SearchEvent, event_id)
            if event is None:
                raise NotFoundError("Search event not found", details={"event_id": event_id})
            clicked = db.scalars(
                select(SearchClick.entry_id)
                .where(SearchClick.event_id == event_id)
                .order_by(SearchClick.created_at.desc(), SearchClick.id.desc())
                .limit(1)
            ).first()
            return SearchEventView(
                id=event.id,
                query_text=event.query_text,
                normalized_text=event.normalized_text,
                language=event.language,
                result_count=event.result_count,
                user_id=event.user_id,
                timestamp=event.created_at,
                clicked_entry_id=clicked,
            )

    def popular_searches(self, limit: int = 10, window_days: int = 30) -> list[PopularQuery]:
        """Top normalized queries by count, then most recent."""
        cutoff = self._cutoff(window_days)
        count = func.count(SearchEvent.id)
        last = func.max(SearchEvent.created_at)
        stmt = (
            select(SearchEvent.normalized_text, count, func.avg(SearchEvent.result_count), last)
            .where(SearchEvent.created_at >= cutoff)
            .group_by(SearchEvent.normalized_text)
            .order_by(count.desc(), last.desc(), SearchEvent.normalized_text.asc())
            .limit(self._limit(limit))
        )
        with self._db.session() as db:
            rows = db.execute(stmt).all()
        return [
            PopularQuery(query=q, count=int(n), avg_results=round(float(avg or 0), 2), last_searched_at=_as_datetime(ts))
            for q, n, avg, ts in rows
        ]

    def no_result_searches(self, limit: int = 10, window_days: int = 30) -> list[NoResultQuery]:
        """Queries that found nothing - catalog gaps."""
        cutoff = self._cutoff(window_days)
        count = func.count(SearchEvent.id)
        last = func.max(SearchEvent.created_at)
        stmt = (
            select(SearchEvent.normalized_text, count, last)
            .where(SearchEvent.created_at >= cutoff, SearchEvent.result_count == 0)
            .group_by(SearchEvent.normalized_text)
            .order_by(count.desc(), last.desc(), SearchEvent.normalized_text.asc())
            .limit(self._limit(limit))
        )
        with self._db.session() as db:
            rows = db.execute(stmt).all()
        return [NoResultQuery(query=q, count=int(n), last_searched_at=_as_datetime(ts)) for q, n, ts in rows]

    def search_trends(self, window_days: int = 7) -> list[TrendPoint]:
        """One point per day for the last window_days days (today included), zeros kept."""
        days = _window(window_days)
        today = self._clock().date()
        first = today - timedelta(days=days - 1)
        start = datetime.combine(first, time.min)
        end = datetime.combine(today + timedelta(days=1), time.min)
        day = func.date(SearchEvent.created_at)
        stmt = (
            select(day, func.count(SearchEvent.id), func.count(distinct(SearchEvent.normalized_text)))
            .where(SearchEvent.created_at >= start, SearchEvent.created_at < end)
            .group_by(day)
        )
        with self._db.session() as db:
            rows = {str(d): (int(n), int(u)) for d, n, u in db.execute(stmt).all()}
        points = []
        for offset in range(days):
            d = first + timedelta(days=offset)
            n, u = rows.get(d.isoformat(), (0, 0))
            points.append(TrendPoint(date=d, count=n, unique_queries=u))
        return points

    def click_through_rates(self, limit: int = 10, window_days: int = 30) -> list[ClickThroughRow]:
        """Per query: searches and clicked searches in the window; ctr None when no searches.

        Only clicks on searches inside the window count, so clicks never exceed
        searches. A query clicked in the window whose searches all predate it is
        reported with zero searches and zero clicks.
        """
        cutoff = self._cutoff(window_days)
        search_stmt = (
            select(SearchEvent.normalized_text, func.count(SearchEvent.id))
            .where(SearchEvent.created_at >= cutoff)
            .group_by(SearchEvent.normalized_text)
        )
        click_stmt = (
            select(
                SearchEvent.normalized_text,
                func.count(distinct(case((SearchEvent.created_at >= cutoff, SearchClick.event_id)))),
            )
            .join(SearchEvent, SearchEvent.id == SearchClick.event_id)
            .where(SearchClick.created_at >= cutoff)
            .group_by(SearchEvent.normalized_text)
        )
        with self._db.session() as db:
            searches = {q: int(n) for q, n in db.execute(search_stmt).all()}
            clicks = {q: int(n) for q, n in db.execute(click_stmt).all()}

        rows = []
        for query in searches.keys() | clicks.keys():
            s, c = searches.get(query, 0), clicks.get(query, 0)
            if 0 < s < self.ctr_min_searches:
                continue
            rows.append(ClickThroughRow(query=query, searches=s, clicks=c, ctr=round(c / s, 4) if s else None))
        rows.sort(key=lambda r: (-r.searches, -r.clicks, r.query))
        return rows[: self._limit(limit)]

    def entry_popularity(self, window_days: int = 30) -> dict[str, int]:
        """Clicks per catalog entry in the window; feeds popularity ordering."""
        cutoff = self._cutoff(window_days)
        stmt = (
            select(SearchClick.entry_id, func.count(SearchClick.id))
            .where(SearchClick.created_at >= cutoff)
            .group_by(SearchClick.entry_id)
        )
        with self._db.session() as db:
            return {entry_id: int(n) for entry_id, n in db.execute(stmt).all()}

    def _cutoff(self, window_days: int) -> datetime:
        return self._clock() - timedelta(days=_window(window_days))

    def _limit(self, limit: Any) -> int:
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidQueryError("limit must be an integer", details={"field": "limit"})
        if limit < 0:
            raise InvalidQueryError("limit must not be negative", details={"field": "limit"})
        return min(max(limit, 1), self.max_limit)


def _as_datetime(value: Any) -> datetime:
    """Aggregates over DateTime come back as strings on SQLite."""
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
