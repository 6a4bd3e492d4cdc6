"""Search facade - search, suggestions, event ingestion and analytics.

The facade is the only writer of suggestions and search events. Writes that
follow a search are handed to the BackgroundRecorder so the response never
waits on them.
"""

import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from pos_search.config import Settings
from pos_search.core.clock import Clock, utcnow
from pos_search.core.exceptions import InvalidQueryError, StoreUnavailableError
from pos_search.core.logging import get_logger
from pos_search.core.tracing import get_trace_id
from pos_search.db.session import Database
from pos_search.services.analytics.aggregator import AnalyticsAggregator
from pos_search.services.catalog.base import CatalogEntry, CatalogSource
from pos_search.services.catalog.registry import get_catalog_source
from pos_search.services.recording import BackgroundRecorder
from pos_search.services.search.normalizer import QueryNormalizer, parse_count, parse_language
from pos_search.services.search.ranker import Ranker, RankingWeights
from pos_search.services.search.types import RankedHit, SortBy
from pos_search.services.suggestions.index import SuggestionIndex

logger = get_logger("pos_search.services.engine")

ANALYTICS_KINDS = ("popular", "no-results", "trends", "click-through")


@dataclass
class SearchResult:
    """Full search response."""

    hits: list[RankedHit]
    total: int
    query: str
    normalized_query: str
    language: str
    sort_by: str
    limit: int
    offset: int
    trace_id: str
    took_ms: int
    event_id: str | None = None
    facets: dict[str, Any] = field(default_factory=dict)
    suggestions: list[str] = field(default_factory=list)


class SearchEngine:
    """Orchestrates normalizer, ranker, suggestion index and analytics."""

    def __init__(
        self,
        *,
        catalog: CatalogSource,
        suggestions: SuggestionIndex,
        analytics: AnalyticsAggregator,
        recorder: BackgroundRecorder | None = None,
        normalizer: QueryNormalizer | None = None,
        ranker: Ranker | None = None,
        track_searches: bool = True,
        popularity_window_days: int = 30,
        suggestion_limit: int = 10,
        event_retention_days: int | None = None,
        suggestion_retention_days: int | None = None,
        clock: Clock = utcnow,
        database: Database | None = None,
    ) -> None:
        self.catalog = catalog
        self.suggestions = suggestions
        self.analytics = analytics
        self.recorder = recorder or BackgroundRecorder()
        self.normalizer = normalizer or QueryNormalizer()
        self.ranker = ranker or Ranker()
        self.track_searches = track_searches
        self.popularity_window_days = popularity_window_days
        self.suggestion_limit = suggestion_limit
        self.event_retention_days = event_retention_days
        self.suggestion_retention_days = suggestion_retention_days
        self._clock = clock
        self._database = database

    @classmethod
    def from_settings(cls, settings: Settings, database: Database | None = None) -> "SearchEngine":
        """Wire every collaborator from settings. The engine owns what it creates."""
        owns_db = database is None
        database = database or Database(settings.database_url, echo=settings.database_echo)
        database.init_schema()
        engine = cls(
            catalog=get_catalog_source(settings, database),
            suggestions=SuggestionIndex(
                database,
                min_prefix=settings.suggestion_min_prefix,
                max_limit=settings.max_limit,
            ),
            analytics=AnalyticsAggregator(
                database,
                retention_days=settings.event_retention_days,
                ctr_min_searches=settings.ctr_min_searches,
                max_limit=settings.max_limit,
            ),
            recorder=BackgroundRecorder(
                max_workers=settings.recording_workers,
                max_pending=settings.recording_queue_size,
            ),
            normalizer=QueryNormalizer(
                default_limit=settings.default_limit,
                max_limit=settings.max_limit,
                max_offset=settings.max_offset,
            ),
            ranker=Ranker(
                RankingWeights(
                    exact_name=settings.weight_exact_name,
                    exact_keyword=settings.weight_exact_keyword,
                    name_substring=settings.weight_name_substring,
                    keyword_substring=settings.weight_keyword_substring,
                    attribute=settings.weight_attribute,
                )
            ),
            track_searches=settings.track_searches,
            popularity_window_days=settings.popularity_window_days,
            suggestion_limit=settings.suggestion_default_limit,
            event_retention_days=settings.event_retention_days,
            suggestion_retention_days=settings.suggestion_retention_days,
            database=database if owns_db else None,
        )
        logger.info(
            "Search engine ready (catalog=%s, store=%s)",
            type(engine.catalog).__name__,
            database.dialect,
        )
        return engine

    # ---- search -------------------------------------------------------

    def search(
        self,
        raw: Mapping[str, Any] | None,
        *,
        user_id: str | None = None,
        track: bool | None = None,
    ) -> SearchResult:
        """Normalize, rank, answer; then queue suggestion/event recording."""
        start = time.perf_counter()
        request = self.normalizer.normalize(raw)

        if request.category_id is not None:
            category_ids: list[str] | None = [request.category_id]
        else:
            category_ids = sorted(request.filters.categories) or None
        entries = self._read_catalog(request.language.value, category_ids)

        popularity = None
        if request.sort_by is SortBy.POPULARITY:
            popularity = self.analytics.entry_popularity(self.popularity_window_days)

        page = self.ranker.rank(request, entries, popularity)
        suggestions = []
        if request.text:
            suggestions = [
                s.display_text
                for s in self.suggestions.suggest(request.text, request.language, self.suggestion_limit)
            ]
        took_ms = int((time.perf_counter() - start) * 1000)

        event_id = None
        if request.text:
            now = self._clock()
            self.recorder.submit(
                "suggestion update",
                self.suggestions.record,
                request.display_text,
                request.language,
                at=now,
            )
            if self.track_searches if track is None else track:
                event_id = str(uuid.uuid4())
                queued = self.recorder.submit(
                    "search event",
                    self.analytics.record_search,
                    request.display_text,
                    page.total,
                    user_id,
                    language=request.language.value,
                    event_id=event_id,
                    occurred_at=now,
                )
                if queued is None:
                    event_id = None

        logger.info(
            "Search %r lang=%s sort=%s -> %d/%d hits in %dms",
            request.display_text,
            request.language.value,
            request.sort_by.value,
            len(page.hits),
            page.total,
            took_ms,
        )
        return SearchResult(
            hits=page.hits,
            total=page.total,
            query=request.display_text,
            normalized_query=request.text,
            language=request.language.value,
            sort_by=request.sort_by.value,
            limit=request.limit,
            offset=request.offset,
            trace_id=get_trace_id(),
            took_ms=took_ms,
            event_id=event_id,
            facets=page.facets,
            suggestions=suggestions,
        )

    def _read_catalog(self, language: str, category_ids: list[str] | None) -> list[CatalogEntry]:
        try:
            return self.catalog.entries(language=language, category_ids=category_ids)
        except StoreUnavailableError:
            raise
        except (ConnectionError, OSError, TimeoutError) as e:
            logger.error("Catalog read failed: %s", e)
            raise StoreUnavailableError("Catalog unavailable", details={"store": "catalog"}) from e

    # ---- suggestions --------------------------------------------------

    def get_suggestions(self, prefix: str, language: Any = "en", limit: Any = None) -> list[str]:
        """Display texts of suggestions for prefix; [] when the prefix is too short."""
        lang = parse_language(language)
        limit = parse_count(limit, "limit", self.suggestion_limit)
        return [s.display_text for s in self.suggestions.suggest(prefix or "", lang, limit)]

    # ---- events -------------------------------------------------------

    def record_search_event(self, query_text: str, result_count: int, user_id: str | None = None) -> str:
        return self.analytics.record_search(query_text, result_count, user_id)

    def record_click_event(self, event_id: str, entry_id: str) -> str:
        return self.analytics.record_click(event_id, entry_id)

    def ingest_event(self, event: Mapping[str, Any]) -> dict[str, str]:
        """Dispatch a {"type": "search"|"click", ...} event payload."""
        if not isinstance(event, Mapping):
            raise InvalidQueryError("Event must be an object")
        kind = str(event.get("type") or "").strip().lower()
        if kind == "search":
            event_id = self.record_search_event(
                event.get("queryText", event.get("query")),
                event.get("resultCount"),
                event.get("userId"),
            )
            return {"event_id": event_id}
        if kind == "click":
            click_id = self.record_click_event(event.get("eventId"), event.get("entryId"))
            return {"click_id": click_id}
        raise InvalidQueryError(
            f"Unknown event type: {kind or None!r}",
            details={"allowed": ["search", "click"]},
        )

    # ---- analytics ----------------------------------------------------

    def get_analytics(self, kind: str, limit: int = 10, window_days: int = 30) -> list[Any]:
        if kind == "popular":
            return self.analytics.popular_searches(limit, window_days)
        if kind == "no-results":
            return self.analytics.no_result_searches(limit, window_days)
        if kind == "trends":
            return self.analytics.search_trends(window_days)
        if kind == "click-through":
            return self.analytics.click_through_rates(limit, window_days)
        raise InvalidQueryError(
            f"Invalid analytics type: {kind!r}",
            details={"allowed": list(ANALYTICS_KINDS)},
        )

    # ---- maintenance --------------------------------------------------

    def prune(self, *, now: datetime | None = None) -> dict[str, int]:
        """Apply the configured retention windows. No-op for unbounded retention."""
        now = now or self._clock()
        result = {"events": 0, "clicks": 0, "suggestions": 0}
        if self.event_retention_days is not None:
            result.update(self.analytics.prune(now - timedelta(days=self.event_retention_days)))
        if self.suggestion_retention_days is not None:
            result["suggestions"] = self.suggestions.prune(now - timedelta(days=self.suggestion_retention_days))
        return result

    def close(self) -> None:
        """Finish queued recording and release owned resources."""
        self.recorder.shutdown(wait=True)
        if self._database is not None:
            self._database.dispose()
