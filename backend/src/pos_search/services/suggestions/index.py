"""Suggestion index - prefix lookup over previously searched queries."""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, delete, select
from sqlalchemy.dialects import postgresql, sqlite

from pos_search.core.clock import Clock, utcnow
from pos_search.core.logging import get_logger
from pos_search.db.models import SuggestionEntry
from pos_search.db.session import Database
from pos_search.services.search.normalizer import display_text, normalize_text
from pos_search.services.search.types import Language

logger = get_logger("pos_search.services.suggestions.index")

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


@dataclass(frozen=True)
class Suggestion:
    normalized_text: str
    display_text: str
    language: str
    frequency: int
    last_used_at: datetime

    @classmethod
    def from_row(cls, row: SuggestionEntry) -> "Suggestion":
        return cls(
            normalized_text=row.normalized_text,
            display_text=row.display_text,
            language=row.language,
            frequency=row.frequency,
            last_used_at=row.last_used_at,
        )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _lang(language: Language | str) -> str:
    return language.value if isinstance(language, Language) else str(language)


class SuggestionIndex:
    """Frequency/recency-ranked autocomplete store keyed by (normalized_text, language)."""

    def __init__(
        self,
        database: Database,
        *,
        min_prefix: int = 2,
        max_limit: int = 100,
        clock: Clock = utcnow,
    ) -> None:
        if database.dialect not in _UPSERT_DIALECTS:
            raise ValueError(f"Suggestion upsert not supported for dialect {database.dialect!r}")
        self._db = database
        self._insert = _UPSERT_DIALECTS[database.dialect]
        self.min_prefix = min_prefix
        self.max_limit = max_limit
        self._clock = clock

    def record(
        self,
        query_text: str,
        language: Language | str,
        *,
        at: datetime | None = None,
    ) -> str | None:
        """Count one occurrence of query_text. Returns the key, or None for blank text.

        One INSERT .. ON CONFLICT DO UPDATE statement, so concurrent identical
        queries never lose an increment.
        """
        key = normalize_text(query_text)
        if not key:
            return None
        at = at or self._clock()
        table = SuggestionEntry.__table__
        stmt = self._insert(table).values(
            normalized_text=key,
            display_text=display_text(query_text),
            language=_lang(language),
            frequency=1,
            last_used_at=at,
            created_at=at,
        )
        newer = stmt.excluded.last_used_at >= table.c.last_used_at
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.normalized_text, table.c.language],
            set_={
                "frequency": table.c.frequency + 1,
                "display_text": case((newer, stmt.excluded.display_text), else_=table.c.display_text),
                "last_used_at": case((newer, stmt.excluded.last_used_at), else_=table.c.last_used_at),
            },
        )
        with self._db.session() as db:
            db.execute(stmt)
        logger.debug("Recorded suggestion %r (%s)", key, _lang(language))
        return key

    def suggest(self, prefix: str, language: Language | str, limit: int = 10) -> list[Suggestion]:
        """Entries whose normalized text starts with prefix; [] for short prefixes."""
        key = normalize_text(prefix)
        if len(key) < self.min_prefix:
            return []
        limit = min(max(int(limit), 1), self.max_limit)
        stmt = (
            select(SuggestionEntry)
            .where(
                SuggestionEntry.language == _lang(language),
                SuggestionEntry.normalized_text.like(_escape_like(key) + "%", escape="\\"),
            )
            .order_by(
                SuggestionEntry.frequency.desc(),
                SuggestionEntry.last_used_at.desc(),
                SuggestionEntry.normalized_text.asc(),
            )
            .limit(limit)
        )
        with self._db.session() as db:
            return [Suggestion.from_row(row) for row in db.scalars(stmt)]

    def get(self, query_text: str, language: Language | str) -> Suggestion | None:
        stmt = select(SuggestionEntry).where(
            SuggestionEntry.normalized_text == normalize_text(query_text),
            SuggestionEntry.language == _lang(language),
        )
        with self._db.session() as db:
            row = db.scalars(stmt).first()
            return Suggestion.from_row(row) if row else None

    def prune(self, older_than: datetime) -> int:
        """Delete entries not used since older_than. Maintenance only."""
        with self._db.session() as db:
            result = db.execute(delete(SuggestionEntry).where(SuggestionEntry.last_used_at < older_than))
            removed = result.rowcount or 0
        logger.info("Pruned %d suggestions unused since %s", removed, older_than.isoformat())
        return removed
