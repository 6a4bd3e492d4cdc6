"""In-memory CatalogSource with optional JSON seed file."""

import json
from collections.abc import Iterable
from pathlib import Path

from pos_search.core.logging import get_logger
from pos_search.services.catalog.base import CatalogEntry, CatalogSource

logger = get_logger("pos_search.services.catalog.memory_catalog")


class InMemoryCatalogSource(CatalogSource):
    """List-backed catalog for tests and local development."""

    def __init__(
        self,
        entries: Iterable[CatalogEntry] | None = None,
        *,
        seed_path: Path | None = None,
    ) -> None:
        self._entries: list[CatalogEntry] = list(entries or [])
        if seed_path is not None:
            self._entries.extend(self._load(seed_path))

    @staticmethod
    def _load(path: Path) -> list[CatalogEntry]:
        """Read a JSON list (or {"entries": [...]}) of catalog entries."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("entries", [])
        entries = [CatalogEntry.from_dict(item) for item in data]
        logger.info("Loaded %d catalog entries from %s", len(entries), path)
        return entries

    def entries(
        self,
        *,
        language: str | None = None,
        category_ids: Iterable[str] | None = None,
        active_only: bool = True,
    ) -> list[CatalogEntry]:
        wanted = set(category_ids) if category_ids is not None else None
        out = []
        for e in self._entries:
            if active_only and not e.active:
                continue
            if language is not None and e.language not in (None, language):
                continue
            if wanted is not None and wanted.isdisjoint(e.category_path):
                continue
            out.append(e)
        return out
