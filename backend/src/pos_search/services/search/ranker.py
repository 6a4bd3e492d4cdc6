"""Matcher & ranker - candidate selection, text scoring, filters, ordering."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pos_search.core.logging import get_logger
from pos_search.services.catalog.base import CatalogEntry
from pos_search.services.search.facets import build_facets
from pos_search.services.search.types import (
    QueryTerms,
    RankedHit,
    SearchFilters,
    SearchPage,
    SearchRequest,
    SortBy,
)

logger = get_logger("pos_search.services.search.ranker")


@dataclass(frozen=True)
class RankingWeights:
    """Per-field weights; fixed so ties are deterministic."""

    exact_name: float = 100.0
    exact_keyword: float = 60.0
    name_substring: float = 40.0
    keyword_substring: float = 25.0
    attribute: float = 10.0


@dataclass(frozen=True)
class _Fields:
    """Lower-cased searchable text of one entry."""

    name: str
    keywords: tuple[str, ...]
    attribute_values: tuple[str, ...]
    attributes: Mapping[str, str]

    @classmethod
    def of(cls, entry: CatalogEntry) -> "_Fields":
        attrs = {k.strip().lower(): " ".join(v.split()).lower() for k, v in entry.attributes.items()}
        return cls(
            name=" ".join(entry.name.split()).lower(),
            keywords=tuple(" ".join(k.split()).lower() for k in entry.keywords),
            attribute_values=tuple(attrs.values()),
            attributes=attrs,
        )

    def mentions(self, needle: str) -> bool:
        return needle in self.name or any(needle in k for k in self.keywords)


class Ranker:
    """Scores catalog entries against a SearchRequest and orders them."""

    def __init__(self, weights: RankingWeights | None = None) -> None:
        self.weights = weights or RankingWeights()

    def rank(
        self,
        request: SearchRequest,
        entries: Iterable[CatalogEntry],
        popularity: Mapping[str, int] | None = None,
    ) -> SearchPage:
        """Run the full pipeline and return one page plus the pre-pagination total."""
        scored: list[RankedHit] = []
        for entry in entries:
            if not self._is_candidate(entry, request):
                continue
            fields = _Fields.of(entry)
            if not self._passes_filters(entry, fields, request.filters):
                continue
            if self._is_excluded(fields, request.terms):
                continue
            if request.has_text:
                score, matched = self.score(fields, request.terms)
                if score <= 0:
                    continue
            else:
                score, matched = 0.0, ()
            scored.append(RankedHit(entry_id=entry.id, score=score, matched_fields=matched, entry=entry))

        ordered = self._order(scored, request.sort_by, popularity or {})
        page = ordered[request.offset : request.offset + request.limit]
        logger.debug(
            "Ranked %d hits (page %d..%d) for text=%r sort=%s",
            len(ordered),
            request.offset,
            request.offset + len(page),
            request.text,
            request.sort_by.value,
        )
        return SearchPage(hits=page, total=len(ordered), facets=build_facets(h.entry for h in ordered))

    @staticmethod
    def _is_candidate(entry: CatalogEntry, request: SearchRequest) -> bool:
        if not entry.active:
            return False
        if entry.language is not None and entry.language != request.language.value:
            return False
        if request.category_id is not None and request.category_id not in entry.category_path:
            return False
        cats = request.filters.categories
        if cats and cats.isdisjoint(entry.category_path):
            return False
        return True

    @staticmethod
    def _passes_filters(entry: CatalogEntry, fields: _Fields, filters: SearchFilters) -> bool:
        if filters.price_min is not None and entry.price < filters.price_min:
            return False
        if filters.price_max is not None and entry.price > filters.price_max:
            return False
        if filters.in_stock and entry.stock <= 0:
            return False
        for name, accepted in filters.attributes.items():
            value = fields.attributes.get(name.lower())
            if value is None or value not in accepted:
                return False
        return True

    @staticmethod
    def _is_excluded(fields: _Fields, terms: QueryTerms) -> bool:
        return any(fields.mentions(word) for word in terms.excluded)

    def score(self, fields: _Fields | CatalogEntry, terms: QueryTerms) -> tuple[float, tuple[str, ...]]:
        """Relevance of an entry for parsed query terms; 0 means no match."""
        if isinstance(fields, CatalogEntry):
            fields = _Fields.of(fields)
        if self._is_excluded(fields, terms):
            return 0.0, ()
        if not all(fields.mentions(phrase) for phrase in terms.phrases):
            return 0.0, ()

        score, matched = self._score_needle(fields, terms.match_text)
        needles = (*terms.phrases, *terms.terms)
        if score == 0 and len(needles) > 1:
            parts = [self._score_needle(fields, n) for n in needles]
            if all(s > 0 for s, _ in parts):
                score = sum(s for s, _ in parts)
                matched = tuple(dict.fromkeys(f for _, fs in parts for f in fs))
        return score, matched

    def _score_needle(self, fields: _Fields, needle: str) -> tuple[float, tuple[str, ...]]:
        if not needle:
            return 0.0, ()
        w = self.weights
        score = 0.0
        matched: list[str] = []
        if fields.name == needle:
            score += w.exact_name
            matched.append("name")
        elif needle in fields.name:
            score += w.name_substring
            matched.append("name")
        if needle in fields.keywords:
            score += w.exact_keyword
            matched.append("keywords")
        elif any(needle in k for k in fields.keywords):
            score += w.keyword_substring
            matched.append("keywords")
        if any(needle in v for v in fields.attribute_values):
            score += w.attribute
            matched.append("attributes")
        return score, tuple(matched)

    @staticmethod
    def _order(hits: list[RankedHit], sort_by: SortBy, popularity: Mapping[str, int]) -> list[RankedHit]:
        def name_key(h: RankedHit) -> tuple[str, str]:
            return (h.entry.name.casefold() if h.entry else "", h.entry_id)

        if sort_by is SortBy.PRICE_ASC:
            key = lambda h: (h.entry.price, -h.score, *name_key(h))  # noqa: E731
        elif sort_by is SortBy.PRICE_DESC:
            key = lambda h: (-h.entry.price, -h.score, *name_key(h))  # noqa: E731
        elif sort_by is SortBy.NAME:
            key = name_key
        elif sort_by is SortBy.POPULARITY:
            key = lambda h: (-popularity.get(h.entry_id, 0), -h.score, *name_key(h))  # noqa: E731
        else:
            key = lambda h: (-h.score, *name_key(h))  # noqa: E731
        return sorted(hits, key=key)
