"""Search value objects."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pos_search.services.catalog.base import CatalogEntry


class Language(str, Enum):
    EN = "en"
    HI = "hi"
    BN = "bn"


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME = "name"
    POPULARITY = "popularity"


@dataclass(frozen=True)
class SearchFilters:
    """Additive refinements; every field optional."""

    price_min: float | None = None
    price_max: float | None = None
    in_stock: bool = False
    categories: frozenset[str] = frozenset()
    attributes: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return (
            self.price_min is None
            and self.price_max is None
            and not self.in_stock
            and not self.categories
            and not self.attributes
        )


@dataclass(frozen=True)
class QueryTerms:
    """Parsed free text: plain terms, "quoted phrases" and -excluded terms."""

    terms: tuple[str, ...] = ()
    phrases: tuple[str, ...] = ()
    excluded: tuple[str, ...] = ()

    @property
    def match_text(self) -> str:
        """Text scored against entries: terms and phrases, exclusions removed."""
        return " ".join((*self.phrases, *self.terms))


@dataclass(frozen=True)
class SearchRequest:
    """Canonical, validated search request."""

    text: str = ""
    display_text: str = ""
    category_id: str | None = None
    language: Language = Language.EN
    sort_by: SortBy = SortBy.RELEVANCE
    limit: int = 20
    offset: int = 0
    filters: SearchFilters = field(default_factory=SearchFilters)
    terms: QueryTerms = field(default_factory=QueryTerms)

    @property
    def has_text(self) -> bool:
        return bool(self.terms.match_text)


@dataclass(frozen=True)
class RankedHit:
    """Scored entry; the ordering of hits is the contract."""

    entry_id: str
    score: float
    matched_fields: tuple[str, ...] = ()
    entry: CatalogEntry | None = field(default=None, compare=False, repr=False)


@dataclass
class SearchPage:
    """One page of ranked hits plus the pre-pagination total."""

    hits: list[RankedHit]
    total: int
    facets: dict[str, Any] = field(default_factory=dict)
