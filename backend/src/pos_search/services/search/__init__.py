"""Query normalization and ranking."""

from pos_search.services.search.normalizer import (
    QueryNormalizer,
    normalize_text,
    parse_language,
)
from pos_search.services.search.ranker import Ranker, RankingWeights
from pos_search.services.search.types import (
    Language,
    QueryTerms,
    RankedHit,
    SearchFilters,
    SearchPage,
    SearchRequest,
    SortBy,
)

__all__ = [
    "QueryNormalizer",
    "normalize_text",
    "parse_language",
    "Ranker",
    "RankingWeights",
    "Language",
    "SortBy",
    "QueryTerms",
    "SearchFilters",
    "SearchRequest",
    "RankedHit",
    "SearchPage",
]
