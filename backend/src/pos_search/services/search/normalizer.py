"""Query normalizer - raw request mapping -> SearchRequest.

Core fields (text, language, sortBy, limit, offset) are validated strictly
and reject the request. Filter fragments are untrusted refinements: each is
validated on its own and dropped with a warning when malformed.
"""

import json
import re
import string
from collections.abc import Mapping
from typing import Any

from pydantic import NonNegativeFloat, StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from pos_search.core.exceptions import InvalidQueryError
from pos_search.core.logging import get_logger
from pos_search.services.search.types import (
    Language,
    QueryTerms,
    SearchFilters,
    SearchRequest,
    SortBy,
)

logger = get_logger("pos_search.services.search.normalizer")

_PHRASE_RE = re.compile(r'"([^"]*)"')
_PUNCT = string.punctuation + "“”‘’«»।"

_INT = TypeAdapter(int)
_PRICE = TypeAdapter(NonNegativeFloat)
_BOOL = TypeAdapter(bool)
_STR_LIST = TypeAdapter(list[StrictStr])
_ATTR_VALUES = TypeAdapter(list[StrictStr] | StrictStr)


def normalize_text(text: str | None) -> str:
    """Aggregation/lookup key: trimmed, whitespace-collapsed, lower-cased."""
    return " ".join((text or "").split()).lower()


def display_text(text: str | None) -> str:
    """Original text with outer/internal whitespace tidied, case preserved."""
    return " ".join((text or "").split())


def parse_language(value: Any, default: Language = Language.EN) -> Language:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return Language(str(value).strip().lower())
    except ValueError:
        raise InvalidQueryError(
            f"Unsupported language: {value!r}",
            details={"field": "language", "allowed": [lang.value for lang in Language]},
        ) from None


def parse_sort(value: Any, default: SortBy = SortBy.RELEVANCE) -> SortBy:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return SortBy(str(value).strip().lower())
    except ValueError:
        raise InvalidQueryError(
            f"Unsupported sortBy: {value!r}",
            details={"field": "sortBy", "allowed": [s.value for s in SortBy]},
        ) from None


def parse_terms(normalized: str) -> QueryTerms:
    """Split normalized text into terms, quoted phrases and -exclusions."""
    phrases = tuple(p for p in (" ".join(m.split()) for m in _PHRASE_RE.findall(normalized)) if p)
    rest = _PHRASE_RE.sub(" ", normalized)
    terms: list[str] = []
    excluded: list[str] = []
    for token in rest.split():
        if token.startswith("-") and len(token) > 1:
            word = token[1:].strip(_PUNCT)
            if word:
                excluded.append(word)
            continue
        word = token.strip(_PUNCT)
        if word:
            terms.append(word)
    return QueryTerms(terms=tuple(terms), phrases=phrases, excluded=tuple(excluded))


def parse_count(value: Any, name: str, default: int) -> int:
    """Non-negative integer (limit/offset style); None or blank gives default."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        number = _INT.validate_python(value.strip() if isinstance(value, str) else value)
    except PydanticValidationError:
        raise InvalidQueryError(f"{name} must be an integer", details={"field": name}) from None
    if number < 0:
        raise InvalidQueryError(f"{name} must not be negative", details={"field": name})
    return number


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _decode_json(value: Any, fragment: str) -> Any:
    """Decode a JSON-encoded fragment; None when it cannot be decoded."""
    if not isinstance(value, (str, bytes)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Dropping filter %s: not valid JSON", fragment)
        return None


class QueryNormalizer:
    """Validates and canonicalizes raw search requests."""

    def __init__(
        self,
        *,
        default_limit: int = 20,
        max_limit: int = 100,
        max_offset: int = 10_000,
    ) -> None:
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.max_offset = max_offset

    def normalize(self, raw: Mapping[str, Any] | None) -> SearchRequest:
        """Turn a raw request (query-string or JSON shaped) into a SearchRequest."""
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise InvalidQueryError("Search request must be an object")

        text = _first(raw, "text", "query", "q")
        if text is not None and not isinstance(text, str):
            raise InvalidQueryError("text must be a string", details={"field": "text"})
        normalized = normalize_text(text)

        category_id = _first(raw, "categoryId", "category_id", "category")
        if category_id is not None and not isinstance(category_id, (str, int)):
            raise InvalidQueryError("categoryId must be a string", details={"field": "categoryId"})
        category_id = str(category_id).strip() if category_id is not None else None

        limit = parse_count(_first(raw, "limit"), "limit", self.default_limit)
        offset = parse_count(_first(raw, "offset"), "offset", 0)

        return SearchRequest(
            text=normalized,
            display_text=display_text(text),
            category_id=category_id or None,
            language=parse_language(_first(raw, "language", "lang")),
            sort_by=parse_sort(_first(raw, "sortBy", "sort_by", "sort")),
            limit=min(max(limit, 1), self.max_limit),
            offset=min(offset, self.max_offset),
            filters=self.parse_filters(_first(raw, "filters")),
            terms=parse_terms(normalized),
        )

    def parse_filters(self, value: Any) -> SearchFilters:
        """Validate each filter fragment independently; drop the bad ones."""
        value = _decode_json(value, "payload")
        if value is None:
            return SearchFilters()
        if not isinstance(value, Mapping):
            logger.warning("Dropping filters: expected an object, got %s", type(value).__name__)
            return SearchFilters()

        price_min = self._price(_first(value, "priceMin", "price_min"), "priceMin")
        price_max = self._price(_first(value, "priceMax", "price_max"), "priceMax")
        if price_min is not None and price_max is not None and price_min > price_max:
            logger.warning("Dropping price filter: priceMin %s > priceMax %s", price_min, price_max)
            price_min = price_max = None

        return SearchFilters(
            price_min=price_min,
            price_max=price_max,
            in_stock=self._in_stock(_first(value, "inStock", "in_stock")),
            categories=self._categories(_first(value, "categories")),
            attributes=self._attributes(_first(value, "attributes")),
        )

    @staticmethod
    def _price(value: Any, name: str) -> float | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            return _PRICE.validate_python(value)
        except PydanticValidationError:
            logger.warning("Dropping filter %s: invalid value %r", name, value)
            return None

    @staticmethod
    def _in_stock(value: Any) -> bool:
        if value is None or (isinstance(value, str) and not value.strip()):
            return False
        try:
            return _BOOL.validate_python(value)
        except PydanticValidationError:
            logger.warning("Dropping filter inStock: invalid value %r", value)
            return False

    @staticmethod
    def _categories(value: Any) -> frozenset[str]:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                value = _decode_json(stripped, "categories")
                if value is None:
                    return frozenset()
            else:
                return frozenset(c.strip() for c in stripped.split(",") if c.strip())
        try:
            items = _STR_LIST.validate_python(value)
        except PydanticValidationError:
            logger.warning("Dropping filter categories: expected a list of ids")
            return frozenset()
        return frozenset(c.strip() for c in items if c.strip())

    @staticmethod
    def _attributes(value: Any) -> dict[str, frozenset[str]]:
        value = _decode_json(value, "attributes")
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            logger.warning("Dropping filter attributes: expected an object")
            return {}
        out: dict[str, frozenset[str]] = {}
        for key, accepted in value.items():
            name = str(key).strip()
            try:
                parsed = _ATTR_VALUES.validate_python(accepted)
            except PydanticValidationError:
                logger.warning("Dropping attribute filter %r: expected string values", name)
                continue
            values = [parsed] if isinstance(parsed, str) else parsed
            accepted_set = frozenset(v.strip().lower() for v in values if v.strip())
            if not name or not accepted_set:
                logger.warning("Dropping attribute filter %r: no accepted values", name)
                continue
            out[name] = accepted_set
        return out
