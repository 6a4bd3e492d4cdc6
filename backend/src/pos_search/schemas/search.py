"""Search request/response schemas."""

from typing import Any

from pydantic import BaseModel, Field

from pos_search.services.search.types import RankedHit


class SearchHitSchema(BaseModel):
    entry_id: str
    score: float
    matched_fields: list[str]
    name: str
    price: float
    stock: int
    category_path: list[str]
    attributes: dict[str, str]
    product_id: str | None = None
    is_variant: bool = False

    @classmethod
    def from_hit(cls, hit: RankedHit) -> "SearchHitSchema":
        entry = hit.entry
        return cls(
            entry_id=hit.entry_id,
            score=hit.score,
            matched_fields=list(hit.matched_fields),
            name=entry.name if entry else "",
            price=entry.price if entry else 0.0,
            stock=entry.stock if entry else 0,
            category_path=list(entry.category_path) if entry else [],
            attributes=dict(entry.attributes) if entry else {},
            product_id=entry.product_id if entry else None,
            is_variant=entry.is_variant if entry else False,
        )


class SearchResponse(BaseModel):
    trace_id: str
    query: str
    normalized_query: str
    language: str
    sort_by: str
    limit: int
    offset: int
    total: int
    hits: list[SearchHitSchema]
    facets: dict[str, Any] = Field(default_factory=dict)
    event_id: str | None = None
    suggestions: list[str] = Field(default_factory=list)
    took_ms: int


class SuggestionsResponse(BaseModel):
    query: str
    language: str
    suggestions: list[str]
