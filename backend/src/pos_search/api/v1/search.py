"""Search and suggestion endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Query

from pos_search.api.deps import EngineDep, UserIdDep
from pos_search.core.exceptions import InvalidQueryError
from pos_search.core.logging import get_logger
from pos_search.schemas.search import SearchHitSchema, SearchResponse, SuggestionsResponse
from pos_search.services.engine import SearchResult

router = APIRouter(prefix="/search", tags=["search"])
logger = get_logger("pos_search.api.v1.search")


def _response(result: SearchResult) -> SearchResponse:
    return SearchResponse(
        trace_id=result.trace_id,
        query=result.query,
        normalized_query=result.normalized_query,
        language=result.language,
        sort_by=result.sort_by,
        limit=result.limit,
        offset=result.offset,
        total=result.total,
        hits=[SearchHitSchema.from_hit(h) for h in result.hits],
        facets=result.facets,
        event_id=result.event_id,
        suggestions=result.suggestions,
        took_ms=result.took_ms,
    )


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@router.get("", response_model=SearchResponse)
def search_get(
    engine: EngineDep,
    user_id: UserIdDep,
    q: str = "",
    category: str | None = None,
    lang: str | None = None,
    sort: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    price_min: Annotated[str | None, Query(alias="priceMin")] = None,
    price_max: Annotated[str | None, Query(alias="priceMax")] = None,
    in_stock: Annotated[str | None, Query(alias="inStock")] = None,
    categories: Annotated[str | None, Query(description="Comma list or JSON array")] = None,
    attributes: Annotated[str | None, Query(description="JSON object name -> [values]")] = None,
):
    """Query-string search; maps onto the same raw request as the JSON body."""
    raw = _drop_none(
        {
            "text": q,
            "categoryId": category,
            "language": lang,
            "sortBy": sort,
            "limit": limit,
            "offset": offset,
            "filters": _drop_none(
                {
                    "priceMin": price_min,
                    "priceMax": price_max,
                    "inStock": in_stock,
                    "categories": categories,
                    "attributes": attributes,
                }
            ),
        }
    )
    return _response(engine.search(raw, user_id=user_id))


@router.post("", response_model=SearchResponse)
def search_post(
    engine: EngineDep,
    user_id: UserIdDep,
    body: Annotated[dict[str, Any], Body(description="text, categoryId, language, sortBy, limit, offset, filters")],
):
    """JSON body search."""
    raw = dict(body)
    body_user = raw.pop("userId", None)
    if body_user is not None and not isinstance(body_user, str):
        raise InvalidQueryError("userId must be a string", details={"field": "userId"})
    return _response(engine.search(raw, user_id=user_id or body_user))


@router.get("/suggestions", response_model=SuggestionsResponse)
def suggestions(
    engine: EngineDep,
    q: str = "",
    lang: str | None = None,
    limit: str | None = None,
):
    """Autocomplete; prefixes shorter than two characters give an empty list."""
    items = engine.get_suggestions(q, lang, limit)
    return SuggestionsResponse(query=q, language=(lang or "en").strip().lower(), suggestions=items)
