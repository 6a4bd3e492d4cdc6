"""Search event ingestion, analytics rollups and maintenance."""

from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Body, Query

from pos_search.api.deps import EngineDep
from pos_search.core.logging import get_logger
from pos_search.schemas.analytics import (
    AnalyticsResponse,
    ClickEventRequest,
    ClickIdResponse,
    EventIdResponse,
    PruneResponse,
    SearchEventRequest,
)
from pos_search.services.search.normalizer import parse_count

router = APIRouter(prefix="/search", tags=["analytics"])
logger = get_logger("pos_search.api.v1.analytics")


@router.post("/events", response_model=dict[str, str])
def ingest_event(
    engine: EngineDep,
    body: Annotated[dict[str, Any], Body(description='{"type": "search"|"click", ...}')],
):
    """Generic event ingestion."""
    return engine.ingest_event(body)


@router.post("/events/search", response_model=EventIdResponse)
def record_search_event(engine: EngineDep, body: SearchEventRequest):
    event_id = engine.record_search_event(body.query_text, body.result_count, body.user_id)
    return EventIdResponse(event_id=event_id)


@router.post("/events/click", response_model=ClickIdResponse)
def record_click_event(engine: EngineDep, body: ClickEventRequest):
    click_id = engine.record_click_event(body.event_id, body.entry_id)
    logger.info("Click on %s for event %s", body.entry_id, body.event_id)
    return ClickIdResponse(click_id=click_id)


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(
    engine: EngineDep,
    kind: Annotated[str, Query(alias="type", description="popular, no-results, trends, click-through")],
    limit: str | None = None,
    days: str | None = None,
):
    """Rollups recomputed over the last `days` days."""
    limit = parse_count(limit, "limit", 10)
    days = parse_count(days, "days", 30)
    rows = engine.get_analytics(kind, limit, days)
    return AnalyticsResponse(type=kind, limit=limit, days=days, data=[asdict(r) for r in rows])


@router.post("/maintenance/prune", response_model=PruneResponse)
def prune(engine: EngineDep):
    """Apply configured retention windows (no-op when retention is unbounded)."""
    counts = engine.prune()
    logger.info("Prune finished: %s", counts)
    return PruneResponse(**counts)
