"""Event and analytics schemas."""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class SearchEventRequest(BaseModel):
    """Search event recorded by a client that ran its own search."""

    query_text: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("queryText", "query", "query_text"),
    )
    result_count: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("resultCount", "result_count"),
    )
    user_id: str | None = Field(default=None, validation_alias=AliasChoices("userId", "user_id"))


class ClickEventRequest(BaseModel):
    event_id: str = Field(..., min_length=1, validation_alias=AliasChoices("eventId", "event_id"))
    entry_id: str = Field(..., min_length=1, validation_alias=AliasChoices("entryId", "entry_id"))


class EventIdResponse(BaseModel):
    event_id: str


class ClickIdResponse(BaseModel):
    click_id: str


class AnalyticsResponse(BaseModel):
    type: str
    limit: int
    days: int
    data: list[dict[str, Any]]


class PruneResponse(BaseModel):
    events: int
    clicks: int
    suggestions: int
