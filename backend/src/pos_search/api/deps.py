"""API dependencies."""

from typing import Annotated

from fastapi import Depends, Header, Request

from pos_search.services.engine import SearchEngine


def get_engine(request: Request) -> SearchEngine:
    """Engine instance attached to the application at startup."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise RuntimeError("Search engine not initialized")
    return engine


def get_user_id(
    x_user_id: Annotated[str | None, Header(description="Caller's user id, if known")] = None,
) -> str | None:
    if not x_user_id:
        return None
    return x_user_id.strip() or None


EngineDep = Annotated[SearchEngine, Depends(get_engine)]
UserIdDep = Annotated[str | None, Depends(get_user_id)]
