"""Main API router."""

from fastapi import APIRouter

from pos_search.api.v1 import analytics, search

api_router = APIRouter()

api_router.include_router(search.router)
api_router.include_router(analytics.router)
