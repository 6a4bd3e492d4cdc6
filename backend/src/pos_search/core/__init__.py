"""Core utilities: tracing, exceptions, logging, time."""

from pos_search.core.clock import utcnow
from pos_search.core.exceptions import (
    BackgroundRecordingFailure,
    InvalidQueryError,
    NotFoundError,
    SearchServiceError,
    StoreUnavailableError,
)
from pos_search.core.logging import get_logger, setup_logging
from pos_search.core.tracing import get_trace_id, set_trace_id

__all__ = [
    "SearchServiceError",
    "InvalidQueryError",
    "NotFoundError",
    "StoreUnavailableError",
    "BackgroundRecordingFailure",
    "get_logger",
    "setup_logging",
    "get_trace_id",
    "set_trace_id",
    "utcnow",
]
