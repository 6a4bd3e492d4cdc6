"""FastAPI application entry point."""

import time
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# Load backend/.env into os.environ (pydantic-settings only reads its own fields)
load_dotenv(Path(__file__).resolve().parents[2] / ".env")

from pos_search.api.router import api_router
from pos_search.config import Settings, get_settings
from pos_search.core.exceptions import (
    InvalidQueryError,
    NotFoundError,
    SearchServiceError,
    StoreUnavailableError,
)
from pos_search.core.logging import get_logger, setup_logging
from pos_search.core.tracing import get_trace_id, set_trace_id
from pos_search.services.engine import SearchEngine

logger = get_logger("pos_search.main")


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Set trace_id from X-Trace-Id header or generate one; echo it back."""

    async def dispatch(self, request: Request, call_next):
        tid = set_trace_id(request.headers.get("X-Trace-Id"))
        response = await call_next(request)
        response.headers["X-Trace-Id"] = tid
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log incoming requests and responses with status and duration."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        method = request.method
        path = request.url.path
        client = request.client.host if request.client else "?"
        logger.info("Request %s %s from %s", method, path, client)
        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.exception("Request error %s %s after %.0fms: %s", method, path, duration_ms, exc)
            raise
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info("Response %s %s -> %d (%.0fms)", method, path, response.status_code, duration_ms)
        if response.status_code >= 400:
            logger.warning("Request failed: %s %s -> %d", method, path, response.status_code)
        return response


_STATUS = (
    (InvalidQueryError, 400),
    (NotFoundError, 404),
    (StoreUnavailableError, 503),
)


def search_error_handler(request: Request, exc: SearchServiceError) -> JSONResponse:
    """Map the service exception hierarchy onto HTTP statuses."""
    status = next((code for cls, code in _STATUS if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.message, extra={"details": exc.details})
    else:
        logger.warning("%s: %s", type(exc).__name__, exc.message, extra={"details": exc.details})
    return JSONResponse(
        status_code=status,
        content={"detail": exc.message, "trace_id": get_trace_id(), **(exc.details or {})},
    )


def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Uncaught exceptions -> 500 with trace id."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "trace_id": get_trace_id()},
    )


def create_app(*, settings: Settings | None = None, engine: SearchEngine | None = None) -> FastAPI:
    """Build the application. A supplied engine is used as-is and not closed on shutdown."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(
            level=settings.log_level,
            format_type=settings.log_format,
            log_file=str(settings.log_file_path) if settings.log_file_path else None,
        )
        logger.info("Starting POS Search Service")
        owned = None
        if getattr(app.state, "engine", None) is None:
            owned = app.state.engine = SearchEngine.from_settings(settings)
        yield
        logger.info("Shutting down POS Search Service")
        if owned is not None:
            owned.close()
            app.state.engine = None

    app = FastAPI(
        title="POS Search Service",
        description="Product search, autosuggestions and search analytics",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.engine = engine

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(TraceIdMiddleware)  # added last = outermost, sets trace_id for all logs
    app.add_exception_handler(SearchServiceError, search_error_handler)
    app.add_exception_handler(Exception, exception_handler)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    app.include_router(api_router, prefix="/v1")
    return app


app = create_app()
