"""Centralized logging for the POS Search Service."""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pos_search.core.tracing import trace_id_var

# LogRecord attributes that are not user-supplied extras
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "trace_id", "taskName"}


class TraceIdFilter(logging.Filter):
    """Attach the current trace_id (or "-") to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = trace_id_var.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, extras included."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", "-"),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key in _RESERVED or value is None:
                continue
            try:
                json.dumps(value)
                payload[key] = value
            except (TypeError, ValueError):
                payload[key] = str(value)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(
    *,
    level: str = "INFO",
    format_type: str = "text",
    log_file: str | None = None,
) -> None:
    """
    Configure root logging. Call once at startup.

    Args:
        level: DEBUG, INFO, WARNING, ERROR, CRITICAL
        format_type: "text" (human-readable) or "json"
        log_file: Optional path to also write logs to
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Drop handlers from a previous call (uvicorn --reload, tests)
    for h in root.handlers[:]:
        root.removeHandler(h)

    trace_filter = TraceIdFilter()
    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(trace_id)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(trace_filter)
    root.addHandler(console)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setFormatter(formatter)
            fh.addFilter(trace_filter)
            root.addHandler(fh)
        except OSError as e:
            root.warning("Could not create log file %s: %s", log_file, e)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)  # request middleware logs instead


def get_logger(name: str) -> logging.Logger:
    """Get a logger; prefer the pos_search.* namespace."""
    return logging.getLogger(name)
