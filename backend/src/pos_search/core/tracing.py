"""Request tracing with trace_id."""

import uuid
from contextvars import ContextVar

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def get_trace_id() -> str:
    """Get current trace_id, generating one for this context if unset."""
    tid = trace_id_var.get()
    if not tid:
        tid = uuid.uuid4().hex
        trace_id_var.set(tid)
    return tid


def set_trace_id(trace_id: str | None = None) -> str:
    """Bind trace_id (or a fresh one) to the current context and return it."""
    tid = (trace_id or "").strip()[:64] or uuid.uuid4().hex
    trace_id_var.set(tid)
    return tid
