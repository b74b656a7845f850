"""Per-task log correlation: trace and span ids plus the bundle being searched.

Each asyncio task inherits a copy of the context, so concurrent clients
working on different bundles keep their own ``base_path`` in log records.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace
from uuid import uuid4


@dataclass(frozen=True)
class LogContext:
    """Identifiers attached to every JSON log record."""

    trace_id: str
    span_id: str
    base_path: str | None = None

    @classmethod
    def fresh(cls) -> LogContext:
        ident = uuid4().hex
        return cls(trace_id=ident, span_id=ident[:16])


_log_context: ContextVar[LogContext | None] = ContextVar("pagefind_log_context", default=None)


def current_context() -> LogContext:
    """Return the task's context, starting a new trace on first use."""
    ctx = _log_context.get()
    if ctx is None:
        ctx = LogContext.fresh()
        _log_context.set(ctx)
    return ctx


def bind_bundle(base_path: str) -> LogContext:
    """Tag subsequent log records in this task with the bundle location."""
    ctx = replace(current_context(), base_path=base_path)
    _log_context.set(ctx)
    return ctx


def bind_span(span_id: str, trace_id: str | None = None) -> LogContext:
    """Follow the active OpenTelemetry span; the bundle tag is kept."""
    ctx = current_context()
    ctx = replace(ctx, span_id=span_id, trace_id=trace_id or ctx.trace_id)
    _log_context.set(ctx)
    return ctx


def clear_context() -> None:
    _log_context.set(None)
