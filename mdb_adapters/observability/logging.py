"""
Contextual logging for adapters.

Adapter loggers stamp every record with the collection they serve, the
current correlation ID and whatever request fields the caller bound with
``set_request_context``, so one request can be followed across adapters:

    set_correlation_id(request.headers.get("x-request-id"))
    set_request_context(user_id=user.id)
    await drivers.upsert_one(form)   # records carry correlation_id, user_id, collection
"""

import contextvars
import logging
import uuid
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "mdb_adapters_correlation_id", default=None
)
_request_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "mdb_adapters_request_context", default=None
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind ``correlation_id`` (a fresh uuid4 when None) and return it."""
    correlation_id = correlation_id or uuid.uuid4().hex
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def set_request_context(**fields: Any) -> None:
    """Replace the request fields attached to subsequent records."""
    _request_context.set(dict(fields))


def clear_request_context() -> None:
    _request_context.set(None)


def get_logging_context() -> dict[str, Any]:
    """Correlation ID plus request fields bound in the current context."""
    context = dict(_request_context.get() or {})
    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Merges, lowest precedence first: the bound context, the adapter's
    static fields, then the call's own ``extra``.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {
            **get_logging_context(),
            **(self.extra or {}),
            **(kwargs.get("extra") or {}),
        }
        return msg, kwargs


def get_logger(name: str, **static_context: Any) -> ContextualLoggerAdapter:
    """Logger whose records always carry ``static_context`` (e.g. ``collection``)."""
    return ContextualLoggerAdapter(logging.getLogger(name), static_context)


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Emit one summary record for ``operation``.

    ``operation``, ``success`` and ``duration_ms`` (rounded to 2 places)
    become record attributes alongside ``context``.
    """
    fields: dict[str, Any] = {"operation": operation, "success": success, **context}
    message = f"Operation: {operation}" if success else f"Operation failed: {operation}"
    if duration_ms is not None:
        fields["duration_ms"] = round(duration_ms, 2)
        message = f"{message} (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=fields)
