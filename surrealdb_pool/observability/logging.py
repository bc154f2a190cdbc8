"""
Contextual logging for SURREALDB_POOL.

Log records emitted while a pool is working carry the pool's identity
(name, address, namespace, database) and the caller's correlation ID,
without every call site having to pass them.

Usage:
    with pool_context("orders", address="ws://db:8000"):
        logger.info("Created connection")   # record.pool == "orders"

Pool context is scoped: leaving the block restores whatever context the
task had before, so a pool never leaks its identity into the caller.
"""

import contextvars
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "surrealdb_pool_correlation_id", default=None
)

_pool_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "surrealdb_pool_context", default=None
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Tag the current task's log records with a correlation ID.

    Returns:
        The ID that was set (a new UUID if none was given)
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def set_pool_context(pool_name: str | None = None, **fields: Any) -> contextvars.Token:
    """
    Attach pool identity to subsequent log records in this task.

    Returns:
        Token for reset_pool_context()
    """
    return _pool_context.set({"pool": pool_name, **fields})


def reset_pool_context(token: contextvars.Token) -> None:
    """Restore the pool context that was active before set_pool_context()."""
    _pool_context.reset(token)


@contextmanager
def pool_context(pool_name: str | None = None, **fields: Any) -> Iterator[None]:
    """Pool identity for the records logged inside the block."""
    token = set_pool_context(pool_name, **fields)
    try:
        yield
    finally:
        reset_pool_context(token)


def get_logging_context() -> dict[str, Any]:
    """Timestamp, correlation ID and pool identity for the current task."""
    context: dict[str, Any] = {"timestamp": datetime.now().isoformat()}

    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id

    context.update(_pool_context.get() or {})
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that merges the logging context into each record's extra.

    Explicit extra keys win over context keys of the same name.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    """Contextual logger for a module (pass __name__)."""
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **fields: Any,
) -> None:
    """
    Log the outcome of a pool operation as one structured record.

    Args:
        logger: Logger or adapter to emit through
        operation: Operation name (e.g. "pool.close")
        level: Log level
        success: Whether the operation succeeded
        duration_ms: Duration in milliseconds, if measured
        **fields: Additional structured fields
    """
    record_fields: dict[str, Any] = {
        **get_logging_context(),
        "operation": operation,
        "success": success,
        **fields,
    }
    verb = "Operation" if success else "Operation failed"
    message = f"{verb}: {operation}"
    if duration_ms is not None:
        record_fields["duration_ms"] = round(duration_ms, 2)
        message += f" (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=record_fields)
