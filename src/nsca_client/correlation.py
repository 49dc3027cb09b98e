"""
Correlation IDs for check deliveries.

Each check message processed by the endpoint runner gets its own ID, stored
in a contextvar so that every log line emitted while that message is being
connected, encoded and written carries it. The same ID is returned to the
caller in SendResult.correlation_id.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "generate_correlation_id",
    "get_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "nsca_correlation_id",
    default=None,
)


def generate_correlation_id() -> str:
    """Return a new correlation ID (UUID4 hex, no dashes)."""
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    """Correlation ID of the current context, or None outside any delivery."""
    return _correlation_id.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str]:
    """
    Scope a correlation ID to a block.

    A new ID is generated unless one is given. The previous ID is restored on
    exit, so nested scopes (a CLI run wrapping per-message deliveries) work.

    Example:
        with correlation_context() as corr_id:
            await session.send(message)  # log lines carry corr_id
    """
    token = _correlation_id.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id.get() or ""
    finally:
        _correlation_id.reset(token)
