"""
Correlation IDs for reconciliation batches.

Each batch runs inside a CorrelationContext; every log record emitted while
the batch runs, including from worker threads started with a copied context,
carries the batch's id.
"""

import uuid
import contextvars
from typing import Optional
import logging

logger = logging.getLogger(__name__)

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id',
    default=None
)


def generate_correlation_id() -> str:
    """Return a new UUID4 string."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Current correlation ID, or None outside a batch."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """
    Set the correlation ID in the current context.

    Args:
        correlation_id: Non-empty ID

    Returns:
        Token that restores the previous value

    Raises:
        ValueError: If correlation_id is empty or not a string
    """
    if not correlation_id or not isinstance(correlation_id, str):
        raise ValueError("Correlation ID must be a non-empty string")

    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Scope a correlation ID to a block.

    Nested contexts restore the outer ID on exit.
    """

    def __init__(self, correlation_id: Optional[str] = None):
        """
        Args:
            correlation_id: ID to use; a new one is generated if omitted
        """
        self.correlation_id = correlation_id
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        if not self.correlation_id:
            self.correlation_id = generate_correlation_id()

        self._token = set_correlation_id(self.correlation_id)
        logger.debug(f"Entered correlation context: {self.correlation_id}")
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)
            self._token = None


class CorrelationIdFilter(logging.Filter):
    """Adds correlation_id to every log record ("N/A" outside a batch)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "N/A"
        return True
