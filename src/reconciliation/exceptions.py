"""
Exceptions for Column Reconciliation

Defines the error kinds raised while configuring sources, connecting to them,
reading column extracts and validating batch input.
"""

from typing import Optional


class ReconciliationError(Exception):
    """Base class for all reconciliation errors."""


class ConfigError(ReconciliationError):
    """Missing or invalid connection parameters. Raised before any I/O."""


class SourceConnectionError(ReconciliationError):
    """
    Source unreachable or authentication failed.

    Attributes:
        source: Human-readable source name (e.g. "PostgreSQL")
        cause: Underlying exception, if any
    """

    def __init__(self, source: str, message: str, cause: Optional[BaseException] = None):
        self.source = source
        self.cause = cause
        super().__init__(f"{source} connection failed: {message}")


class SourceReadError(ReconciliationError):
    """
    Column extraction failed for one side of a pair.

    Scoped to a single column pair; the orchestrator converts it into a
    pair-level failure instead of aborting the batch.

    Attributes:
        source: Source name
        table: Table being read
        column: Column being read
        cause: Underlying exception
    """

    def __init__(
        self,
        source: str,
        table: str,
        column: str,
        cause: Optional[BaseException] = None
    ):
        self.source = source
        self.table = table
        self.column = column
        self.cause = cause
        detail = str(cause) if cause is not None else "unknown error"
        super().__init__(f"{source} read error: {detail}")


class BatchInputError(ReconciliationError):
    """The batch input itself is invalid (empty or absent pair list)."""
