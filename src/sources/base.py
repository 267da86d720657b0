"""
Source handle interface shared by the relational and warehouse backends.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnInfo:
    """Column name and declared type as reported by a source catalog."""

    name: str
    data_type: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.data_type}


class SourceHandle(ABC):
    """
    An open connection to one data source.

    Subclasses browse the source catalog and run full-column scans.
    """

    name: str = "source"

    @abstractmethod
    def list_tables(self) -> List[str]:
        """Return table names, ordered."""

    @abstractmethod
    def list_columns(self, table: str) -> List[ColumnInfo]:
        """Return the columns of a table in ordinal order."""

    @abstractmethod
    def query_column(
        self,
        table: str,
        column: str,
        key_column: str,
        timeout_seconds: Optional[float] = None
    ) -> Iterable[Tuple[Any, Any]]:
        """
        Scan a full column.

        Args:
            table: Table name
            column: Value column name
            key_column: Join key column name
            timeout_seconds: Optional deadline for the query

        Returns:
            Iterable of (key, value) tuples
        """

    @abstractmethod
    def close(self) -> None:
        """Release the handle's resources."""

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
