"""
Working set of column pairs selected by the operator.
"""

import logging
import uuid
from typing import Iterator, List, Optional

from src.reconciliation.models import ColumnPair, ColumnRef

logger = logging.getLogger(__name__)


def generate_pair_id() -> str:
    """Short random pair identifier."""
    return uuid.uuid4().hex[:8]


def filter_tables(tables: List[str], query: Optional[str]) -> List[str]:
    """
    Filter table names by a case-insensitive substring.

    Args:
        tables: Table names
        query: Search text; blank returns all tables

    Returns:
        Matching table names in their original order
    """
    needle = (query or "").strip().lower()
    if not needle:
        return list(tables)
    return [t for t in tables if needle in t.lower()]


class PairWorkingSet:
    """Ordered, editable collection of column pairs."""

    def __init__(self, pairs: Optional[List[ColumnPair]] = None):
        self._pairs: List[ColumnPair] = []
        for pair in pairs or []:
            self.append(pair)

    def add(
        self,
        source_a: ColumnRef,
        source_b: ColumnRef,
        key_column_a: str,
        key_column_b: Optional[str] = None,
        pair_id: Optional[str] = None
    ) -> ColumnPair:
        """
        Create a pair from two selected columns and append it.

        Args:
            source_a: Column in source A
            source_b: Column in source B
            key_column_a: Join key column in source A
            key_column_b: Join key column in source B (defaults to key_column_a)
            pair_id: Explicit identifier (generated if not provided)

        Returns:
            The new pair
        """
        pair = ColumnPair(
            pair_id=pair_id or generate_pair_id(),
            source_a=source_a,
            source_b=source_b,
            key_column_a=key_column_a,
            key_column_b=key_column_b or key_column_a
        )
        self.append(pair)
        return pair

    def append(self, pair: ColumnPair) -> None:
        """
        Append an existing pair.

        Raises:
            ValueError: If a pair with the same id is already present
        """
        if self.get(pair.pair_id) is not None:
            raise ValueError(f"Duplicate pair id: {pair.pair_id}")
        self._pairs.append(pair)
        logger.debug(f"Added pair {pair.pair_id} ({pair.label})")

    def remove(self, pair_id: str) -> bool:
        """
        Remove a pair by id.

        Returns:
            True if a pair was removed
        """
        before = len(self._pairs)
        self._pairs = [p for p in self._pairs if p.pair_id != pair_id]
        removed = len(self._pairs) < before
        if removed:
            logger.debug(f"Removed pair {pair_id}")
        return removed

    def get(self, pair_id: str) -> Optional[ColumnPair]:
        for pair in self._pairs:
            if pair.pair_id == pair_id:
                return pair
        return None

    def clear(self) -> None:
        self._pairs = []

    def to_list(self) -> List[ColumnPair]:
        return list(self._pairs)

    def __iter__(self) -> Iterator[ColumnPair]:
        return iter(list(self._pairs))

    def __len__(self) -> int:
        return len(self._pairs)
