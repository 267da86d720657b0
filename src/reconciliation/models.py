"""
Data model for column reconciliation.

Column references, column pairs, classified rows and the per-pair
success/failure result types returned by the reconciler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# key -> raw value, built fresh per extraction
KeyedIndex = Dict[str, Any]


@dataclass(frozen=True)
class ColumnRef:
    """One column inside one source."""

    table: str
    column: str
    data_type: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"table": self.table, "name": self.column, "type": self.data_type}


@dataclass(frozen=True)
class ColumnPair:
    """
    A source A column matched against a source B column.

    The join key column on each side is explicit; nothing is inferred from
    naming conventions.

    Attributes:
        pair_id: Opaque identifier, unique within a working set
        source_a: Column in source A (relational database)
        source_b: Column in source B (cloud warehouse)
        key_column_a: Join key column in source A's table
        key_column_b: Join key column in source B's table
    """

    pair_id: str
    source_a: ColumnRef
    source_b: ColumnRef
    key_column_a: str
    key_column_b: str

    @property
    def label(self) -> str:
        return (
            f"{self.source_a.table}::{self.source_a.column}__"
            f"{self.source_b.table}::{self.source_b.column}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.pair_id,
            "a": self.source_a.to_dict(),
            "b": self.source_b.to_dict(),
            "keyColumnA": self.key_column_a,
            "keyColumnB": self.key_column_b,
        }


class RowStatus(str, Enum):
    """Classification bucket for a single key."""

    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    MISSING_IN_B = "MISSING_IN_B"
    MISSING_IN_A = "MISSING_IN_A"


@dataclass
class ClassifiedRow:
    """A sampled key with display values from each side."""

    key: str
    value_a: Optional[str]
    value_b: Optional[str]
    status: RowStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.key,
            "a": self.value_a,
            "b": self.value_b,
            "status": self.status.value,
        }


@dataclass
class ReconciliationCounts:
    """Exact bucket cardinalities for one pair."""

    matched: int = 0
    mismatched: int = 0
    only_in_a: int = 0
    only_in_b: int = 0

    @property
    def total(self) -> int:
        return self.matched + self.mismatched + self.only_in_a + self.only_in_b

    def to_dict(self) -> Dict[str, int]:
        return {
            "matched": self.matched,
            "mismatched": self.mismatched,
            "onlyInA": self.only_in_a,
            "onlyInB": self.only_in_b,
        }


@dataclass
class PairReconciliation:
    """Successful reconciliation of one pair."""

    pair_id: str
    pair: ColumnPair
    counts: ReconciliationCounts
    sample: List[ClassifiedRow] = field(default_factory=list)

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pairId": self.pair_id,
            "label": self.pair.label,
            "pair": self.pair.to_dict(),
            "counts": self.counts.to_dict(),
            "sample": [row.to_dict() for row in self.sample],
        }


@dataclass
class PairFailure:
    """
    Pair-scoped failure.

    Attributes:
        pair_id: Identifier of the failed pair
        error: Human-readable error description
        pair: The original pair, when known
        side: "a" or "b" when the failure came from one extraction
    """

    pair_id: str
    error: str
    pair: Optional[ColumnPair] = None
    side: Optional[str] = None

    ok = False

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"pairId": self.pair_id, "error": self.error}
        if self.pair is not None:
            result["label"] = self.pair.label
            result["pair"] = self.pair.to_dict()
        return result


ReconciliationResult = Union[PairReconciliation, PairFailure]


@dataclass
class BatchResponse:
    """Aggregate response for one batch of pairs."""

    ok: bool
    results: Optional[List[ReconciliationResult]] = None
    error: Optional[str] = None

    @property
    def failed(self) -> List[PairFailure]:
        return [r for r in self.results or [] if isinstance(r, PairFailure)]

    @property
    def succeeded(self) -> List[PairReconciliation]:
        return [r for r in self.results or [] if isinstance(r, PairReconciliation)]

    def to_dict(self) -> Dict[str, Any]:
        response: Dict[str, Any] = {"ok": self.ok}
        if self.results is not None:
            response["results"] = [r.to_dict() for r in self.results]
        if self.error is not None:
            response["error"] = self.error
        return response
