"""
Reconciliation Module for Column Reconciliation

Reconciles column values between a relational database (source A) and a
cloud warehouse (source B), keyed by a join column.

Main components:
- normalizer: Value canonicalization for comparison
- extractor: Full-column extraction into a key index
- reconciler: Per-pair key classification and sampling
- orchestrator: Batch processing with per-pair failure isolation
- working_set: Ordered, editable set of column pairs

Usage:
    from src.reconciliation import BatchOrchestrator, PairWorkingSet, ColumnRef

    pairs = PairWorkingSet()
    pairs.add(ColumnRef("customers", "email"), ColumnRef("customers", "email"), key_column_a="id")

    orchestrator = BatchOrchestrator(session)
    response = orchestrator.reconcile(pairs.to_list())
"""

from src.reconciliation.exceptions import (
    BatchInputError,
    ConfigError,
    ReconciliationError,
    SourceConnectionError,
    SourceReadError,
)
from src.reconciliation.extractor import ColumnExtractor
from src.reconciliation.models import (
    BatchResponse,
    ClassifiedRow,
    ColumnPair,
    ColumnRef,
    PairFailure,
    PairReconciliation,
    ReconciliationCounts,
    RowStatus,
)
from src.reconciliation.normalizer import ValueNormalizer
from src.reconciliation.orchestrator import BatchOrchestrator
from src.reconciliation.reconciler import PairReconciler
from src.reconciliation.working_set import PairWorkingSet, filter_tables

__all__ = [
    "BatchInputError",
    "BatchOrchestrator",
    "BatchResponse",
    "ClassifiedRow",
    "ColumnExtractor",
    "ColumnPair",
    "ColumnRef",
    "ConfigError",
    "PairFailure",
    "PairReconciler",
    "PairReconciliation",
    "PairWorkingSet",
    "ReconciliationCounts",
    "ReconciliationError",
    "RowStatus",
    "SourceConnectionError",
    "SourceReadError",
    "ValueNormalizer",
    "filter_tables",
]

__version__ = "1.0.0"
