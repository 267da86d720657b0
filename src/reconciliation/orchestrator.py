"""
Batch Orchestrator for Column Reconciliation

Runs the pair reconciler over an ordered list of column pairs and aggregates
the results. One failing pair never aborts the batch.
"""

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, TYPE_CHECKING

from src.reconciliation.exceptions import BatchInputError
from src.reconciliation.models import (
    BatchResponse,
    ColumnPair,
    PairFailure,
    PairReconciliation,
    ReconciliationResult,
)
from src.reconciliation.reconciler import PairReconciler
from src.utils.correlation import CorrelationContext

if TYPE_CHECKING:
    from src.monitoring.metrics import ReconciliationMetrics
    from src.sources.session import SourceSession

logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """
    Reconciles a working set of column pairs against a source session.

    Pairs run sequentially by default. With max_workers > 1 they run on a
    bounded thread pool; results keep the input order either way.
    """

    def __init__(
        self,
        session: "SourceSession",
        reconciler: Optional[PairReconciler] = None,
        max_workers: int = 1,
        metrics: Optional["ReconciliationMetrics"] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            session: Session owning both source handles
            reconciler: Pair reconciler (default settings if not provided)
            max_workers: Upper bound on pairs processed concurrently
            metrics: Optional metrics sink

        Raises:
            ValueError: If max_workers is less than 1
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self.session = session
        self.reconciler = reconciler or PairReconciler()
        self.max_workers = max_workers
        self.metrics = metrics

    def reconcile(self, pairs: Optional[Sequence[ColumnPair]]) -> BatchResponse:
        """
        Reconcile every pair and aggregate the results.

        Args:
            pairs: Ordered column pairs

        Returns:
            BatchResponse with one result per input pair, or ok=False when the
            input is empty or an unexpected batch-level error occurs
        """
        try:
            self.validate(pairs)
        except BatchInputError as e:
            logger.warning(f"Rejected batch: {e}")
            return BatchResponse(ok=False, error=str(e))

        with CorrelationContext() as batch_id:
            logger.info(f"Starting batch {batch_id} with {len(pairs)} pairs (max_workers={self.max_workers})")
            start = time.monotonic()

            try:
                if self.max_workers == 1 or len(pairs) == 1:
                    results = [self._reconcile_one(pair) for pair in pairs]
                else:
                    results = self._reconcile_parallel(pairs)
            except Exception as e:
                logger.error(f"Batch {batch_id} failed: {e}", exc_info=True)
                if self.metrics is not None:
                    self.metrics.record_batch("error", time.monotonic() - start)
                return BatchResponse(ok=False, error=str(e))

            duration = time.monotonic() - start
            failures = sum(1 for r in results if isinstance(r, PairFailure))
            logger.info(
                f"Batch {batch_id} completed in {duration:.2f}s: "
                f"{len(results) - failures} succeeded, {failures} failed"
            )
            if self.metrics is not None:
                self.metrics.record_batch("success", duration)

            return BatchResponse(ok=True, results=results)

    def validate(self, pairs: Optional[Sequence[ColumnPair]]) -> None:
        """
        Reject invalid batch input before any I/O.

        Raises:
            BatchInputError: If pairs is None or empty
        """
        if not pairs:
            raise BatchInputError("No pairs provided")

    def _reconcile_parallel(self, pairs: Sequence[ColumnPair]) -> List[ReconciliationResult]:
        slots: List[Optional[ReconciliationResult]] = [None] * len(pairs)
        workers = min(self.max_workers, len(pairs))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reconcile") as executor:
            # each task runs in a copy of the caller's context to keep the batch id
            futures = [
                executor.submit(contextvars.copy_context().run, self._reconcile_one, pair)
                for pair in pairs
            ]
            for i, future in enumerate(futures):
                slots[i] = future.result()

        return slots

    def _reconcile_one(self, pair: ColumnPair) -> ReconciliationResult:
        start = time.monotonic()
        try:
            result = self.reconciler.reconcile(
                pair,
                self.session.source_a,
                self.session.source_b
            )
        except Exception as e:
            logger.error(f"Unexpected error reconciling pair {pair.pair_id}: {e}", exc_info=True)
            result = PairFailure(pair_id=pair.pair_id, error=str(e) or type(e).__name__, pair=pair)

        if self.metrics is not None:
            duration = time.monotonic() - start
            if isinstance(result, PairReconciliation):
                self.metrics.record_pair(pair.label, "success", duration, result.counts)
            else:
                self.metrics.record_pair(pair.label, "failure", duration)

        return result
