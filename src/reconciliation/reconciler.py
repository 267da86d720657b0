"""
Pair Reconciler for Column Reconciliation

Extracts both sides of a column pair, classifies every key and builds a
bounded sample of the discrepancies.
"""

import logging
from typing import List, Optional, Tuple, TYPE_CHECKING

from src.reconciliation.exceptions import SourceReadError
from src.reconciliation.extractor import ColumnExtractor
from src.reconciliation.models import (
    ClassifiedRow,
    ColumnPair,
    KeyedIndex,
    PairFailure,
    PairReconciliation,
    ReconciliationCounts,
    ReconciliationResult,
    RowStatus,
)
from src.reconciliation.normalizer import ValueNormalizer

if TYPE_CHECKING:
    from src.sources.base import SourceHandle

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_LIMIT = 200


class PairReconciler:
    """
    Reconciles one column pair.

    Keys are classified as:
    - MATCH: present on both sides, values equal after normalization
    - MISMATCH: present on both sides, values differ
    - MISSING_IN_B: present only in source A
    - MISSING_IN_A: present only in source B
    """

    def __init__(
        self,
        extractor: Optional[ColumnExtractor] = None,
        normalizer: Optional[ValueNormalizer] = None,
        sample_limit: int = DEFAULT_SAMPLE_LIMIT
    ):
        if sample_limit < 0:
            raise ValueError(f"sample_limit must be >= 0, got {sample_limit}")

        self.extractor = extractor or ColumnExtractor()
        self.normalizer = normalizer or ValueNormalizer()
        self.sample_limit = sample_limit
        logger.debug(f"Initialized PairReconciler (sample_limit={sample_limit})")

    def reconcile(
        self,
        pair: ColumnPair,
        source_a: Optional["SourceHandle"],
        source_b: Optional["SourceHandle"]
    ) -> ReconciliationResult:
        """
        Reconcile one pair. Never raises for extraction problems.

        Source B is not queried when source A fails.

        Args:
            pair: Column pair to reconcile
            source_a: Handle for source A (None when disconnected)
            source_b: Handle for source B (None when disconnected)

        Returns:
            PairReconciliation on success, PairFailure otherwise
        """
        logger.info(f"Reconciling pair {pair.pair_id} ({pair.label})")

        index_a, failure = self._extract_side(
            pair, "a", source_a, pair.source_a.table, pair.source_a.column, pair.key_column_a
        )
        if failure is not None:
            return failure

        index_b, failure = self._extract_side(
            pair, "b", source_b, pair.source_b.table, pair.source_b.column, pair.key_column_b
        )
        if failure is not None:
            return failure

        counts, sample = self.classify(index_a, index_b)

        logger.info(
            f"Pair {pair.pair_id}: {counts.matched} matched, {counts.mismatched} mismatched, "
            f"{counts.only_in_a} only in A, {counts.only_in_b} only in B",
            extra={"pair_id": pair.pair_id, "counts": counts.to_dict()}
        )

        return PairReconciliation(
            pair_id=pair.pair_id,
            pair=pair,
            counts=counts,
            sample=sample
        )

    def classify(
        self,
        index_a: KeyedIndex,
        index_b: KeyedIndex
    ) -> Tuple[ReconciliationCounts, List[ClassifiedRow]]:
        """
        Classify every key of both indices and build the display sample.

        index_b is consumed: matched keys are removed from it.

        Args:
            index_a: Source A key index
            index_b: Source B key index

        Returns:
            Tuple of (exact counts, sample rows)
        """
        matched = 0
        mismatched: List[Tuple[str, object, object]] = []
        missing_in_b: List[Tuple[str, object]] = []

        for key, value_a in index_a.items():
            if key in index_b:
                value_b = index_b.pop(key)
                if self.normalizer.values_equal(value_a, value_b):
                    matched += 1
                else:
                    mismatched.append((key, value_a, value_b))
            else:
                missing_in_b.append((key, value_a))

        missing_in_a = list(index_b.items())

        counts = ReconciliationCounts(
            matched=matched,
            mismatched=len(mismatched),
            only_in_a=len(missing_in_b),
            only_in_b=len(missing_in_a)
        )

        sample = self._build_sample(mismatched, missing_in_b, missing_in_a)
        return counts, sample

    def _build_sample(
        self,
        mismatched: List[Tuple[str, object, object]],
        missing_in_b: List[Tuple[str, object]],
        missing_in_a: List[Tuple[str, object]]
    ) -> List[ClassifiedRow]:
        """Fill the sample MISMATCH first, then MISSING_IN_B, then MISSING_IN_A."""
        display = self.normalizer.display
        sample: List[ClassifiedRow] = []

        for key, value_a, value_b in mismatched[:self.sample_limit]:
            sample.append(ClassifiedRow(key, display(value_a), display(value_b), RowStatus.MISMATCH))

        remaining = self.sample_limit - len(sample)
        for key, value_a in missing_in_b[:remaining]:
            sample.append(ClassifiedRow(key, display(value_a), None, RowStatus.MISSING_IN_B))

        remaining = self.sample_limit - len(sample)
        for key, value_b in missing_in_a[:remaining]:
            sample.append(ClassifiedRow(key, None, display(value_b), RowStatus.MISSING_IN_A))

        return sample

    def _extract_side(
        self,
        pair: ColumnPair,
        side: str,
        source: Optional["SourceHandle"],
        table: str,
        column: str,
        key_column: str
    ) -> Tuple[Optional[KeyedIndex], Optional[PairFailure]]:
        if source is None:
            label = f"Source {side.upper()}"
            error = f"{label} read error: Not connected to {label}"
            logger.warning(f"Pair {pair.pair_id}: {error}")
            return None, PairFailure(pair_id=pair.pair_id, error=error, pair=pair, side=side)

        try:
            return self.extractor.extract(source, table, column, key_column), None
        except SourceReadError as e:
            logger.warning(f"Pair {pair.pair_id}: {e}")
            return None, PairFailure(pair_id=pair.pair_id, error=str(e), pair=pair, side=side)
