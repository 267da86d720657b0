"""
Column Extractor for Column Reconciliation

Pulls one full column's (key, value) pairs from a source handle and indexes
them by key.
"""

import logging
import time
from typing import Optional, TYPE_CHECKING

from src.reconciliation.exceptions import SourceReadError
from src.reconciliation.models import KeyedIndex

if TYPE_CHECKING:
    from src.monitoring.metrics import ReconciliationMetrics
    from src.sources.base import SourceHandle

logger = logging.getLogger(__name__)


class ColumnExtractor:
    """
    Builds a KeyedIndex from a full-column scan.

    Keys are stringified with str(); rows with a NULL key cannot take part in
    reconciliation and are dropped. When a key repeats, the last value wins.
    """

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        metrics: Optional["ReconciliationMetrics"] = None
    ):
        """
        Initialize the extractor.

        Args:
            timeout_seconds: Per-extraction deadline passed to the source
            metrics: Optional metrics sink
        """
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics

    def extract(
        self,
        source: "SourceHandle",
        table: str,
        column: str,
        key_column: str
    ) -> KeyedIndex:
        """
        Extract a column into a key index.

        Args:
            source: Open source handle
            table: Table name
            column: Value column name
            key_column: Join key column name

        Returns:
            Dictionary mapping key string -> raw value

        Raises:
            SourceReadError: If the source is unreachable, the table or column
                does not exist, the query fails or the deadline expires
        """
        logger.debug(f"Extracting {source.name} {table}.{column} keyed on {key_column}")
        start = time.monotonic()

        index: KeyedIndex = {}
        null_keys = 0
        duplicates = 0
        rows = 0

        try:
            for key, value in source.query_column(
                table,
                column,
                key_column,
                timeout_seconds=self.timeout_seconds
            ):
                rows += 1
                if key is None:
                    null_keys += 1
                    continue

                key_str = str(key)
                if key_str in index:
                    duplicates += 1
                index[key_str] = value

        except SourceReadError:
            raise
        except Exception as e:
            logger.error(f"Failed to extract {source.name} {table}.{column}: {e}")
            raise SourceReadError(source.name, table, column, e) from e

        duration = time.monotonic() - start

        if null_keys:
            logger.debug(f"Dropped {null_keys} rows with NULL {key_column} from {table}")
        if duplicates:
            logger.warning(
                f"Found {duplicates} duplicate keys in {source.name} {table}.{key_column}; "
                f"last value kept"
            )

        if self.metrics is not None:
            self.metrics.record_extraction(source.name, duration, rows)

        logger.info(
            f"Extracted {len(index)} keys from {source.name} {table}.{column} "
            f"in {duration:.2f}s",
            extra={"source": source.name, "table": table, "duration": duration}
        )
        return index
