"""
Prometheus Metrics for Column Reconciliation

Tracks batch and pair outcomes, discrepancy counts and extraction timings.
Exposed over HTTP for scraping or pushed to a Pushgateway at the end of a
CLI run.
"""

import logging
from typing import Dict, Optional, TYPE_CHECKING
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    push_to_gateway,
    start_http_server,
)

if TYPE_CHECKING:
    from src.reconciliation.models import ReconciliationCounts

logger = logging.getLogger(__name__)


class ReconciliationMetrics:
    """Prometheus metrics for reconciliation batches."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = "column_recon"):
        """
        Initialize reconciliation metrics.

        Args:
            registry: Registry to register into (a fresh one if not provided)
            namespace: Metric name prefix
        """
        self.registry = registry or CollectorRegistry()
        self.namespace = namespace

        self.batch_runs_total = Counter(
            f'{namespace}_batch_runs_total',
            'Total number of reconciliation batches',
            ['status'],
            registry=self.registry
        )

        self.batch_duration_seconds = Histogram(
            f'{namespace}_batch_duration_seconds',
            'Duration of reconciliation batches in seconds',
            buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
            registry=self.registry
        )

        self.pair_runs_total = Counter(
            f'{namespace}_pair_runs_total',
            'Total number of pair reconciliations',
            ['status'],
            registry=self.registry
        )

        self.pair_duration_seconds = Histogram(
            f'{namespace}_pair_duration_seconds',
            'Duration of pair reconciliations in seconds',
            ['status'],
            buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600],
            registry=self.registry
        )

        self.discrepancies_found_total = Counter(
            f'{namespace}_discrepancies_found_total',
            'Total discrepancies found by type',
            ['discrepancy_type'],
            registry=self.registry
        )

        self.pair_rows = Gauge(
            f'{namespace}_pair_rows',
            'Key counts from the last reconciliation of a pair, by bucket',
            ['pair', 'bucket'],
            registry=self.registry
        )

        self.extraction_duration_seconds = Histogram(
            f'{namespace}_extraction_duration_seconds',
            'Duration of column extractions in seconds',
            ['source'],
            buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300],
            registry=self.registry
        )

        self.rows_extracted_total = Counter(
            f'{namespace}_rows_extracted_total',
            'Total rows read during column extraction',
            ['source'],
            registry=self.registry
        )

        logger.debug("ReconciliationMetrics initialized")

    def record_batch(self, status: str, duration_seconds: float) -> None:
        """
        Record a finished batch.

        Args:
            status: "success" or "error"
            duration_seconds: Wall-clock duration
        """
        self.batch_runs_total.labels(status=status).inc()
        self.batch_duration_seconds.observe(duration_seconds)

    def record_pair(
        self,
        pair: str,
        status: str,
        duration_seconds: float,
        counts: Optional["ReconciliationCounts"] = None
    ) -> None:
        """
        Record one pair's outcome.

        Args:
            pair: Pair label
            status: "success" or "failure"
            duration_seconds: Time spent on the pair
            counts: Bucket counts for successful pairs
        """
        self.pair_runs_total.labels(status=status).inc()
        self.pair_duration_seconds.labels(status=status).observe(duration_seconds)

        if counts is None:
            return

        buckets: Dict[str, int] = {
            'matched': counts.matched,
            'mismatched': counts.mismatched,
            'only_in_a': counts.only_in_a,
            'only_in_b': counts.only_in_b,
        }
        for bucket, value in buckets.items():
            self.pair_rows.labels(pair=pair, bucket=bucket).set(value)

        self.discrepancies_found_total.labels(discrepancy_type='mismatch').inc(counts.mismatched)
        self.discrepancies_found_total.labels(discrepancy_type='missing_in_b').inc(counts.only_in_a)
        self.discrepancies_found_total.labels(discrepancy_type='missing_in_a').inc(counts.only_in_b)

    def record_extraction(self, source: str, duration_seconds: float, rows: int) -> None:
        """Record one column extraction."""
        self.extraction_duration_seconds.labels(source=source).observe(duration_seconds)
        self.rows_extracted_total.labels(source=source).inc(rows)

    def start_server(self, port: int) -> None:
        """Start the Prometheus HTTP endpoint."""
        try:
            start_http_server(port, registry=self.registry)
            logger.info(f"Metrics server started on port {port}")
        except OSError as e:
            if "Address already in use" in str(e):
                logger.warning(f"Metrics server already running on port {port}")
            else:
                raise

    def push(self, gateway_url: str, job_name: str = "column_reconciliation") -> None:
        """
        Push metrics to a Pushgateway.

        Raises:
            Exception: If the push fails
        """
        try:
            push_to_gateway(gateway_url, job=job_name, registry=self.registry)
            logger.info(f"Pushed metrics to gateway: {gateway_url}")
        except Exception as e:
            logger.error(f"Failed to push metrics to gateway: {e}")
            raise
