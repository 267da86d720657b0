"""
Monitoring Module for Column Reconciliation

Prometheus metrics for reconciliation batches, pairs and column extractions.

Usage:
    from src.monitoring import ReconciliationMetrics

    metrics = ReconciliationMetrics()
    orchestrator = BatchOrchestrator(session, metrics=metrics)
    metrics.start_server(9090)
"""

from src.monitoring.metrics import ReconciliationMetrics

__all__ = [
    "ReconciliationMetrics",
]

__version__ = "1.0.0"
