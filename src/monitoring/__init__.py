"""
Monitoring Module for TTree/RNTuple Reconciliation

Prometheus metrics describing reconciliation runs.

Usage:
    from src.monitoring import ReconciliationMetrics

    metrics = ReconciliationMetrics()
    checker = ReconciliationChecker(legacy, columnar, metrics=metrics)
    checker.run()
    metrics.push("localhost:9091")
"""

from src.monitoring.metrics import ReconciliationMetrics

__all__ = [
    "ReconciliationMetrics",
]

__version__ = "1.0.0"
