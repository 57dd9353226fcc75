"""
Prometheus Metrics for TTree/RNTuple Reconciliation

Tracks reconciliation runs, their duration and the findings they report.
Metrics can be scraped over HTTP or pushed to a Pushgateway after a
one-shot run.
"""

import logging
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    push_to_gateway,
    start_http_server,
)

logger = logging.getLogger(__name__)

NAMESPACE = "ntuple_reconciliation"


class ReconciliationMetrics:
    """Prometheus metrics for reconciliation runs."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize reconciliation metrics.

        Args:
            registry: Prometheus registry (a fresh one if not provided)
        """
        self.registry = registry or CollectorRegistry()

        # Run counter
        self.runs_total = Counter(
            f'{NAMESPACE}_runs_total',
            'Total number of reconciliation runs',
            ['status'],
            registry=self.registry
        )

        # Run duration
        self.duration_seconds = Histogram(
            f'{NAMESPACE}_duration_seconds',
            'Duration of reconciliation runs in seconds',
            buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600],
            registry=self.registry
        )

        # Findings by type
        self.findings_total = Counter(
            f'{NAMESPACE}_findings_total',
            'Total divergence findings by type',
            ['finding_type'],
            registry=self.registry
        )

        # Entry counts of the last run
        self.entries = Gauge(
            f'{NAMESPACE}_entries',
            'Number of entries seen in the last run',
            ['origin'],
            registry=self.registry
        )

        # Fields per type severity in the last run
        self.type_severity_fields = Gauge(
            f'{NAMESPACE}_type_severity_fields',
            'Number of fields per type comparison severity in the last run',
            ['severity'],
            registry=self.registry
        )

        logger.info("ReconciliationMetrics initialized")

    def record_run(self, report, duration_seconds: float) -> None:
        """
        Record a completed reconciliation run.

        Args:
            report: ReconciliationReport of the run
            duration_seconds: Duration in seconds
        """
        status = 'passed' if report.passed else 'diverged'
        self.runs_total.labels(status=status).inc()
        self.duration_seconds.observe(duration_seconds)

        findings = {
            'entry_count': 0 if report.entries_match else 1,
            'field_count': 0 if report.fields_match else 1,
            'field_name': sum(1 for c in report.correspondences if not c.is_matched),
            'type': sum(1 for r in report.type_comparisons if r.severity.rank > 0),
            'sequence': sum(1 for c in report.sequence_comparisons if not c.counts_match),
            'statistics': sum(1 for c in report.statistics_comparisons if not c.equal),
            'read_error': len(report.read_errors),
        }
        for finding_type, count in findings.items():
            self.findings_total.labels(finding_type=finding_type).inc(count)

        self.entries.labels(origin='ttree').set(report.entries.legacy)
        self.entries.labels(origin='rntuple').set(report.entries.columnar)

        counts = {}
        for result in report.type_comparisons:
            counts[result.severity.value] = counts.get(result.severity.value, 0) + 1
        for severity in ('exact', 'near', 'mismatch', 'missing'):
            self.type_severity_fields.labels(severity=severity).set(counts.get(severity, 0))

        logger.debug(
            f"Recorded reconciliation metrics: status={status}, "
            f"duration={duration_seconds}s, findings={findings}"
        )

    def record_failure(self, error: Exception, duration_seconds: float) -> None:
        """Record a run aborted by a fatal error."""
        self.runs_total.labels(status='failed').inc()
        self.duration_seconds.observe(duration_seconds)
        logger.debug(f"Recorded failed reconciliation run: {type(error).__name__}")

    def start_server(self, port: int) -> None:
        """Start Prometheus metrics HTTP server."""
        try:
            start_http_server(port, registry=self.registry)
            logger.info(f"Metrics server started on port {port}")
        except OSError as e:
            if "Address already in use" in str(e):
                logger.warning(f"Metrics server already running on port {port}")
            else:
                raise

    def push(self, gateway: str, job: str = NAMESPACE) -> None:
        """Push the collected metrics to a Prometheus Pushgateway."""
        push_to_gateway(gateway, job=job, registry=self.registry)
        logger.info(f"Pushed metrics to {gateway} as job {job}")
