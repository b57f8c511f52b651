"""
Prometheus metrics for replica checks

Tracks chunk scans, row-level discrepancies, generated statements and
retries so long-running watch jobs can be monitored and alerted on.

Usage:
    from replica_watch.utils.metrics import MetricsPublisher, CHUNK_MISMATCHES

    MetricsPublisher(port=9091).start()
    CHUNK_MISMATCHES.labels(table_name="addresses").inc()
"""

import logging
from typing import Callable, TypeVar

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric or return the one already registered under the same name.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


CHUNKS_SCANNED = get_or_create_metric(
    lambda: Counter(
        "replica_watch_chunks_scanned_total",
        "Total number of primary chunks checksummed",
        ["table_name"],
    ),
    "replica_watch_chunks_scanned_total",
)

CHUNK_MISMATCHES = get_or_create_metric(
    lambda: Counter(
        "replica_watch_chunk_mismatches_total",
        "Total number of chunk checksum mismatches detected",
        ["table_name"],
    ),
    "replica_watch_chunk_mismatches_total",
)

ROW_DISCREPANCIES = get_or_create_metric(
    lambda: Counter(
        "replica_watch_row_discrepancies_total",
        "Total row-level discrepancies found",
        ["table_name", "discrepancy_type"],
    ),
    "replica_watch_row_discrepancies_total",
)

STATEMENTS_GENERATED = get_or_create_metric(
    lambda: Counter(
        "replica_watch_statements_generated_total",
        "Total corrective statements generated",
        ["statement_type"],
    ),
    "replica_watch_statements_generated_total",
)

RETRY_ATTEMPTS = get_or_create_metric(
    lambda: Counter(
        "replica_watch_retry_attempts_total",
        "Total retries issued by the retry executor",
        ["operation"],
    ),
    "replica_watch_retry_attempts_total",
)

WATCH_ITERATIONS = get_or_create_metric(
    lambda: Counter(
        "replica_watch_watch_iterations_total",
        "Total re-scan iterations of the watch loop",
    ),
    "replica_watch_watch_iterations_total",
)

TABLE_DIFF_SECONDS = get_or_create_metric(
    lambda: Histogram(
        "replica_watch_table_diff_seconds",
        "Time to compute the delta of one table pair",
        ["table_name"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600, 1800],
    ),
    "replica_watch_table_diff_seconds",
)


class MetricsPublisher:
    """
    Publishes metrics on a Prometheus HTTP endpoint

    Starts an HTTP server that exposes metrics on /metrics.
    """

    def __init__(
        self,
        port: int = 9091,
        registry: CollectorRegistry | None = None,
    ):
        """
        Initialize metrics publisher

        Args:
            port: Port to expose metrics on (default: 9091)
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.port = port
        self.registry = registry or REGISTRY
        self._server_started = False

    def start(self) -> None:
        """Start the metrics HTTP server"""
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            if "Address already in use" in str(e):
                raise RuntimeError(
                    f"Metrics server port {self.port} is already in use"
                ) from e
            raise

        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    def is_started(self) -> bool:
        """Check if metrics server is running"""
        return self._server_started
