"""
Metrics Collection with Prometheus.

Counts remote calls and lifecycle steps. A CLI run is short lived, so the
registry is written to a node_exporter textfile at exit when configured.
"""

import time
from enum import Enum

from prometheus_client import REGISTRY, Counter, Histogram, Info, write_to_textfile

from storepublish.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    OPERATION = "operation"
    STATUS_CODE = "status_code"
    OUTCOME = "outcome"
    ERROR_TYPE = "error_type"


class SubmissionMetrics:
    """
    Centralized metrics for storepublish.

    - Remote API requests (rate, duration, status)
    - Lifecycle operations (clone, reuse, replace, upload, commit, delete)
    - Errors by type
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        self.service_info = Info(
            "storepublish",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # Remote API Metrics
        # ====================================================================
        self.requests_total = Counter(
            "storepublish_requests_total",
            "Total requests sent to the submission API",
            [MetricLabels.OPERATION.value, MetricLabels.STATUS_CODE.value],
        )

        self.request_duration_seconds = Histogram(
            "storepublish_request_duration_seconds",
            "Submission API request duration in seconds",
            [MetricLabels.OPERATION.value],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
        )

        # ====================================================================
        # Lifecycle Metrics
        # ====================================================================
        self.lifecycle_operations_total = Counter(
            "storepublish_lifecycle_operations_total",
            "Submission lifecycle steps by outcome",
            [MetricLabels.OPERATION.value, MetricLabels.OUTCOME.value],
        )

        self.package_upload_bytes = Histogram(
            "storepublish_package_upload_bytes",
            "Size of uploaded package archives",
            buckets=(1e6, 1e7, 5e7, 1e8, 5e8, 1e9, 4e9),
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "storepublish_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE.value, MetricLabels.OPERATION.value],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_request(self, operation: str, status_code: int, duration: float) -> None:
        """Record a remote API request."""
        self.requests_total.labels(operation=operation, status_code=status_code).inc()
        self.request_duration_seconds.labels(operation=operation).observe(duration)

    def record_lifecycle(self, operation: str, success: bool) -> None:
        """Record a lifecycle step."""
        self.lifecycle_operations_total.labels(
            operation=operation, outcome="success" if success else "failure"
        ).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = SubmissionMetrics()


class track_request:
    """
    Context manager for timing a remote API request.

    Usage:
        with track_request("replace_submission") as tracker:
            response = await client.request(...)
            tracker.set_status_code(response.status_code)
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.status_code = 0  # 0 = no response received
        self.start_time: float = 0.0

    def set_status_code(self, status_code: int) -> None:
        """Set the response status code."""
        self.status_code = status_code

    def __enter__(self) -> "track_request":
        """Start tracking."""
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Record metrics."""
        duration = time.monotonic() - self.start_time
        metrics.record_request(self.operation, self.status_code, duration)


def write_metrics(path: str) -> None:
    """Write the default registry to a node_exporter textfile."""
    write_to_textfile(path, REGISTRY)
