"""
Observability module - Logging and Metrics.
"""

from storepublish.observability.logging import log_context, setup_logging
from storepublish.observability.metrics import metrics, write_metrics

__all__ = [
    "log_context",
    "setup_logging",
    "metrics",
    "write_metrics",
]
