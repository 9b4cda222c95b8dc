"""
Observability Module: Structured logging and metrics.
"""

from itemmesh.observability.logging import (
    LogLevel,
    JsonFormatter,
    current_log_context,
    log_context,
    setup_logging,
)
from itemmesh.observability.metrics import (
    Counter,
    Histogram,
    MetricsCollector,
)

__all__ = [
    "LogLevel",
    "JsonFormatter",
    "current_log_context",
    "log_context",
    "setup_logging",
    "Counter",
    "Histogram",
    "MetricsCollector",
]
