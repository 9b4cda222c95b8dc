"""
Reliability Module: Retry with exponential backoff for remote requests.
"""

from itemmesh.reliability.retry import (
    RetryPolicy,
    RetryStats,
    calculate_backoff,
    retry_call,
)

__all__ = [
    "RetryPolicy",
    "RetryStats",
    "calculate_backoff",
    "retry_call",
]
