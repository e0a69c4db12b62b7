"""
Retry Logic with Exponential Backoff
=====================================
Retry policy and backoff loop for transient dependency failures.
"""

from .exceptions import RetryExhaustedError
from .policy import RetryPolicy, BackoffStrategy, is_transient_error
from .backoff import retry_with_backoff, with_retry

__all__ = [
    # Exceptions
    "RetryExhaustedError",
    # Policy
    "RetryPolicy",
    "BackoffStrategy",
    "is_transient_error",
    # Backoff
    "retry_with_backoff",
    "with_retry",
]
