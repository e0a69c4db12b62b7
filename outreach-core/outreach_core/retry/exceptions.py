"""
Retry Exceptions
================
Exception classes for retry operations.
"""

from typing import Optional


class RetryExhaustedError(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts. Last error: {last_error}")
