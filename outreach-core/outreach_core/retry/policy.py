"""
Retry Policy
============
Error classification and bounded backoff delays.
"""

import asyncio
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from outreach_core.circuit_breaker.models import CircuitOpenError
from outreach_core.errors import PermanentError, TRANSIENT_ERRORS
from outreach_core.rate_limit.models import RateLimitExceeded

# 2**63 seconds is past any sane max_delay; clamping keeps math.pow finite
_MAX_EXPONENT = 63


class BackoffStrategy(str, Enum):
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"


def is_transient_error(error: BaseException) -> bool:
    """
    Default classifier: True for failures worth retrying.

    Retryable: rate limiting, server errors, transport failures and
    timeouts, provider overload. Everything else fails fast.
    """
    if isinstance(error, (CircuitOpenError, RateLimitExceeded, PermanentError)):
        return False
    if isinstance(error, TRANSIENT_ERRORS):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    return False


@dataclass
class RetryPolicy:
    """
    How many times to retry, and how long to wait in between.

    Attempt indexes are zero-based: index 0 is the first call, so a policy
    with max_retries=3 allows four calls in total.
    """
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    jitter: float = 0.0
    classifier: Optional[Callable[[BaseException], bool]] = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError("jitter must be between 0 and 1")

    def is_retryable(self, error: BaseException) -> bool:
        classify = self.classifier or is_transient_error
        return classify(error)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Whether the failure of attempt (zero-based) earns another try."""
        if attempt >= self.max_retries:
            return False
        return self.is_retryable(error)

    def next_delay(self, attempt: int) -> float:
        """Deterministic delay after the given attempt fails."""
        if self.strategy == BackoffStrategy.EXPONENTIAL:
            delay = self.base_delay * math.pow(2, min(attempt, _MAX_EXPONENT))
        elif self.strategy == BackoffStrategy.LINEAR:
            delay = self.base_delay * (attempt + 1)
        else:
            delay = self.base_delay
        return min(delay, self.max_delay)

    def backoff(self, attempt: int) -> float:
        """next_delay with jitter applied. Never exceeds next_delay."""
        delay = self.next_delay(attempt)
        if self.jitter:
            delay *= 1.0 - self.jitter * random.random()
        return delay
