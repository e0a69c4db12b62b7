"""
Invoker Models
==============
Per-dependency resilience policy.
"""

from dataclasses import dataclass, field
from typing import Optional

from outreach_core.circuit_breaker.models import CircuitBreakerConfig, CircuitOpenError
from outreach_core.rate_limit.models import RateLimitConfig
from outreach_core.retry.exceptions import RetryExhaustedError
from outreach_core.retry.policy import RetryPolicy


@dataclass
class DependencyPolicy:
    """Everything needed to guard calls to one dependency."""
    breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    rate_limit: Optional[RateLimitConfig] = None  # None = no client-side budget
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    attempt_timeout: Optional[float] = None       # Seconds per attempt

    def __post_init__(self) -> None:
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be > 0 or None")


# Errors run_guarded adds on top of the operation's own exceptions
GuardError = (CircuitOpenError, RetryExhaustedError)
