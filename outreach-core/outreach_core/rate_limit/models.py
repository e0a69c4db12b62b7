"""
Rate Limit Models
=================
Configuration, usage snapshot and errors for the sliding-window limiter.
"""

from typing import Optional
from dataclasses import dataclass


class RateLimitExceeded(Exception):
    """Raised in fail-fast mode when admitting a call would exceed a budget."""

    def __init__(self, name: str, retry_after: Optional[float], reason: str = "budget exhausted"):
        self.name = name
        self.retry_after = retry_after
        self.reason = reason
        retry_text = f"{retry_after:.2f}s" if retry_after is not None else "never"
        super().__init__(f"Rate limit '{name}' {reason}. Retry after {retry_text}")


@dataclass
class RateLimitConfig:
    """Budgets for one trailing window."""
    max_requests_per_window: int = 60
    max_tokens_per_window: Optional[int] = 150000  # None = request budget only
    window: float = 60.0                            # Seconds

    def __post_init__(self) -> None:
        if self.max_requests_per_window < 1:
            raise ValueError("max_requests_per_window must be >= 1")
        if self.max_tokens_per_window is not None and self.max_tokens_per_window < 1:
            raise ValueError("max_tokens_per_window must be >= 1 or None")
        if self.window <= 0:
            raise ValueError("window must be > 0")


@dataclass(frozen=True)
class RateLimitUsage:
    """Consumption inside the current window."""
    name: str
    requests_in_window: int
    tokens_in_window: int
    max_requests: int
    max_tokens: Optional[int]
    window: float

    @property
    def remaining_requests(self) -> int:
        return max(0, self.max_requests - self.requests_in_window)

    @property
    def remaining_tokens(self) -> Optional[int]:
        if self.max_tokens is None:
            return None
        return max(0, self.max_tokens - self.tokens_in_window)
