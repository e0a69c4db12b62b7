"""
Circuit Breaker Models
======================
Data models and enums for the circuit breaker pattern.
"""

import time
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitOpenError(Exception):
    """Raised when the circuit is open and the call is rejected unattempted."""

    def __init__(self, name: str, next_attempt_at: Optional[float], now: Optional[float] = None):
        self.name = name
        self.next_attempt_at = next_attempt_at
        if next_attempt_at is None:
            self.retry_after = None
            retry_text = "unknown"
        else:
            current = time.time() if now is None else now
            self.retry_after = max(0.0, next_attempt_at - current)
            retry_text = f"{self.retry_after:.1f}s"
        super().__init__(f"Circuit breaker '{name}' is open. Retry after {retry_text}")


@dataclass
class CircuitBreakerConfig:
    """Configuration for a circuit breaker."""
    failure_threshold: int = 5             # Consecutive failures before opening
    success_threshold: int = 2             # Consecutive successes to close from half-open
    open_timeout: float = 30.0             # Seconds to stay open before probing
    reset_window: Optional[float] = 60.0   # Idle seconds after which failures stop accumulating
    excluded_exceptions: tuple = ()        # Exceptions that don't count as failures

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")
        if self.open_timeout <= 0:
            raise ValueError("open_timeout must be > 0")
        if self.reset_window is not None and self.reset_window <= 0:
            raise ValueError("reset_window must be > 0 or None")


@dataclass
class CircuitBreakerState:
    """Runtime state of a circuit breaker."""
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    next_attempt_at: Optional[float] = None
    last_failure_at: Optional[float] = None
    last_success_at: Optional[float] = None

    # Metrics
    total_calls: int = 0
    total_failures: int = 0
    total_successes: int = 0
    total_rejections: int = 0


def _as_datetime(ts: Optional[float]) -> Optional[datetime]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc)


@dataclass(frozen=True)
class CircuitBreakerStats:
    """Read-only snapshot of a breaker, safe to hand to dashboards."""
    name: str
    state: CircuitState
    consecutive_failures: int
    consecutive_successes: int
    total_calls: int
    total_failures: int
    total_successes: int
    total_rejections: int
    last_failure_at: Optional[float] = None
    last_success_at: Optional[float] = None
    next_attempt_at: Optional[float] = None

    @property
    def last_failure(self) -> Optional[datetime]:
        return _as_datetime(self.last_failure_at)

    @property
    def last_success(self) -> Optional[datetime]:
        return _as_datetime(self.last_success_at)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data
