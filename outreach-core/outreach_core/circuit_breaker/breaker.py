"""
Circuit Breaker Core
====================
The main CircuitBreaker class guarding one named dependency.
"""

import asyncio
import time
from typing import Optional, Dict, Any, Callable, TypeVar, Awaitable
import structlog

from outreach_core.metrics import record_circuit_state, record_rejection
from .models import (
    CircuitState,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitBreakerStats,
    CircuitOpenError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitBreaker:
    """
    Async circuit breaker for a single dependency.

    The breaker only observes outcomes: the wrapped operation's own
    exceptions are always re-raised unchanged. The only error it adds is
    CircuitOpenError, raised when a call is refused without being attempted.

    Open -> half-open is evaluated lazily on the next call; there is no
    background timer.

    Example:
        breaker = CircuitBreaker("payments")

        try:
            charge = await breaker.execute(lambda: stripe.charge(amount))
        except CircuitOpenError as exc:
            schedule_retry(exc.retry_after)
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = CircuitBreakerState()
        # Bumped on every transition; outcomes admitted under an older
        # generation only touch the cumulative totals.
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state.state

    @property
    def is_open(self) -> bool:
        return self._state.state == CircuitState.OPEN

    @property
    def is_closed(self) -> bool:
        return self._state.state == CircuitState.CLOSED

    @property
    def metrics(self) -> Dict[str, Any]:
        """Get circuit breaker metrics as a plain dict."""
        return self.get_stats().to_dict()

    def get_stats(self) -> CircuitBreakerStats:
        """Snapshot of the breaker. Mutating the result never touches the breaker."""
        s = self._state
        return CircuitBreakerStats(
            name=self.name,
            state=s.state,
            consecutive_failures=s.consecutive_failures,
            consecutive_successes=s.consecutive_successes,
            total_calls=s.total_calls,
            total_failures=s.total_failures,
            total_successes=s.total_successes,
            total_rejections=s.total_rejections,
            last_failure_at=s.last_failure_at,
            last_success_at=s.last_success_at,
            next_attempt_at=s.next_attempt_at,
        )

    def allows_call(self) -> bool:
        """Whether a call made now would be admitted. Does not change state."""
        if self._state.state != CircuitState.OPEN:
            return True
        return self._open_deadline_passed(self._clock())

    def _open_deadline_passed(self, now: float) -> bool:
        deadline = self._state.next_attempt_at
        return deadline is not None and now >= deadline

    def _transition_to(self, new_state: CircuitState, now: float):
        """Switch state and run the entry action of the new state. Caller holds the lock."""
        old_state = self._state.state
        self._state.state = new_state
        self._generation += 1

        if new_state == CircuitState.OPEN:
            self._state.next_attempt_at = now + self.config.open_timeout
            self._state.consecutive_successes = 0
        elif new_state == CircuitState.HALF_OPEN:
            self._state.consecutive_successes = 0
        else:
            self._state.consecutive_failures = 0
            self._state.consecutive_successes = 0
            self._state.next_attempt_at = None

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(
            "circuit_state_change",
            service=self.name,
            from_state=old_state.value,
            to_state=new_state.value,
            next_attempt_at=self._state.next_attempt_at,
        )
        record_circuit_state(self.name, new_state.value)

    async def _admit(self) -> int:
        """Admit a call or raise CircuitOpenError. Returns the admitting generation."""
        async with self._lock:
            now = self._clock()

            if self._state.state == CircuitState.OPEN:
                if self._open_deadline_passed(now):
                    self._transition_to(CircuitState.HALF_OPEN, now)
                else:
                    self._state.total_rejections += 1
                    record_rejection(self.name)
                    raise CircuitOpenError(self.name, self._state.next_attempt_at, now=now)

            self._state.total_calls += 1
            return self._generation

    async def _on_success(self, generation: int):
        """Record a successful call."""
        async with self._lock:
            now = self._clock()
            self._state.total_successes += 1
            self._state.last_success_at = now

            if generation != self._generation:
                return

            if self._state.state == CircuitState.HALF_OPEN:
                self._state.consecutive_successes += 1
                if self._state.consecutive_successes >= self.config.success_threshold:
                    self._transition_to(CircuitState.CLOSED, now)

            elif self._state.state == CircuitState.CLOSED:
                self._state.consecutive_failures = 0

    async def _on_failure(self, exc: Exception, generation: int):
        """Record a failed call."""
        async with self._lock:
            now = self._clock()
            previous_failure = self._state.last_failure_at
            self._state.total_failures += 1
            self._state.last_failure_at = now

            if generation != self._generation:
                return

            if self._state.state == CircuitState.HALF_OPEN:
                self._state.consecutive_failures += 1
                self._transition_to(CircuitState.OPEN, now)

            elif self._state.state == CircuitState.CLOSED:
                window = self.config.reset_window
                if (
                    window is not None
                    and previous_failure is not None
                    and now - previous_failure > window
                ):
                    self._state.consecutive_failures = 0

                self._state.consecutive_failures += 1
                logger.warning(
                    "circuit_failure_recorded",
                    service=self.name,
                    failures=self._state.consecutive_failures,
                    threshold=self.config.failure_threshold,
                    error=str(exc),
                )
                if self._state.consecutive_failures >= self.config.failure_threshold:
                    self._transition_to(CircuitState.OPEN, now)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Optional[Callable[[], Awaitable[T]]] = None,
    ) -> T:
        """
        Run a zero-argument async operation exactly once under breaker protection.

        Args:
            operation: Callable returning the awaitable to run
            fallback: Optional callable used instead of raising when the circuit is open

        Returns:
            Result of operation (or fallback)

        Raises:
            CircuitOpenError: If the circuit is open and no fallback was given
        """
        try:
            generation = await self._admit()
        except CircuitOpenError:
            if fallback:
                logger.debug("circuit_fallback", service=self.name)
                return await fallback()
            raise

        try:
            result = await operation()
        except Exception as exc:
            if not isinstance(exc, self.config.excluded_exceptions):
                await self._on_failure(exc, generation)
            raise

        await self._on_success(generation)
        return result

    def reset(self):
        """Force the breaker closed. Cumulative totals are kept."""
        old_state = self._state.state
        self._state.state = CircuitState.CLOSED
        self._state.consecutive_failures = 0
        self._state.consecutive_successes = 0
        self._state.next_attempt_at = None
        self._generation += 1
        logger.info("circuit_reset", service=self.name, from_state=old_state.value)
        record_circuit_state(self.name, CircuitState.CLOSED.value)
