"""
Sliding Window Rate Limiter
===========================
In-process limiter tracking request count and token consumption over a
trailing time window.

Callers are suspended until capacity is available rather than rejected,
unless they ask for fail-fast behaviour with ``block=False``.
"""

import asyncio
import time
from collections import deque
from typing import Callable, Awaitable, Deque, Optional, Tuple
import structlog

from outreach_core.metrics import record_rate_limit_wait
from .models import RateLimitConfig, RateLimitExceeded, RateLimitUsage

logger = structlog.get_logger(__name__)

# Floor for computed waits so float rounding can't produce a zero-length sleep loop
_MIN_WAIT = 0.001


class SlidingWindowRateLimiter:
    """
    Request and token budgets over a trailing window.

    Example:
        limiter = SlidingWindowRateLimiter(
            RateLimitConfig(max_requests_per_window=50, max_tokens_per_window=100000),
            name="llm-provider",
        )

        await limiter.acquire(estimated_tokens)
        response = await llm.complete(prompt)
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or RateLimitConfig()
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._requests: Deque[Tuple[float, int]] = deque()
        self._tokens: Deque[Tuple[float, int]] = deque()
        self._token_total = 0
        self._lock = asyncio.Lock()

    def _prune(self, now: float):
        """Drop entries that have left the window.

        Expiry is ``ts + window <= now``, the expression _compute_wait counts down to.
        """
        window = self.config.window
        while self._requests and self._requests[0][0] + window <= now:
            self._requests.popleft()
        while self._tokens and self._tokens[0][0] + window <= now:
            _, tokens = self._tokens.popleft()
            self._token_total -= tokens

    def _check_cost(self, cost: int):
        if cost < 0:
            raise ValueError("cost must be >= 0")
        max_tokens = self.config.max_tokens_per_window
        if max_tokens is not None and cost > max_tokens:
            raise RateLimitExceeded(
                self.name,
                None,
                reason=f"cost {cost} exceeds the window budget of {max_tokens} tokens",
            )

    def _compute_wait(self, cost: int, now: float) -> float:
        """Seconds until this call fits both budgets. Caller has pruned."""
        window = self.config.window
        wait = 0.0

        max_requests = self.config.max_requests_per_window
        if len(self._requests) >= max_requests:
            # The entry whose expiry brings the count below the limit
            blocking = self._requests[len(self._requests) - max_requests]
            wait = blocking[0] + window - now

        max_tokens = self.config.max_tokens_per_window
        if max_tokens is not None and self._token_total + cost > max_tokens:
            excess = self._token_total + cost - max_tokens
            freed = 0
            for ts, tokens in self._tokens:
                freed += tokens
                if freed >= excess:
                    wait = max(wait, ts + window - now)
                    break

        if wait <= 0:
            return 0.0
        return max(wait, _MIN_WAIT)

    def _record(self, now: float, cost: int):
        self._requests.append((now, 1))
        self._tokens.append((now, cost))
        self._token_total += cost

    async def get_wait_time(self, cost: int = 0) -> float:
        """Estimates the time needed before a call of this cost can be made."""
        self._check_cost(cost)
        async with self._lock:
            now = self._clock()
            self._prune(now)
            return self._compute_wait(cost, now)

    async def _wait(self, cost: int, record: bool, block: bool) -> float:
        self._check_cost(cost)
        waited = 0.0
        while True:
            async with self._lock:
                now = self._clock()
                self._prune(now)
                wait = self._compute_wait(cost, now)
                if wait <= 0:
                    if record:
                        self._record(now, cost)
                    break
                if not block:
                    raise RateLimitExceeded(self.name, wait)

            logger.debug("rate_limit_wait", limiter=self.name, cost=cost, wait=round(wait, 3))
            await self._sleep(wait)
            waited += wait

        if waited:
            record_rate_limit_wait(self.name, waited)
        return waited

    async def wait_for_capacity(self, cost: int = 0) -> float:
        """
        Suspend until a call of this cost fits in the window.

        Does not record the call; pair with record_request once the outbound
        request is actually made.

        Args:
            cost: Estimated tokens for the call (request + response)

        Returns:
            Seconds spent waiting
        """
        return await self._wait(cost, record=False, block=True)

    def record_request(self, cost: int = 0):
        """Charge one request and cost tokens to the current window."""
        if cost < 0:
            raise ValueError("cost must be >= 0")
        now = self._clock()
        self._prune(now)
        self._record(now, cost)

    async def acquire(self, cost: int = 0, block: bool = True) -> float:
        """
        Wait for capacity and record the call in one step.

        Args:
            cost: Estimated tokens for the call
            block: If False, raise RateLimitExceeded instead of waiting

        Returns:
            Seconds spent waiting

        Raises:
            RateLimitExceeded: In fail-fast mode, or if cost can never fit
        """
        return await self._wait(cost, record=True, block=block)

    def usage(self) -> RateLimitUsage:
        now = self._clock()
        self._prune(now)
        return RateLimitUsage(
            name=self.name,
            requests_in_window=len(self._requests),
            tokens_in_window=self._token_total,
            max_requests=self.config.max_requests_per_window,
            max_tokens=self.config.max_tokens_per_window,
            window=self.config.window,
        )

    def reset(self):
        """Forget all recorded calls."""
        self._requests.clear()
        self._tokens.clear()
        self._token_total = 0
