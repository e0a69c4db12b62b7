"""
Resilient Invoker
=================
Composition point: rate limit -> circuit breaker -> operation, retried
per policy. Every attempt passes the breaker's admission check on its
own, so a breaker that opens mid-sequence stops the remaining retries.
"""

import asyncio
import time
from typing import Optional, Dict, List, Callable, TypeVar, Awaitable

import structlog

from outreach_core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitBreakerStats,
    CircuitOpenError,
)
from outreach_core.metrics import record_guarded_call
from outreach_core.rate_limit import SlidingWindowRateLimiter
from outreach_core.retry import RetryPolicy, RetryExhaustedError, retry_with_backoff
from .models import DependencyPolicy

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ResilientInvoker:
    """
    Runs async operations against named dependencies under their policy.

    Example:
        invoker = ResilientInvoker(registry)
        invoker.register("llm-provider", DependencyPolicy(
            breaker=CircuitBreakerConfig(failure_threshold=3, open_timeout=60),
            rate_limit=RateLimitConfig(max_requests_per_window=50),
        ))

        reply = await invoker.run_guarded(
            "llm-provider",
            estimated_tokens,
            lambda: llm.complete(prompt),
        )
    """

    def __init__(
        self,
        registry: Optional[CircuitBreakerRegistry] = None,
        default_retry: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.registry = registry if registry is not None else CircuitBreakerRegistry()
        self.default_retry = default_retry or RetryPolicy()
        self._sleep = sleep
        self._policies: Dict[str, DependencyPolicy] = {}
        self._limiters: Dict[str, SlidingWindowRateLimiter] = {}

    def register(
        self,
        name: str,
        policy: Optional[DependencyPolicy] = None,
        limiter: Optional[SlidingWindowRateLimiter] = None,
    ) -> CircuitBreaker:
        """
        Attach a policy to a dependency name.

        Args:
            name: Dependency name (also the breaker name)
            policy: Resilience policy; defaults apply when omitted
            limiter: Existing limiter to use instead of building one from
                policy.rate_limit, e.g. to share one budget between names

        Returns:
            The dependency's CircuitBreaker
        """
        policy = policy or DependencyPolicy()
        self._policies[name] = policy

        if limiter is not None:
            self._limiters[name] = limiter
        elif policy.rate_limit is not None:
            self._limiters[name] = SlidingWindowRateLimiter(
                policy.rate_limit, name=name, sleep=self._sleep,
            )
        else:
            self._limiters.pop(name, None)

        existing = self.registry.get(name)
        if existing is not None and existing.config != policy.breaker:
            logger.warning("dependency_breaker_config_ignored", service=name)
        breaker = self.registry.get_or_create_sync(name, policy.breaker)
        logger.info(
            "dependency_registered",
            service=name,
            rate_limited=name in self._limiters,
            max_retries=policy.retry.max_retries,
        )
        return breaker

    def policy_for(self, name: str) -> Optional[DependencyPolicy]:
        return self._policies.get(name)

    def limiter_for(self, name: str) -> Optional[SlidingWindowRateLimiter]:
        return self._limiters.get(name)

    async def run_guarded(
        self,
        name: str,
        cost: int,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run operation under the resilience policy of a dependency.

        Args:
            name: Dependency name
            cost: Estimated token cost of one attempt (0 for request-only budgets)
            operation: Zero-argument callable returning a fresh awaitable per attempt

        Returns:
            The operation's result

        Raises:
            CircuitOpenError: The breaker refused the call
            RetryExhaustedError: Every attempt failed with a retryable error
            Exception: The operation's own error on a non-retryable failure
        """
        policy = self._policies.get(name)
        breaker_config = policy.breaker if policy else None
        retry_policy = policy.retry if policy else self.default_retry
        timeout = policy.attempt_timeout if policy else None
        breaker = await self.registry.get_or_create(name, breaker_config)
        limiter = self._limiters.get(name)

        async def call_dependency() -> T:
            if limiter is not None:
                # Charged only once the breaker has admitted the attempt
                await limiter.acquire(cost)
            if timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout)

        async def attempt() -> T:
            if limiter is not None:
                await limiter.wait_for_capacity(cost)
            return await breaker.execute(call_dependency)

        attempt.__name__ = name

        outcome = "failure"
        start = time.perf_counter()
        try:
            result = await retry_with_backoff(attempt, policy=retry_policy, sleep=self._sleep)
            outcome = "success"
            return result
        except CircuitOpenError as exc:
            outcome = "circuit_open"
            logger.info("guarded_call_rejected", service=name, retry_after=exc.retry_after)
            raise
        except RetryExhaustedError:
            outcome = "exhausted"
            raise
        except asyncio.CancelledError:
            outcome = "cancelled"
            raise
        finally:
            record_guarded_call(name, outcome, time.perf_counter() - start)

    def get_stats(self, name: str) -> Optional[CircuitBreakerStats]:
        return self.registry.get_stats(name)

    def get_all_stats(self) -> List[CircuitBreakerStats]:
        return self.registry.get_all_stats()
