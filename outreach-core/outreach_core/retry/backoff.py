"""
Retry Backoff
=============
Retry loop driven by a RetryPolicy.
"""

import asyncio
from functools import wraps
from typing import TypeVar, Callable, Awaitable, Optional

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
)

from outreach_core.errors import RateLimitedError
from .exceptions import RetryExhaustedError
from .policy import RetryPolicy

logger = structlog.get_logger(__name__)

T = TypeVar('T')


def _policy_wait(policy: RetryPolicy) -> Callable[[RetryCallState], float]:
    def wait(retry_state: RetryCallState) -> float:
        delay = policy.backoff(retry_state.attempt_number - 1)
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, RateLimitedError) and error.retry_after:
            delay = min(max(delay, error.retry_after), policy.max_delay)
        return delay
    return wait


def _log_before_sleep(name: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "retrying_after_failure",
            func=name,
            attempt=retry_state.attempt_number,
            delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
            error_type=type(error).__name__,
            error=str(error),
        )
    return before_sleep


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **kwargs,
) -> T:
    """
    Execute a function, retrying transient failures with backoff.

    Args:
        func: Async function to execute
        *args: Positional arguments for func
        policy: Retry policy (defaults to RetryPolicy())
        sleep: Awaitable sleep used between attempts
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        RetryExhaustedError: If every attempt failed with a retryable error
        Exception: The original error, unchanged, if it is not retryable
    """
    policy = policy or RetryPolicy()
    name = getattr(func, "__name__", repr(func))

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=_policy_wait(policy),
        retry=retry_if_exception(policy.is_retryable),
        before_sleep=_log_before_sleep(name),
        sleep=sleep,
        reraise=False,
    )

    try:
        return await retrying(func, *args, **kwargs)
    except RetryError as exc:
        last_attempt = exc.last_attempt
        last_error = last_attempt.exception()
        logger.error(
            "retry_exhausted",
            func=name,
            attempts=last_attempt.attempt_number,
            error=str(last_error),
        )
        raise RetryExhaustedError(last_attempt.attempt_number, last_error) from last_error


def with_retry(
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
):
    """
    Decorator for retry with backoff.

    Usage:
        @with_retry(RetryPolicy(max_retries=5))
        async def fetch_listing():
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await retry_with_backoff(
                func,
                *args,
                policy=policy,
                sleep=sleep,
                **kwargs,
            )
        return wrapper
    return decorator
