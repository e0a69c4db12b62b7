"""
Circuit Breaker Decorator
=========================
Decorator for wrapping async functions with circuit breaker protection.
"""

from functools import wraps
from typing import Optional, Callable, TypeVar, Awaitable

from .models import CircuitBreakerConfig
from .registry import CircuitBreakerRegistry, default_registry

T = TypeVar("T")


def circuit_breaker(
    name: str,
    config: Optional[CircuitBreakerConfig] = None,
    fallback: Optional[Callable[[], Awaitable[T]]] = None,
    registry: Optional[CircuitBreakerRegistry] = None,
):
    """
    Decorator to wrap async functions with a circuit breaker.

    Example:
        @circuit_breaker("places-api")
        async def nearby(query: str):
            return await places.search(query)

        @circuit_breaker("payments", fallback=lambda: queued_charge())
        async def charge(customer_id: str, amount: int):
            return await stripe_client.charge(customer_id, amount)
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        target = registry if registry is not None else default_registry
        breaker = target.get_or_create_sync(name, config)

        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await breaker.execute(
                lambda: func(*args, **kwargs),
                fallback=fallback,
            )

        wrapper.breaker = breaker
        return wrapper

    return decorator
