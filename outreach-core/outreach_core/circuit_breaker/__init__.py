"""
Outreach Core - Circuit Breaker
===============================
Async circuit breaker for calls to flaky third-party dependencies.

Circuit breaker pattern stops calling a failing dependency for a cooldown
period. States:

1. CLOSED: Normal operation, calls flow through
2. OPEN: Dependency is failing, calls are rejected immediately
3. HALF-OPEN: Probing whether the dependency has recovered

Usage:
    from outreach_core.circuit_breaker import circuit_breaker, CircuitOpenError

    @circuit_breaker("places-api")
    async def geocode(address: str):
        return await client.get("/geocode", params={"address": address})

    # Or explicitly
    breaker = await get_breaker("payments")
    result = await breaker.execute(lambda: client.post("/charges", json=body))
"""

from .models import (
    CircuitState,
    CircuitOpenError,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitBreakerStats,
)

from .breaker import CircuitBreaker

from .registry import (
    CircuitBreakerRegistry,
    default_registry,
    get_breaker,
    get_breaker_sync,
    get_all_breaker_stats,
    reset_breaker,
    reset_all_breakers,
)

from .decorators import circuit_breaker

__all__ = [
    # Models
    "CircuitState",
    "CircuitOpenError",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitBreakerStats",
    # Breaker
    "CircuitBreaker",
    # Registry
    "CircuitBreakerRegistry",
    "default_registry",
    "get_breaker",
    "get_breaker_sync",
    "get_all_breaker_stats",
    "reset_breaker",
    "reset_all_breakers",
    # Decorator
    "circuit_breaker",
]
