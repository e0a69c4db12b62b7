"""
Outreach Core Library
=====================
Resilience layer for outbound calls to third-party dependencies
(LLM providers, payments, places APIs, the datastore).
"""

__version__ = "0.3.0"

# Errors
from outreach_core.errors import (
    DependencyError,
    RateLimitedError,
    ServerError,
    DependencyTimeoutError,
    ConnectionFailedError,
    TransientOverloadError,
    PermanentError,
    AuthenticationError,
    ValidationError,
    NotFoundError,
)

# Circuit Breaker
from outreach_core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitBreakerStats,
    CircuitOpenError,
    CircuitState,
    circuit_breaker,
    default_registry,
    get_breaker,
    get_breaker_sync,
    get_all_breaker_stats,
    reset_breaker,
    reset_all_breakers,
)

# Rate Limiting
from outreach_core.rate_limit import (
    RateLimitConfig,
    RateLimitExceeded,
    RateLimitUsage,
    SlidingWindowRateLimiter,
)

# Retry
from outreach_core.retry import (
    BackoffStrategy,
    RetryExhaustedError,
    RetryPolicy,
    is_transient_error,
    retry_with_backoff,
    with_retry,
)

# Invoker
from outreach_core.invoker import (
    DependencyPolicy,
    GuardError,
    ResilientInvoker,
    build_default_invoker,
    guarded,
)

# Config
from outreach_core.config import ResilienceSettings

__all__ = [
    # Errors
    "DependencyError",
    "RateLimitedError",
    "ServerError",
    "DependencyTimeoutError",
    "ConnectionFailedError",
    "TransientOverloadError",
    "PermanentError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitBreakerStats",
    "CircuitOpenError",
    "CircuitState",
    "circuit_breaker",
    "default_registry",
    "get_breaker",
    "get_breaker_sync",
    "get_all_breaker_stats",
    "reset_breaker",
    "reset_all_breakers",
    # Rate Limiting
    "RateLimitConfig",
    "RateLimitExceeded",
    "RateLimitUsage",
    "SlidingWindowRateLimiter",
    # Retry
    "BackoffStrategy",
    "RetryExhaustedError",
    "RetryPolicy",
    "is_transient_error",
    "retry_with_backoff",
    "with_retry",
    # Invoker
    "DependencyPolicy",
    "GuardError",
    "ResilientInvoker",
    "build_default_invoker",
    "guarded",
    # Config
    "ResilienceSettings",
]
