"""
Circuit Breaker Registry
========================
Name -> CircuitBreaker map with lazy creation and aggregate statistics.

Components receive a CircuitBreakerRegistry through their constructor;
the module-level helpers operate on ``default_registry`` for code that
has no registry to hand.
"""

import asyncio
import time
from typing import Optional, Dict, List, Callable, Iterator
import structlog

from outreach_core.metrics import record_circuit_state
from .models import CircuitBreakerConfig, CircuitBreakerStats
from .breaker import CircuitBreaker

logger = structlog.get_logger(__name__)


class CircuitBreakerRegistry:
    """At most one CircuitBreaker per dependency name."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def __contains__(self, name: str) -> bool:
        return name in self._breakers

    def __len__(self) -> int:
        return len(self._breakers)

    def __iter__(self) -> Iterator[CircuitBreaker]:
        return iter(list(self._breakers.values()))

    def _create(self, name: str, config: Optional[CircuitBreakerConfig]) -> CircuitBreaker:
        breaker = CircuitBreaker(name=name, config=config, clock=self._clock)
        self._breakers[name] = breaker
        record_circuit_state(name, breaker.state.value)
        logger.debug("circuit_registered", service=name, config=breaker.config)
        return breaker

    def get(self, name: str) -> Optional[CircuitBreaker]:
        """Return the breaker for name, or None if it was never created."""
        return self._breakers.get(name)

    async def get_or_create(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
    ) -> CircuitBreaker:
        """
        Get or create a circuit breaker for a dependency.

        Args:
            name: Name of the dependency
            config: Optional configuration (only used if creating a new breaker)

        Returns:
            CircuitBreaker instance
        """
        if name not in self._breakers:
            async with self._lock:
                if name not in self._breakers:
                    self._create(name, config)
        return self._breakers[name]

    def get_or_create_sync(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
    ) -> CircuitBreaker:
        """Synchronous version of get_or_create, for import-time wiring."""
        if name not in self._breakers:
            self._create(name, config)
        return self._breakers[name]

    def register(self, name: str, config: CircuitBreakerConfig) -> CircuitBreaker:
        """
        Create a breaker with an explicit configuration.

        Raises:
            ValueError: If a breaker with this name already exists
        """
        if name in self._breakers:
            raise ValueError(f"Circuit breaker '{name}' is already registered")
        return self._create(name, config)

    def names(self) -> List[str]:
        return list(self._breakers)

    def get_stats(self, name: str) -> Optional[CircuitBreakerStats]:
        breaker = self._breakers.get(name)
        return breaker.get_stats() if breaker else None

    def get_all_stats(self) -> List[CircuitBreakerStats]:
        """Stats for every registered breaker, in registration order."""
        return [breaker.get_stats() for breaker in self._breakers.values()]

    def reset(self, name: str) -> bool:
        """Reset a breaker to closed (for tests/admin). Returns False if unknown."""
        breaker = self._breakers.get(name)
        if breaker is None:
            return False
        breaker.reset()
        return True

    def reset_all(self):
        """Reset all circuit breakers to closed state."""
        for breaker in list(self._breakers.values()):
            breaker.reset()


default_registry = CircuitBreakerRegistry()


async def get_breaker(
    name: str,
    config: Optional[CircuitBreakerConfig] = None,
) -> CircuitBreaker:
    """Get or create a breaker in the default registry."""
    return await default_registry.get_or_create(name, config)


def get_breaker_sync(
    name: str,
    config: Optional[CircuitBreakerConfig] = None,
) -> CircuitBreaker:
    """Synchronous version of get_breaker."""
    return default_registry.get_or_create_sync(name, config)


def get_all_breaker_stats() -> List[CircuitBreakerStats]:
    """Get stats for all breakers in the default registry."""
    return default_registry.get_all_stats()


def reset_breaker(name: str) -> bool:
    return default_registry.reset(name)


def reset_all_breakers():
    default_registry.reset_all()
