"""
Invoker Factory
===============
Builds an invoker wired with the standard dependency profiles.
"""

from typing import Dict, Optional

from outreach_core.circuit_breaker import CircuitBreakerRegistry
from outreach_core.config import (
    DEPENDENCY_BREAKER_DEFAULTS,
    RATE_LIMITED_DEPENDENCIES,
    ResilienceSettings,
)
from .invoker import ResilientInvoker
from .models import DependencyPolicy


def dependency_policies(settings: ResilienceSettings) -> Dict[str, DependencyPolicy]:
    """Policy for each standard dependency under the given settings."""
    return {
        name: DependencyPolicy(
            breaker=settings.breaker_for(name),
            rate_limit=settings.rate_limit if name in RATE_LIMITED_DEPENDENCIES else None,
            retry=settings.retry,
        )
        for name in DEPENDENCY_BREAKER_DEFAULTS
    }


def build_default_invoker(
    settings: Optional[ResilienceSettings] = None,
    registry: Optional[CircuitBreakerRegistry] = None,
) -> ResilientInvoker:
    """
    Create an invoker with llm-provider, payments, places-api and datastore registered.

    Args:
        settings: Resilience settings (defaults to ResilienceSettings.from_env())
        registry: Breaker registry to use (a fresh one if omitted)
    """
    settings = settings or ResilienceSettings.from_env()
    invoker = ResilientInvoker(registry=registry, default_retry=settings.retry)
    for name, policy in dependency_policies(settings).items():
        invoker.register(name, policy)
    return invoker
