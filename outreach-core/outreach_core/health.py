"""
Circuit Health Endpoints
========================
Exposes breaker statistics for health checks and dashboards.
"""

import time
from datetime import datetime
from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel
import structlog

from outreach_core.circuit_breaker import CircuitBreaker, CircuitBreakerStats, CircuitState
from outreach_core.invoker import ResilientInvoker
from outreach_core.metrics import CONTENT_TYPE_LATEST, get_metrics_text

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CircuitHealth(BaseModel):
    name: str
    state: CircuitState
    consecutive_failures: int
    consecutive_successes: int
    total_calls: int
    total_failures: int
    total_successes: int
    total_rejections: int
    last_failure: Optional[datetime] = None
    last_success: Optional[datetime] = None
    retry_after: Optional[float] = None
    accepting_calls: bool = True

    @classmethod
    def from_breaker(cls, breaker: CircuitBreaker) -> "CircuitHealth":
        return cls.from_stats(breaker.get_stats(), accepting_calls=breaker.allows_call())

    @classmethod
    def from_stats(cls, stats: CircuitBreakerStats, accepting_calls: bool = True) -> "CircuitHealth":
        retry_after = None
        if stats.state == CircuitState.OPEN and stats.next_attempt_at is not None:
            retry_after = round(max(0.0, stats.next_attempt_at - time.time()), 3)
        return cls(
            name=stats.name,
            state=stats.state,
            consecutive_failures=stats.consecutive_failures,
            consecutive_successes=stats.consecutive_successes,
            total_calls=stats.total_calls,
            total_failures=stats.total_failures,
            total_successes=stats.total_successes,
            total_rejections=stats.total_rejections,
            last_failure=stats.last_failure,
            last_success=stats.last_success,
            retry_after=retry_after,
            accepting_calls=accepting_calls,
        )


class CircuitsHealthResponse(BaseModel):
    status: HealthStatus
    service: str
    circuits: List[CircuitHealth]
    timestamp: float


def overall_status(stats: List[CircuitBreakerStats]) -> HealthStatus:
    """Healthy when every circuit is closed, unhealthy when every circuit is open."""
    if not stats:
        return HealthStatus.HEALTHY
    open_count = sum(1 for s in stats if s.state == CircuitState.OPEN)
    if open_count == len(stats):
        return HealthStatus.UNHEALTHY
    if open_count or any(s.state == CircuitState.HALF_OPEN for s in stats):
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def create_health_router(
    invoker: ResilientInvoker,
    service_name: str = "outreach",
) -> APIRouter:
    """
    Create a router exposing circuit breaker state.

    Args:
        invoker: Invoker whose registry is reported
        service_name: Name reported in responses

    Returns:
        FastAPI router with /health/circuits, /health/circuits/{name},
        POST /health/circuits/{name}/reset and /metrics
    """
    router = APIRouter(tags=["Health"])

    @router.get("/health/circuits", response_model=CircuitsHealthResponse)
    async def circuits_health() -> CircuitsHealthResponse:
        """All circuit breakers and the aggregate status."""
        stats = invoker.get_all_stats()
        return CircuitsHealthResponse(
            status=overall_status(stats),
            service=service_name,
            circuits=[CircuitHealth.from_breaker(b) for b in invoker.registry],
            timestamp=time.time(),
        )

    @router.get("/health/circuits/{name}", response_model=CircuitHealth)
    async def circuit_health(name: str) -> CircuitHealth:
        breaker = invoker.registry.get(name)
        if breaker is None:
            raise HTTPException(status_code=404, detail=f"Unknown circuit '{name}'")
        return CircuitHealth.from_breaker(breaker)

    @router.post("/health/circuits/{name}/reset", response_model=CircuitHealth)
    async def reset_circuit(name: str) -> CircuitHealth:
        """Operator override: force a circuit closed."""
        if not invoker.registry.reset(name):
            raise HTTPException(status_code=404, detail=f"Unknown circuit '{name}'")
        logger.warning("circuit_reset_by_operator", service=name)
        return CircuitHealth.from_breaker(invoker.registry.get(name))

    @router.get("/metrics")
    async def metrics() -> Response:
        return Response(content=get_metrics_text(), media_type=CONTENT_TYPE_LATEST)

    return router
