"""
Resilience Metrics
==================
Prometheus metrics for guarded dependency calls.

Tracks:
- Circuit breaker states
- Guarded call outcomes and latency
- Time spent waiting for rate-limit capacity

Usage:
    from outreach_core.metrics import get_metrics_text

    @app.get("/metrics")
    async def metrics():
        return Response(get_metrics_text(), media_type=CONTENT_TYPE_LATEST)
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# Custom registry so embedding services keep their default registry clean
RESILIENCE_REGISTRY = CollectorRegistry()

CIRCUIT_BREAKER_STATE = Gauge(
    name="circuit_breaker_state",
    documentation="Circuit breaker state (0=closed, 1=half-open, 2=open)",
    labelnames=["service"],
    registry=RESILIENCE_REGISTRY,
)

CIRCUIT_REJECTIONS = Counter(
    name="circuit_rejections_total",
    documentation="Calls rejected without being attempted because the circuit was open",
    labelnames=["service"],
    registry=RESILIENCE_REGISTRY,
)

GUARDED_CALLS = Counter(
    name="guarded_calls_total",
    documentation="Guarded dependency calls by final outcome",
    labelnames=["service", "outcome"],
    registry=RESILIENCE_REGISTRY,
)

GUARDED_CALL_DURATION = Histogram(
    name="guarded_call_duration_seconds",
    documentation="End-to-end duration of guarded calls including retries",
    labelnames=["service", "outcome"],
    buckets=[
        0.005, 0.01, 0.025, 0.05, 0.1,
        0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0,
    ],
    registry=RESILIENCE_REGISTRY,
)

RATE_LIMIT_WAIT = Histogram(
    name="rate_limit_wait_seconds",
    documentation="Time callers spent suspended waiting for rate-limit capacity",
    labelnames=["limiter"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0],
    registry=RESILIENCE_REGISTRY,
)

_STATE_VALUES = {"closed": 0, "half_open": 1, "open": 2}


def record_circuit_state(service: str, state: str):
    """
    Record circuit breaker state change.

    Args:
        service: Dependency name
        state: State value (closed, half_open, open)
    """
    CIRCUIT_BREAKER_STATE.labels(service=service).set(_STATE_VALUES.get(state, -1))


def record_rejection(service: str):
    CIRCUIT_REJECTIONS.labels(service=service).inc()


def record_guarded_call(service: str, outcome: str, duration_seconds: float):
    """
    Record the final outcome of a guarded call.

    Args:
        service: Dependency name
        outcome: success, failure, circuit_open, exhausted
        duration_seconds: Total duration including backoff waits
    """
    GUARDED_CALLS.labels(service=service, outcome=outcome).inc()
    GUARDED_CALL_DURATION.labels(service=service, outcome=outcome).observe(duration_seconds)


def record_rate_limit_wait(limiter: str, waited_seconds: float):
    RATE_LIMIT_WAIT.labels(limiter=limiter).observe(waited_seconds)


def get_metrics_text() -> bytes:
    """Export resilience metrics in Prometheus text format."""
    return generate_latest(RESILIENCE_REGISTRY)


__all__ = [
    "RESILIENCE_REGISTRY",
    "CONTENT_TYPE_LATEST",
    "CIRCUIT_BREAKER_STATE",
    "CIRCUIT_REJECTIONS",
    "GUARDED_CALLS",
    "GUARDED_CALL_DURATION",
    "RATE_LIMIT_WAIT",
    "record_circuit_state",
    "record_rejection",
    "record_guarded_call",
    "record_rate_limit_wait",
    "get_metrics_text",
]
