"""
Resilience Configuration
========================
Defaults and environment overrides for breakers, rate limits and retries.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional, Any

from outreach_core.circuit_breaker.models import CircuitBreakerConfig
from outreach_core.rate_limit.models import RateLimitConfig
from outreach_core.retry.policy import RetryPolicy

ENV_PREFIX = "OUTREACH_"

# Standard dependencies and their breaker tuning
DEPENDENCY_BREAKER_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "llm-provider": {"failure_threshold": 3, "success_threshold": 2, "open_timeout": 60.0},
    "payments": {"failure_threshold": 5, "success_threshold": 2, "open_timeout": 30.0},
    "places-api": {"failure_threshold": 5, "success_threshold": 2, "open_timeout": 30.0},
    # More lenient for the database
    "datastore": {"failure_threshold": 10, "success_threshold": 3, "open_timeout": 15.0},
}

# Dependencies that get a client-side request/token budget
RATE_LIMITED_DEPENDENCIES = frozenset({"llm-provider"})

# Values that switch off an optional limit
_DISABLED = ("none", "off")


def _env_key(name: str) -> str:
    return name.upper().replace("-", "_")


def _get(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    return cast(raw)


def _optional_float(raw: str) -> Optional[float]:
    if raw.strip().lower() in _DISABLED:
        return None
    return float(raw)


def _optional_int(raw: str) -> Optional[int]:
    if raw.strip().lower() in _DISABLED:
        return None
    return int(raw)


def _flag(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _breaker_from_env(
    env: Mapping[str, str],
    prefix: str,
    base: CircuitBreakerConfig,
) -> CircuitBreakerConfig:
    return replace(
        base,
        failure_threshold=_get(env, f"{prefix}FAILURE_THRESHOLD", base.failure_threshold, int),
        success_threshold=_get(env, f"{prefix}SUCCESS_THRESHOLD", base.success_threshold, int),
        open_timeout=_get(env, f"{prefix}OPEN_TIMEOUT", base.open_timeout, float),
        reset_window=_get(env, f"{prefix}RESET_WINDOW", base.reset_window, _optional_float),
    )


def default_dependency_breakers() -> Dict[str, CircuitBreakerConfig]:
    return {
        name: CircuitBreakerConfig(**values)
        for name, values in DEPENDENCY_BREAKER_DEFAULTS.items()
    }


@dataclass
class ResilienceSettings:
    """Process-wide resilience settings."""
    service_name: str = "outreach"
    breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    dependency_breakers: Dict[str, CircuitBreakerConfig] = field(
        default_factory=default_dependency_breakers
    )
    log_level: str = "INFO"
    log_json: bool = True

    def breaker_for(self, name: str) -> CircuitBreakerConfig:
        """Breaker config for a dependency, falling back to the global default."""
        return self.dependency_breakers.get(name, self.breaker)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ResilienceSettings":
        """
        Load settings from environment variables.

        Global keys use the OUTREACH_BREAKER_*, OUTREACH_RATE_* and
        OUTREACH_RETRY_* prefixes. A standard dependency can be tuned with
        OUTREACH_<NAME>_FAILURE_THRESHOLD etc., e.g.
        OUTREACH_LLM_PROVIDER_OPEN_TIMEOUT=120. A standard dependency starts
        from the global breaker settings with its own profile applied on top,
        so OUTREACH_BREAKER_RESET_WINDOW=off reaches every dependency.
        """
        env = os.environ if environ is None else environ
        p = ENV_PREFIX

        breaker = _breaker_from_env(env, f"{p}BREAKER_", CircuitBreakerConfig())

        base_rate = RateLimitConfig()
        rate_limit = RateLimitConfig(
            max_requests_per_window=_get(
                env, f"{p}RATE_MAX_REQUESTS", base_rate.max_requests_per_window, int
            ),
            max_tokens_per_window=_get(
                env, f"{p}RATE_MAX_TOKENS", base_rate.max_tokens_per_window, _optional_int
            ),
            window=_get(env, f"{p}RATE_WINDOW", base_rate.window, float),
        )

        base_retry = RetryPolicy()
        retry = RetryPolicy(
            max_retries=_get(env, f"{p}RETRY_MAX_RETRIES", base_retry.max_retries, int),
            base_delay=_get(env, f"{p}RETRY_BASE_DELAY", base_retry.base_delay, float),
            max_delay=_get(env, f"{p}RETRY_MAX_DELAY", base_retry.max_delay, float),
            jitter=_get(env, f"{p}RETRY_JITTER", base_retry.jitter, float),
        )

        # Global env -> dependency profile -> OUTREACH_<NAME>_* overrides
        dependency_breakers = {
            name: _breaker_from_env(env, f"{p}{_env_key(name)}_", replace(breaker, **profile))
            for name, profile in DEPENDENCY_BREAKER_DEFAULTS.items()
        }

        return cls(
            service_name=env.get("SERVICE_NAME", "outreach"),
            breaker=breaker,
            rate_limit=rate_limit,
            retry=retry,
            dependency_breakers=dependency_breakers,
            log_level=env.get(f"{p}LOG_LEVEL", "INFO"),
            log_json=_get(env, f"{p}LOG_JSON", True, _flag),
        )
