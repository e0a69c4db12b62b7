"""
Configuration Tests
===================
Defaults and environment overrides.
"""

import pytest

from outreach_core.config import ResilienceSettings
from outreach_core.retry import BackoffStrategy


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self):
        settings = ResilienceSettings.from_env({})

        assert settings.service_name == "outreach"
        assert settings.breaker.failure_threshold == 5
        assert settings.breaker.success_threshold == 2
        assert settings.breaker.open_timeout == 30.0
        assert settings.rate_limit.max_requests_per_window == 60
        assert settings.rate_limit.max_tokens_per_window == 150000
        assert settings.retry.max_retries == 3
        assert settings.retry.strategy == BackoffStrategy.EXPONENTIAL
        assert settings.log_level == "INFO"
        assert settings.log_json is True

    def test_dependency_profiles(self):
        """Standard dependencies carry their own breaker tuning."""
        settings = ResilienceSettings()

        llm = settings.breaker_for("llm-provider")
        assert (llm.failure_threshold, llm.success_threshold, llm.open_timeout) == (3, 2, 60.0)

        datastore = settings.breaker_for("datastore")
        assert (datastore.failure_threshold, datastore.success_threshold, datastore.open_timeout) == (10, 3, 15.0)

    def test_unknown_dependency_uses_global(self):
        settings = ResilienceSettings()
        assert settings.breaker_for("enrichment") is settings.breaker


class TestEnvironmentOverrides:
    """Tests for OUTREACH_* environment variables."""

    def test_global_overrides(self):
        settings = ResilienceSettings.from_env({
            "SERVICE_NAME": "outreach-worker",
            "OUTREACH_BREAKER_FAILURE_THRESHOLD": "7",
            "OUTREACH_BREAKER_OPEN_TIMEOUT": "12.5",
            "OUTREACH_RATE_MAX_REQUESTS": "50",
            "OUTREACH_RATE_WINDOW": "30",
            "OUTREACH_RETRY_MAX_RETRIES": "5",
            "OUTREACH_RETRY_JITTER": "0.2",
            "OUTREACH_LOG_LEVEL": "DEBUG",
            "OUTREACH_LOG_JSON": "false",
        })

        assert settings.service_name == "outreach-worker"
        assert settings.breaker.failure_threshold == 7
        assert settings.breaker.open_timeout == 12.5
        assert settings.rate_limit.max_requests_per_window == 50
        assert settings.rate_limit.window == 30.0
        assert settings.retry.max_retries == 5
        assert settings.retry.jitter == 0.2
        assert settings.log_level == "DEBUG"
        assert settings.log_json is False

    def test_per_dependency_override(self):
        """OUTREACH_<NAME>_* tunes one dependency and leaves the rest alone."""
        settings = ResilienceSettings.from_env({
            "OUTREACH_LLM_PROVIDER_OPEN_TIMEOUT": "120",
            "OUTREACH_PLACES_API_FAILURE_THRESHOLD": "8",
        })

        assert settings.breaker_for("llm-provider").open_timeout == 120.0
        assert settings.breaker_for("llm-provider").failure_threshold == 3
        assert settings.breaker_for("places-api").failure_threshold == 8
        assert settings.breaker_for("payments").failure_threshold == 5

    def test_disable_optional_limits(self):
        """'none' disables the token budget and the failure reset window."""
        settings = ResilienceSettings.from_env({
            "OUTREACH_RATE_MAX_TOKENS": "none",
            "OUTREACH_BREAKER_RESET_WINDOW": "off",
        })

        assert settings.rate_limit.max_tokens_per_window is None
        assert settings.breaker.reset_window is None

    def test_empty_values_ignored(self):
        settings = ResilienceSettings.from_env({"OUTREACH_RETRY_MAX_RETRIES": ""})
        assert settings.retry.max_retries == 3

    def test_zero_is_not_a_disable_word(self):
        """A zero budget is rejected instead of silently removing the limit."""
        with pytest.raises(ValueError):
            ResilienceSettings.from_env({"OUTREACH_RATE_MAX_TOKENS": "0"})
        with pytest.raises(ValueError):
            ResilienceSettings.from_env({"OUTREACH_BREAKER_RESET_WINDOW": "0"})

    def test_global_breaker_under_profiles(self):
        """Global breaker settings reach dependencies unless their profile sets the field."""
        settings = ResilienceSettings.from_env({
            "OUTREACH_BREAKER_RESET_WINDOW": "120",
            "OUTREACH_BREAKER_FAILURE_THRESHOLD": "7",
        })

        for name in ("llm-provider", "payments", "places-api", "datastore"):
            assert settings.breaker_for(name).reset_window == 120.0
        assert settings.breaker_for("llm-provider").failure_threshold == 3
        assert settings.breaker_for("enrichment").failure_threshold == 7
