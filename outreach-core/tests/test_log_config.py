"""
Logging Setup Tests
===================
"""

import json
import logging

import pytest
import structlog

from outreach_core.log_config import configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    logging.getLogger().handlers.clear()


def last_json_line(output: str) -> dict:
    lines = [line for line in output.splitlines() if line.strip()]
    return json.loads(lines[-1])


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_output(self, capsys):
        """Events render as JSON lines carrying the bound service name."""
        configure_logging("outreach-worker", level="INFO", json_output=True)

        structlog.get_logger("outreach_core.circuit_breaker.breaker").warning(
            "circuit_state_change",
            service="payments",
            from_state="closed",
            to_state="open",
        )

        event = last_json_line(capsys.readouterr().out)
        assert event["event"] == "circuit_state_change"
        assert event["service"] == "payments"
        assert event["to_state"] == "open"
        assert event["service_name"] == "outreach-worker"
        assert event["level"] == "warning"
        assert event["logger"] == "outreach_core.circuit_breaker.breaker"
        assert "timestamp" in event

    def test_level_filtering(self, capsys):
        """Events below the configured level are dropped."""
        configure_logging("outreach-worker", level="WARNING")

        logger = structlog.get_logger("outreach_core.test")
        logger.info("dependency_registered", service="payments")
        logger.error("retry_exhausted", func="search", attempts=4)

        output = capsys.readouterr().out
        assert "dependency_registered" not in output
        assert last_json_line(output)["event"] == "retry_exhausted"

    def test_console_output(self, capsys):
        configure_logging("outreach-worker", level="INFO", json_output=False)

        structlog.get_logger("outreach_core.test").info("guarded_call_rejected", service="places-api")

        output = capsys.readouterr().out
        assert "guarded_call_rejected" in output
        assert "places-api" in output
