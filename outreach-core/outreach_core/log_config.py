"""
Logging Setup
=============
structlog configuration for services embedding outreach-core.

Usage:
    from outreach_core.log_config import configure_logging

    configure_logging(service_name="outreach-worker", level="DEBUG", json_output=False)
"""

import logging
import sys

import structlog


def configure_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        service_name: Bound to every log event as ``service_name``
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines for production, console rendering otherwise
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service_name=service_name)
