"""Logging and observability configuration using Pydantic Logfire.

This module provides standardized logging utilities and configuration.
All modules should use Python's standard logging library (logging.getLogger(__name__)),
and Logfire will automatically capture and enrich these logs.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})

Structured logging utilities:
    log_with_context(logger, "info", "Message", member_id="123", family_id="abc")
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


def configure_logfire() -> None:
    """Configure Pydantic Logfire with token from environment.

    Records are only shipped when a token is configured; spans stay local otherwise.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="famscore",
        service_version="0.1.0",
        environment="production" if settings.is_production else "development",
        send_to_logfire="if-token-present",
    )

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def instrument_fastapi(app: FastAPI) -> None:
    """Add Logfire instrumentation to FastAPI application."""
    logfire.instrument_fastapi(app)
    logger = logging.getLogger(__name__)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Create a custom span for service layer functions.

    Usage:
        with span("task_state_machine.take_task"):
            # Your service logic here
            pass
    """
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Additional context fields (member_id, family_id, operation, etc.)

    Usage:
        log_with_context(logger, "info", "Task taken", task_id="12", member_id="3")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)


def log_with_member_context(
    logger: logging.Logger,
    level: str,
    message: str,
    member_id: str | None = None,
    family_id: str | None = None,
    **extra: object,
) -> None:
    """Log a message with the acting member's context.

    Usage:
        log_with_member_context(logger, "warning", "Denied", member_id="3", family_id="1", operation="create_task")
    """
    context: dict[str, object] = dict(extra)
    if member_id:
        context["member_id"] = member_id
    if family_id:
        context["family_id"] = family_id
    log_with_context(logger, level, message, **context)
