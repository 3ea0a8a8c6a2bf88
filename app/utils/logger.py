"""
Structured logging configuration using structlog.
"""
import logging

import structlog
from typing import Optional

from app.config import Settings, settings as default_settings


def configure_logging(settings: Optional[Settings] = None):
    """
    Configure structured logging for the application.
    Sets up JSON formatting for production, console formatting for development.
    """
    settings = settings or default_settings
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if settings.app_environment == "production":
        # JSON formatting for production
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Console formatting for development
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def mask(value: Optional[str]) -> Optional[str]:
    """Mask a secret for logging, keeping the first and last four characters."""
    if not value:
        return None
    value = str(value)
    return f"{value[:4]}...{value[-4:]}"
