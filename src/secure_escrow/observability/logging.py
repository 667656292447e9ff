"""Structured logging configuration for the secure escrow middleware.

This module provides structured logging using structlog to emit
JSON-formatted logs with contextual information.

Escrow ids may appear in logs. Nonces never do: an id alone does not grant
access to an entry.

Examples:
    Configure logging::

        from secure_escrow.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    Use the logger::

        from secure_escrow.observability.logging import get_logger

        logger = get_logger(__name__)
        logger.info("escrow.stored", escrow_id="6f1c...", status=200)

    Output (JSON)::

        {
            "event": "escrow.stored",
            "escrow_id": "6f1c...",
            "status": 200,
            "timestamp": "2024-01-01T00:00:00.000000Z",
            "level": "info"
        }
"""

import logging
import sys
from typing import Any

import structlog

REDACTED = "[redacted]"

# Event keys whose values would let a reader consume an escrow entry
SECRET_FIELDS = frozenset({"nonce", "token", "cookie"})


def redact_secrets(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor masking nonces and full tokens.

    Example:
        >>> redact_secrets(None, "info", {"event": "x", "nonce": "9f86d081"})
        {'event': 'x', 'nonce': '[redacted]'}
    """
    for field in SECRET_FIELDS.intersection(event_dict):
        event_dict[field] = REDACTED
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structured logging for the application.

    This should be called once at application startup.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, emit JSON logs; if False, use console format
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    processors: list[object] = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module)
    """
    return structlog.get_logger(name)
