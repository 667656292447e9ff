"""Observability utilities for the secure escrow middleware.

This package provides:
- Prometheus metrics for escrow outcomes
- Structured logging with contextual information
"""

from secure_escrow.observability.logging import configure_logging, get_logger
from secure_escrow.observability.metrics import (
    record_cleanup,
    record_request,
    record_stored,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_request",
    "record_stored",
    "record_cleanup",
]
