"""Utility helpers for the secure escrow middleware."""

from secure_escrow.utils.headers import get_header_value, set_header

__all__ = [
    "get_header_value",
    "set_header",
]
