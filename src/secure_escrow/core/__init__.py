"""Core escrow logic.

This package contains the framework-agnostic decision engine and the
background cleanup task for stores without native expiry.
"""

from secure_escrow.core.engine import EscrowEngine

__all__ = [
    "EscrowEngine",
]
