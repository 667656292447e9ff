"""Backing stores for escrow entries.

All stores implement the EscrowStore protocol defined in base.py.

Available Stores:
    - MemoryEscrowStore: In-process dictionary with TTL tracking
    - RedisEscrowStore: Shared Redis/Valkey instance
"""

from secure_escrow.config import EscrowConfig
from secure_escrow.storage.base import EscrowStore
from secure_escrow.storage.memory import MemoryEscrowStore
from secure_escrow.storage.redis import RedisEscrowStore


def build_store(config: EscrowConfig) -> EscrowStore:
    """Create the store selected by ``config.storage_adapter``."""
    if config.storage_adapter == "redis":
        return RedisEscrowStore.from_url(config.redis_url)
    return MemoryEscrowStore()


__all__ = [
    "EscrowStore",
    "MemoryEscrowStore",
    "RedisEscrowStore",
    "build_store",
]
