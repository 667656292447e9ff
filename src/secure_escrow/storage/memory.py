"""In-memory escrow store with asyncio concurrency control.

This module provides an in-process implementation of the EscrowStore
protocol. Values live in a dictionary; expiry deadlines are tracked on a
monotonic clock.

The MemoryEscrowStore is suitable for:
    - Single-process applications
    - Development and testing

For several workers behind a load balancer use RedisEscrowStore, since the
GET that consumes an entry may land on a different process than the POST that
created it.

Expiry:
    - Expired keys are treated as absent by every read (lazy expiry)
    - cleanup_expired() reaps them in bulk; run it periodically with
      secure_escrow.core.cleanup.escrow_cleanup

Examples:
    Basic usage::

        from secure_escrow.storage.memory import MemoryEscrowStore

        store = MemoryEscrowStore()
        await store.set("secure_escrow:abc", '{"nonce": "...", "response": [...]}')
        await store.expire("secure_escrow:abc", 180)

        assert await store.exists("secure_escrow:abc")
        assert await store.delete("secure_escrow:abc") is True
        assert await store.delete("secure_escrow:abc") is False
"""

import asyncio
import time
from collections.abc import Callable


class MemoryEscrowStore:
    """In-memory escrow store.

    Attributes:
        _data: Dictionary mapping keys to stored values.
        _deadlines: Dictionary mapping keys to their expiry time on the clock.
        _lock: Lock serializing mutations.
        _clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._data: dict[str, str] = {}
        self._deadlines: dict[str, float] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def __len__(self) -> int:
        return len(self._data)

    def _is_expired(self, key: str) -> bool:
        deadline = self._deadlines.get(key)
        return deadline is not None and deadline <= self._clock()

    def _evict(self, key: str) -> None:
        self._data.pop(key, None)
        self._deadlines.pop(key, None)

    async def set(self, key: str, value: str) -> None:
        """Store a value. Like Redis SET, this clears any previous TTL."""
        async with self._lock:
            self._data[key] = value
            self._deadlines.pop(key, None)

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        async with self._lock:
            if key not in self._data or self._is_expired(key):
                self._evict(key)
                return False
            if ttl_seconds <= 0:
                self._evict(key)
                return True
            self._deadlines[key] = self._clock() + ttl_seconds
            return True

    async def exists(self, key: str) -> bool:
        return key in self._data and not self._is_expired(key)

    async def get(self, key: str) -> str | None:
        if self._is_expired(key):
            return None
        return self._data.get(key)

    async def delete(self, key: str) -> bool:
        """Remove a key, reporting whether this call removed it.

        An expired key counts as already gone.
        """
        async with self._lock:
            if key not in self._data:
                return False
            expired = self._is_expired(key)
            self._evict(key)
            return not expired

    async def ttl(self, key: str) -> float | None:
        """Seconds left before the key expires, or None if it has no expiry."""
        deadline = self._deadlines.get(key)
        if deadline is None:
            return None
        return max(deadline - self._clock(), 0.0)

    async def cleanup_expired(self) -> int:
        """Remove expired keys.

        Returns:
            The number of keys removed.
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [key for key, deadline in self._deadlines.items() if deadline <= now]
            for key in expired_keys:
                self._evict(key)
        return len(expired_keys)
