"""Store protocol for escrow entries.

The escrow engine needs only five single-key operations from its backing
store, mirroring the Redis commands of the same names:

    SET key value, EXPIRE key seconds, EXISTS key, GET key, DEL key

Any object offering these as coroutines can back the engine, from the
in-memory store used in tests and single-process deployments to a networked
cache shared by many workers.

Atomicity Requirements:
    Implementations MUST make each call atomic per key. In particular
    ``delete()`` must report whether *this* call removed the key: the engine
    serves an escrowed response only when its own delete returned True, which
    makes consumption linearizable even when two GETs race for one token.

Error Handling:
    Backend failures (connection errors, timeouts) MUST be raised as
    StorageError. Implementations should NOT leak backend-specific
    exceptions, and should not retry on behalf of the engine.

Examples:
    Implementing a custom store::

        class DictStore:
            def __init__(self) -> None:
                self._data: dict[str, str] = {}

            async def set(self, key: str, value: str) -> None:
                self._data[key] = value

            async def expire(self, key: str, ttl_seconds: int) -> bool:
                return key in self._data  # no expiry support

            async def exists(self, key: str) -> bool:
                return key in self._data

            async def get(self, key: str) -> str | None:
                return self._data.get(key)

            async def delete(self, key: str) -> bool:
                return self._data.pop(key, None) is not None
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class EscrowStore(Protocol):
    """Protocol defining the interface for escrow backing stores."""

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value and TTL."""
        ...

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set the key to expire after ``ttl_seconds``.

        Returns:
            True if the key existed and the timeout was set.
        """
        ...

    async def exists(self, key: str) -> bool:
        """Return True if the key is present and not expired."""
        ...

    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None if absent or expired."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove the key.

        Returns:
            True if this call removed the key, False if it was already gone.
        """
        ...
