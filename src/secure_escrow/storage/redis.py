"""Redis-backed escrow store.

Escrow entries are short-lived and may be created by one worker and consumed
by another, so a shared Redis (or Valkey) instance is the natural backing
store for multi-process deployments. Redis expires keys on its own, so no
cleanup task is needed.

Each protocol call maps onto one Redis command. ``DEL`` returns the number of
keys removed, which is what makes ``delete()`` report exactly one winner when
two requests race to consume the same entry.

Timeouts are configured on the client (``socket_timeout``); a timed-out call
raises StorageError like any other backend failure.

Examples:
    Connecting::

        from secure_escrow.storage.redis import RedisEscrowStore

        store = RedisEscrowStore.from_url("redis://localhost:6379/0", socket_timeout=1.0)
        ...
        await store.close()
"""

from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from secure_escrow.exceptions import StorageError
from secure_escrow.observability.logging import get_logger

logger = get_logger(__name__)


class RedisEscrowStore:
    """EscrowStore implementation over ``redis.asyncio``.

    Attributes:
        client: The Redis client. Must be created with ``decode_responses=True``
            so that values come back as ``str``.
    """

    def __init__(self, client: Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisEscrowStore":
        """Create a store from a Redis URL.

        Extra keyword arguments are passed to ``Redis.from_url``.
        """
        client = Redis.from_url(url, encoding="utf-8", decode_responses=True, **kwargs)
        return cls(client)

    async def _execute(self, command: str, key: str, *args: Any) -> Any:
        try:
            return await getattr(self.client, command)(key, *args)
        except RedisError as e:
            logger.error(
                "store.command_failed",
                command=command,
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageError(
                message=f"Redis {command.upper()} failed for {key}: {e}",
                cause=e,
            ) from e

    async def set(self, key: str, value: str) -> None:
        await self._execute("set", key, value)

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self._execute("expire", key, ttl_seconds))

    async def exists(self, key: str) -> bool:
        return bool(await self._execute("exists", key))

    async def get(self, key: str) -> str | None:
        value = await self._execute("get", key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def delete(self, key: str) -> bool:
        return bool(await self._execute("delete", key))

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self.client.aclose()
