"""Reaping of abandoned escrow entries.

An entry is consumed by the GET that follows its POST. When the client never
comes back (closed tab, failed redirect) the entry just sits until its TTL
elapses. Redis drops such keys itself; MemoryEscrowStore only hides them from
reads, so they stay in memory until something calls ``cleanup_expired()``.

EscrowReaper runs that call on a fixed interval, and ``escrow_cleanup`` wraps
it as an async context manager for an application lifespan. Stores that
expire keys natively are detected and left alone.

Examples:
    FastAPI lifespan::

        from contextlib import asynccontextmanager

        from secure_escrow.core.cleanup import escrow_cleanup

        @asynccontextmanager
        async def lifespan(app):
            async with escrow_cleanup(store, interval_seconds=config.ttl_seconds):
                yield

        app = FastAPI(lifespan=lifespan)
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Protocol, runtime_checkable

from secure_escrow.observability.logging import get_logger
from secure_escrow.observability.metrics import record_cleanup

logger = get_logger(__name__)


@runtime_checkable
class ReapableStore(Protocol):
    """A store that keeps expired entries until told to drop them."""

    async def cleanup_expired(self) -> int: ...


def needs_reaping(store: Any) -> bool:
    """True when ``store`` does not expire entries on its own."""
    return isinstance(store, ReapableStore)


class EscrowReaper:
    """Periodically removes expired escrow entries from a store.

    Attributes:
        store: Store to reap
        interval_seconds: Time between passes
    """

    def __init__(self, store: ReapableStore, interval_seconds: float = 60) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.store = store
        self.interval_seconds = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def reap_once(self) -> int:
        """Run one pass and return the number of entries removed."""
        removed = await self.store.cleanup_expired()
        record_cleanup(removed)
        if removed:
            logger.info("cleanup.completed", entries_removed=removed)
        else:
            logger.debug("cleanup.completed", entries_removed=0)
        return removed

    async def run(self) -> None:
        """Reap until stop() is called. A failed pass is logged and retried
        on the next interval."""
        logger.info("cleanup.started", interval_seconds=self.interval_seconds)

        while not self._stop_event.is_set():
            try:
                await self.reap_once()
            except Exception as e:
                logger.error(
                    "cleanup.failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

        logger.info("cleanup.stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())

    async def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop to finish; cancel it if it does not within ``timeout``."""
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("cleanup.stop_timeout", timeout=timeout)
        finally:
            self._task = None


@asynccontextmanager
async def escrow_cleanup(
    store: Any,
    interval_seconds: float = 60,
) -> AsyncIterator[EscrowReaper | None]:
    """Reap ``store`` in the background for the duration of the block.

    Yields:
        The running EscrowReaper, or None when the store expires entries
        natively.
    """
    if not needs_reaping(store):
        logger.debug("cleanup.not_needed", store=type(store).__name__)
        yield None
        return

    reaper = EscrowReaper(store, interval_seconds)
    reaper.start()
    try:
        yield reaper
    finally:
        await reaper.stop()
