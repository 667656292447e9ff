"""Custom exceptions for the secure escrow middleware.

This module defines the exception hierarchy used to signal failures of the
escrow layer itself: an unreachable backing store and stored documents that
can no longer be decoded.

Ordinary negative outcomes are not exceptions. A missing or malformed token,
an unknown route and a nonce mismatch are all handled by the engine as normal
results (pass-through or 403).

Examples:
    Handling a storage error::

        from secure_escrow.exceptions import StorageError

        try:
            raw = await store.get(key)
        except StorageError as e:
            logger.error("escrow.store_unavailable", error=str(e))
            return EscrowResponse(status=500, headers={}, body=["Escrow unavailable"])
"""


class EscrowError(Exception):
    """Base exception for all escrow-related errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class StorageError(EscrowError):
    """Backing store operation failed.

    Raised by store adapters when the backend cannot complete a call, whether
    from a refused connection, a timeout or a server-side error. The engine
    never retries; the current request fails with a 500.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception that caused the storage error.

    Examples:
        Raising a storage error::

            try:
                await redis.get(key)
            except RedisError as e:
                raise StorageError(
                    message=f"Failed to read escrow key from Redis: {e}",
                    cause=e,
                ) from e
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize the storage error with details.

        Args:
            message: Human-readable error description.
            cause: The underlying exception that caused the storage error.
        """
        super().__init__(message)
        self.cause = cause


class CorruptEscrowError(EscrowError):
    """A stored escrow document could not be decoded.

    Decoding fails closed: a value that is not the expected JSON document is
    never served to the client.

    Attributes:
        message: Human-readable error description.
        key: The store key holding the corrupt value, when known.
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        """Initialize the corruption error.

        Args:
            message: Human-readable error description.
            key: The store key holding the corrupt value.
        """
        super().__init__(message)
        self.key = key
