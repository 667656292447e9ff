"""Framework adapters for the secure escrow middleware.

- ASGISecureEscrowMiddleware: Starlette / FastAPI
"""

from secure_escrow.adapters.asgi import ASGISecureEscrowMiddleware

__all__ = [
    "ASGISecureEscrowMiddleware",
]
