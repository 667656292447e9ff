"""ASGI middleware adapter for FastAPI and Starlette applications.

This module wraps the core EscrowEngine as Starlette middleware.

The middleware:
1. Converts the Starlette request to an EscrowRequest
2. Dispatches through the engine, which may call the downstream app
3. Converts the engine's EscrowResponse back to a Starlette Response

Pass-through requests get the downstream response object itself. Only a
response that goes into escrow is buffered, with its raw header list, so
repeated headers such as Set-Cookie survive storage.

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from secure_escrow.adapters.asgi import ASGISecureEscrowMiddleware
        from secure_escrow.config import DomainConfig, EscrowConfig
        from secure_escrow.routing import StarletteRouteClassifier, escrow
        from secure_escrow.storage.memory import MemoryEscrowStore

        app = FastAPI()

        app.add_middleware(
            ASGISecureEscrowMiddleware,
            store=MemoryEscrowStore(),
            classifier=StarletteRouteClassifier(app),
            config=EscrowConfig(
                secure_domain=DomainConfig(protocol="https", host="secure.example.com"),
                insecure_domain=DomainConfig(host="www.example.com"),
            ),
        )

        @app.post("/session")
        @escrow
        async def create_session(...):
            # The response is escrowed and the browser redirected to it
            ...
"""

from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response

from secure_escrow.config import EscrowConfig
from secure_escrow.core.engine import EscrowEngine
from secure_escrow.models import EscrowRequest, EscrowResponse
from secure_escrow.routing import RouteClassifier
from secure_escrow.storage.base import EscrowStore


class ASGISecureEscrowMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for response escrow.

    Attributes:
        store: Backing store for escrow entries
        config: Configuration object
        engine: Core engine instance
    """

    def __init__(
        self,
        app: Any,
        store: EscrowStore,
        classifier: RouteClassifier,
        config: EscrowConfig | None = None,
    ) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            store: Backing store for escrow entries
            classifier: Route classifier for the application's routes
            config: Configuration object (uses defaults if not provided)
        """
        super().__init__(app)
        self.store = store
        self.config = config or EscrowConfig()
        self.engine = EscrowEngine(store, classifier, self.config)

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[Response]],
    ) -> Response:
        """Process a request through the escrow engine."""
        internal_request = self._convert_request(request)

        async def handler(_req: EscrowRequest) -> EscrowResponse:
            response = await call_next(request)

            body: list[str] = []
            if hasattr(response, "body_iterator"):
                async for chunk in response.body_iterator:
                    if isinstance(chunk, str):
                        body.append(chunk)
                    else:
                        body.append(EscrowResponse.chunk_from_bytes(bytes(chunk)))
            else:
                body.append(EscrowResponse.chunk_from_bytes(bytes(response.body)))

            return EscrowResponse(
                status=response.status_code,
                headers=EscrowResponse.headers_from_pairs(
                    (name.decode("latin-1"), value.decode("latin-1"))
                    for name, value in response.raw_headers
                ),
                body=body,
            )

        async def passthrough(_req: EscrowRequest) -> Response:
            return await call_next(request)

        result = await self.engine.handle(internal_request, handler, passthrough)

        if isinstance(result, EscrowResponse):
            return self._convert_response(result)
        return result

    def _convert_request(self, request: StarletteRequest) -> EscrowRequest:
        """Convert Starlette request to EscrowRequest format.

        The body is not read: no escrow decision depends on it, and the
        downstream app still needs to consume it.
        """
        return EscrowRequest(
            method=request.method,
            path=request.url.path,
            query_string=request.url.query or "",
            headers=dict(request.headers.items()),
        )

    def _convert_response(self, response: EscrowResponse) -> Response:
        """Convert an EscrowResponse to a Starlette Response.

        Every header value is emitted, so a repeated header comes out as
        several header lines. Content-Length is filled in when absent.
        """
        content = response.body_bytes()
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in response.header_items()
        ]
        has_length = any(name == b"content-length" for name, _ in raw_headers)
        if not has_length and response.status >= 200 and response.status not in (204, 304):
            raw_headers.append((b"content-length", str(len(content)).encode("latin-1")))

        result = Response(content=content, status_code=response.status)
        result.raw_headers = raw_headers
        return result
