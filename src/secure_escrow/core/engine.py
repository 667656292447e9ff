"""Framework-agnostic escrow decision engine.

Every request takes exactly one of three paths, checked in this order:

1. Serve from escrow: a GET carrying a token whose entry is in the store.
   The entry's nonce is compared with the token's; on a match the entry is
   deleted and its response returned as-is, on a mismatch the client gets an
   empty 403 and the entry stays for its rightful holder.
2. Store in escrow and redirect: a POST to a route marked as an escrow route.
   The downstream response is stored under a fresh token and the client is
   sent a 303 See Other pointing back at the request path, with the token in
   a cookie (same domain) or in the query string (cross domain).
3. Pass through: anything else goes to the downstream handler untouched.

An entry moves CREATED -> CONSUMED on a successful serve, or CREATED ->
EXPIRED when the store's TTL elapses. A nonce mismatch leaves it CREATED.

Examples:
    Using the engine directly::

        from secure_escrow.config import EscrowConfig
        from secure_escrow.core.engine import EscrowEngine
        from secure_escrow.routing import StarletteRouteClassifier
        from secure_escrow.storage.memory import MemoryEscrowStore

        engine = EscrowEngine(
            store=MemoryEscrowStore(),
            classifier=StarletteRouteClassifier(app),
            config=EscrowConfig(),
        )

        async def handler(request):
            return EscrowResponse(status=200, headers={}, body=["ok"])

        response = await engine.handle(request, handler)
"""

import hmac
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.datastructures import URL

from secure_escrow.config import EscrowConfig
from secure_escrow.exceptions import EscrowError, StorageError
from secure_escrow.models import EscrowRequest, EscrowResponse, EscrowToken
from secure_escrow.observability.logging import get_logger
from secure_escrow.observability.metrics import record_request, record_stored
from secure_escrow.rewriter import DomainRewriter
from secure_escrow.routing import RouteClassifier
from secure_escrow.storage.base import EscrowStore
from secure_escrow.token import (
    decode_stored_value,
    encode_stored_value,
    encode_token,
    escrow_key,
    generate_id_and_nonce,
    token_from_cookie_header,
    token_from_query_string,
)

logger = get_logger(__name__)

Handler = Callable[[EscrowRequest], Awaitable[EscrowResponse]]
Passthrough = Callable[[EscrowRequest], Awaitable[Any]]

GET = "GET"
POST = "POST"


class EscrowEngine:
    """Three-way dispatch between escrow retrieval, escrow creation and
    pass-through.

    The engine keeps no per-request state of its own; everything durable
    lives in the store.

    Attributes:
        store: Backing store for escrow entries
        classifier: Router contract used to recognize escrow routes
        config: Configuration object
        rewriter: Domain rewriter for redirect targets
    """

    def __init__(
        self,
        store: EscrowStore,
        classifier: RouteClassifier,
        config: EscrowConfig,
        rewriter: DomainRewriter | None = None,
    ) -> None:
        self.store = store
        self.classifier = classifier
        self.config = config
        self.rewriter = rewriter or DomainRewriter(config, classifier)

    async def handle(
        self,
        request: EscrowRequest,
        handler: Handler,
        passthrough: Passthrough | None = None,
    ) -> Any:
        """Dispatch a request.

        Args:
            request: The incoming request
            handler: Async function producing the downstream response as an
                EscrowResponse, used when the response is escrowed
            passthrough: Async function producing the downstream response in
                the framework's own type, used untouched on pass-through.
                Defaults to ``handler``.

        Returns:
            The escrowed response, a 303/403, or the downstream response.
            Escrow-layer failures (store unavailable, corrupt entry) become
            a 500; exceptions raised by the handler propagate.
        """
        try:
            if await self.should_serve_from_escrow(request):
                response = await self.serve_from_escrow(request)
                if response is not None:
                    outcome = "forbidden" if response.status == 403 else "served"
                    record_request(outcome, response.status)
                    return response

            elif await self.should_store_in_escrow(request):
                response = await self.store_in_escrow_and_redirect(request, handler)
                record_request("escrowed", response.status)
                return response

        except EscrowError as e:
            logger.error(
                "escrow.error",
                method=request.method,
                path=request.path,
                error=e.message,
                error_type=type(e).__name__,
            )
            record_request("error", 500)
            return EscrowResponse(
                status=500,
                headers={"content-type": "text/plain"},
                body=[f"Escrow error: {e.message}"],
            )

        response = await (passthrough or handler)(request)
        record_request("passthrough", _status_of(response))
        return response

    def escrow_key(self, escrow_id: str) -> str:
        return escrow_key(escrow_id, self.config.key_namespace)

    def escrow_token(self, request: EscrowRequest) -> EscrowToken | None:
        """Read the token from the transport the domain configuration selects.

        Cookies are only delivered back to the domain that set them, so the
        query string carries the token when the domains differ.
        """
        if self.config.domains_match:
            return token_from_cookie_header(request.cookie_header, self.config.data_key)
        return token_from_query_string(request.query_string, self.config.data_key)

    async def should_serve_from_escrow(self, request: EscrowRequest) -> bool:
        """True for a GET carrying a token whose entry exists.

        The store is not consulted when the request carries no token.
        """
        if request.method != GET:
            return False

        token = self.escrow_token(request)
        if token is None:
            return False

        return await self.store.exists(self.escrow_key(token.id))

    async def serve_from_escrow(self, request: EscrowRequest) -> EscrowResponse | None:
        """Retrieve and consume the entry named by the request's token.

        Returns:
            The stored response on a nonce match, an empty 403 on a mismatch,
            or None when the entry is gone (expired, or consumed by a
            concurrent request) so that the caller falls through.

        Raises:
            CorruptEscrowError: If the stored document cannot be decoded.
            StorageError: If the store fails.
        """
        token = self.escrow_token(request)
        if token is None:
            return None

        key = self.escrow_key(token.id)
        raw = await self.store.get(key)
        if raw is None:
            logger.info("escrow.vanished", escrow_id=token.id)
            return None

        stored = decode_stored_value(raw, key=key)

        if not hmac.compare_digest(stored.nonce.encode(), token.nonce.encode()):
            logger.warning("escrow.nonce_mismatch", escrow_id=token.id, path=request.path)
            return EscrowResponse(status=403, headers={}, body=[])

        if not await self.store.delete(key):
            logger.info("escrow.lost_race", escrow_id=token.id)
            return None

        logger.info("escrow.served", escrow_id=token.id, status=stored.response.status)
        return stored.response

    async def should_store_in_escrow(self, request: EscrowRequest) -> bool:
        """True for a POST that resolves to a route marked for escrow."""
        if request.method != POST:
            return False

        route = self.classifier.resolve(request.path, POST)
        return route is not None and route.escrow

    async def store_in_escrow_and_redirect(
        self,
        request: EscrowRequest,
        handler: Handler,
    ) -> EscrowResponse:
        """Run the handler, escrow its response and redirect to it.

        Returns:
            A 303 See Other whose Location is the request path, with the
            token in a Set-Cookie header (same domain) or in the Location's
            query string (cross domain).
        """
        downstream = await handler(request)
        escrow_id, nonce = await self.store_in_escrow(downstream)
        token = encode_token(escrow_id, nonce)

        headers = {"Location": self.redirect_location(request, token)}
        if self.config.domains_match:
            headers["Set-Cookie"] = f"{self.config.data_key}={token}"

        return EscrowResponse(status=303, headers=headers, body=[""])

    def redirect_location(self, request: EscrowRequest, token: str) -> str:
        if self.config.domains_match:
            return request.path

        url = URL(self.config.insecure_domain.base_url).replace(path=request.path)
        return str(url.include_query_params(**{self.config.data_key: token}))

    async def store_in_escrow(self, response: EscrowResponse) -> tuple[str, str]:
        """Place a response in escrow under a fresh token.

        A Location header pointing at the secure domain is rewritten to the
        insecure domain before storing.

        Returns:
            The generated (id, nonce) pair.
        """
        escrow_id, nonce = generate_id_and_nonce(self.config.nonce_bytes)

        rewritten = response.model_copy(
            update={"headers": self.rewriter.rewrite_location(response.headers)}
        )

        key = self.escrow_key(escrow_id)
        await self.store.set(key, encode_stored_value(nonce, rewritten))
        try:
            await self.store.expire(key, self.config.ttl_seconds)
        except StorageError:
            await self._discard(key)
            raise

        record_stored()
        logger.info(
            "escrow.stored",
            escrow_id=escrow_id,
            status=rewritten.status,
            ttl_seconds=self.config.ttl_seconds,
        )
        return escrow_id, nonce

    async def _discard(self, key: str) -> None:
        """Remove an entry whose TTL could not be set."""
        try:
            await self.store.delete(key)
        except StorageError as e:
            logger.error("escrow.orphaned", key=key, error=e.message)


def _status_of(response: Any) -> int:
    if isinstance(response, EscrowResponse):
        return response.status
    return response.status_code
