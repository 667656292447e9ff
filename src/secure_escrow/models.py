"""Core type definitions for the secure escrow middleware.

This module provides the data structures shared by the engine, the token
codec, the domain rewriter and the adapters: the engine-facing request, the
escrowed response, the stored escrow document, the token and the resolved
route descriptor.

Examples:
    Building an escrowed response::

        from secure_escrow.models import EscrowResponse, StoredEscrow

        response = EscrowResponse(
            status=200,
            headers={"content-type": "text/html"},
            body=["<p>Thanks!</p>"],
        )
        stored = StoredEscrow(nonce="9f86d081", response=response)

    The stored document serializes the response as a triple::

        stored.model_dump()
        # {'nonce': '9f86d081',
        #  'response': [200, {'content-type': 'text/html'}, ['<p>Thanks!</p>']]}
"""

from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator
from starlette.datastructures import QueryParams
from starlette.requests import cookie_parser


class EscrowRequest:
    """Engine-facing request representation.

    Framework adapters convert their request objects into this format. Cookies
    and query parameters are parsed lazily from the raw header and query
    string.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        path: URL path
        query_string: Query string without leading '?'
        headers: Request headers as dict
    """

    def __init__(
        self,
        method: str,
        path: str,
        query_string: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.method = method.upper()
        self.path = path
        self.query_string = query_string
        self.headers = headers or {}

    @property
    def cookie_header(self) -> str:
        """Raw Cookie header, or an empty string."""
        for key, value in self.headers.items():
            if key.lower() == "cookie":
                return value
        return ""

    @property
    def cookies(self) -> dict[str, str]:
        return cookie_parser(self.cookie_header)

    @property
    def query_params(self) -> QueryParams:
        return QueryParams(self.query_string)

    def __repr__(self) -> str:
        return f"EscrowRequest(method={self.method!r}, path={self.path!r})"


class EscrowResponse(BaseModel):
    """An HTTP response as the engine sees it.

    A header that occurs more than once (typically Set-Cookie) maps to the
    list of its values in order; every other header maps to a single string.

    The body is a sequence of text chunks. Adapters that deal in bytes map
    them with UTF-8 and the ``surrogateescape`` error handler, so arbitrary
    bytes survive a round trip through the JSON store document.

    Attributes:
        status: HTTP status code (e.g., 200, 303, 403).
        headers: HTTP response headers, a list for repeated headers.
        body: Response body chunks.
    """

    status: int = Field(
        ...,
        description="HTTP status code",
        ge=100,
        le=599,
        examples=[200, 303, 403],
    )
    headers: dict[str, str | list[str]] = Field(
        default_factory=dict,
        description="HTTP response headers; repeated headers map to a list",
        examples=[{"set-cookie": ["sid=1; Path=/", "csrf=2; Path=/"]}],
    )
    body: list[str] = Field(
        default_factory=list,
        description="Response body chunks",
        examples=[["ok"], [""]],
    )

    @classmethod
    def from_triple(cls, triple: Any) -> "EscrowResponse":
        """Build a response from a ``[status, headers, body]`` sequence.

        Raises:
            ValueError: If ``triple`` is not a three-element sequence.

        Example:
            >>> EscrowResponse.from_triple([200, {}, ["ok"]]).body
            ['ok']
        """
        if not isinstance(triple, (list, tuple)) or len(triple) != 3:
            raise ValueError("response must be a [status, headers, body] triple")
        status, headers, body = triple
        return cls(status=status, headers=headers, body=body)

    def as_triple(self) -> list[Any]:
        headers = {
            name: list(value) if isinstance(value, list) else value
            for name, value in self.headers.items()
        }
        return [self.status, headers, list(self.body)]

    @staticmethod
    def headers_from_pairs(pairs: Any) -> dict[str, str | list[str]]:
        """Group (name, value) pairs, keeping every value of a repeated header.

        Example:
            >>> EscrowResponse.headers_from_pairs([("a", "1"), ("b", "2"), ("a", "3")])
            {'a': ['1', '3'], 'b': '2'}
        """
        headers: dict[str, str | list[str]] = {}
        for name, value in pairs:
            existing = headers.get(name)
            if existing is None:
                headers[name] = value
            elif isinstance(existing, list):
                existing.append(value)
            else:
                headers[name] = [existing, value]
        return headers

    def header_items(self) -> list[tuple[str, str]]:
        """Flatten the headers back to (name, value) pairs in order."""
        items: list[tuple[str, str]] = []
        for name, value in self.headers.items():
            if isinstance(value, list):
                items.extend((name, item) for item in value)
            else:
                items.append((name, value))
        return items

    def body_bytes(self) -> bytes:
        """Join and encode the body chunks back to the original bytes."""
        return "".join(self.body).encode("utf-8", "surrogateescape")

    @staticmethod
    def chunk_from_bytes(chunk: bytes) -> str:
        """Map a raw body chunk to text without losing any byte."""
        return chunk.decode("utf-8", "surrogateescape")


class StoredEscrow(BaseModel):
    """The document stored under an escrow key.

    Attributes:
        nonce: Secret half of the token, compared on retrieval.
        response: The escrowed response, serialized as a
            ``[status, headers, body]`` triple.
    """

    nonce: str = Field(..., min_length=1, description="Secret half of the escrow token")
    response: EscrowResponse = Field(..., description="The escrowed response")

    @field_validator("response", mode="before")
    @classmethod
    def parse_response_triple(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return EscrowResponse.from_triple(v)
        return v

    @field_serializer("response")
    def serialize_response(self, response: EscrowResponse) -> list[Any]:
        return response.as_triple()


class EscrowToken(BaseModel):
    """The (id, nonce) capability identifying one escrow entry.

    Attributes:
        id: Public half; the store key is derived from it.
        nonce: Secret half; only ever compared, never used as a key.
    """

    id: str = Field(..., min_length=1)
    nonce: str = Field(..., min_length=1)

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.id}.{self.nonce}"


class RouteDescriptor(BaseModel):
    """A route resolved by a RouteClassifier.

    Attributes:
        name: Route name used to re-render the route on another domain.
        path_params: Parameters extracted from the matched path.
        escrow: True when the route is marked as an escrow route.
    """

    name: str | None = None
    path_params: dict[str, Any] = Field(default_factory=dict)
    escrow: bool = False

    model_config = {"frozen": True}
