"""Token codec for escrow entries.

An escrow entry is addressed by an ``(id, nonce)`` pair:

- the id is a random UUID and is the only part that reaches the store key;
- the nonce is a short random hex secret that is stored inside the entry and
  compared on retrieval, so a leaked id alone grants nothing.

On the wire the pair is written ``<id>.<nonce>`` and carried under the
configured data key, either as a cookie or as a query parameter. Decoding is
lenient in the sense that anything absent or malformed is simply "no token".

The stored value is a JSON document::

    {"nonce": "1a2b3c4d", "response": [200, {"content-type": "text/html"}, ["ok"]]}

Examples:
    >>> escrow_id, nonce = generate_id_and_nonce()
    >>> token = decode_token(encode_token(escrow_id, nonce))
    >>> token.id == escrow_id and token.nonce == nonce
    True
    >>> decode_token("no-dot-here") is None
    True
"""

import json
import re
import secrets
import uuid

from pydantic import ValidationError
from starlette.datastructures import QueryParams
from starlette.requests import cookie_parser

from secure_escrow.exceptions import CorruptEscrowError
from secure_escrow.models import EscrowResponse, EscrowToken, StoredEscrow

# Printable ASCII without whitespace, '.', ';', ',' or quotes
_TOKEN_PART_RE = re.compile(r"^[!#$%&'*+\-0-9A-Z^_`a-z|~]+$")

DEFAULT_NONCE_BYTES = 4


def generate_id_and_nonce(nonce_bytes: int = DEFAULT_NONCE_BYTES) -> tuple[str, str]:
    """Generate a fresh, unlinkable (id, nonce) pair.

    Args:
        nonce_bytes: Number of random bytes in the nonce. At least 4.

    Returns:
        Tuple of a UUID4 string and a ``2 * nonce_bytes`` character hex nonce.

    Raises:
        ValueError: If nonce_bytes is below 4.
    """
    if nonce_bytes < DEFAULT_NONCE_BYTES:
        raise ValueError(f"nonce_bytes must be at least {DEFAULT_NONCE_BYTES}, got {nonce_bytes}")
    return str(uuid.uuid4()), secrets.token_hex(nonce_bytes)


def escrow_key(escrow_id: str, namespace: str = "secure_escrow") -> str:
    """Derive the store key for an escrow id.

    Example:
        >>> escrow_key("abc")
        'secure_escrow:abc'
    """
    return f"{namespace}:{escrow_id}"


def encode_token(escrow_id: str, nonce: str) -> str:
    return f"{escrow_id}.{nonce}"


def decode_token(value: str | None) -> EscrowToken | None:
    """Parse an ``<id>.<nonce>`` value.

    Returns:
        The token, or None when the value is absent or malformed.
    """
    if not value:
        return None

    escrow_id, dot, nonce = value.strip().partition(".")
    if not dot:
        return None
    if not _TOKEN_PART_RE.match(escrow_id) or not _TOKEN_PART_RE.match(nonce):
        return None

    return EscrowToken(id=escrow_id, nonce=nonce)


def token_from_cookie_header(cookie_header: str | None, data_key: str) -> EscrowToken | None:
    """Extract the escrow token from a raw Cookie header.

    Example:
        >>> token_from_cookie_header("session=1; escrow=abc.1234", "escrow").id
        'abc'
    """
    if not cookie_header:
        return None
    return decode_token(cookie_parser(cookie_header).get(data_key))


def token_from_query_string(query_string: str | None, data_key: str) -> EscrowToken | None:
    """Extract the escrow token from a raw query string.

    Example:
        >>> token_from_query_string("escrow=abc.1234&next=%2F", "escrow").nonce
        '1234'
    """
    if not query_string:
        return None
    return decode_token(QueryParams(query_string).get(data_key))


def encode_stored_value(nonce: str, response: EscrowResponse) -> str:
    """Serialize the document stored under an escrow key.

    ``json.dumps`` escapes non-ASCII (and surrogate-escaped bytes), so the
    stored value is plain ASCII and round-trips exactly.
    """
    return json.dumps(StoredEscrow(nonce=nonce, response=response).model_dump())


def decode_stored_value(raw: str | bytes, key: str | None = None) -> StoredEscrow:
    """Parse a stored escrow document.

    Args:
        raw: The value read from the store.
        key: Store key, for error reporting.

    Returns:
        The decoded StoredEscrow.

    Raises:
        CorruptEscrowError: If the value is not a valid escrow document.
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("ascii")
        data = json.loads(raw)
        return StoredEscrow.model_validate(data)
    except (UnicodeDecodeError, ValueError, ValidationError) as e:
        raise CorruptEscrowError(f"Undecodable escrow document: {e}", key=key) from e
