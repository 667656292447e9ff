"""Configuration module for the secure escrow middleware.

This module provides the DomainConfig and EscrowConfig classes. DomainConfig
describes one endpoint (protocol, host, port); EscrowConfig holds the insecure
and secure domain pair together with the token, expiry and storage settings.

Example:
    Basic usage with defaults:

        >>> config = EscrowConfig()
        >>> config.domains_match
        True

    Separate TLS host for form submissions:

        >>> config = EscrowConfig(
        ...     insecure_domain=DomainConfig(host="www.example.com"),
        ...     secure_domain=DomainConfig(protocol="https", host="secure.example.com"),
        ... )
        >>> config.domains_match
        False
        >>> config.secure_domain.base_url
        'https://secure.example.com'

    Loading from environment:

        >>> import os
        >>> os.environ['SECURE_ESCROW_SECURE_DOMAIN_NAME'] = 'secure.example.com'
        >>> os.environ['SECURE_ESCROW_SECURE_DOMAIN_PROTOCOL'] = 'https'
        >>> config = EscrowConfig.from_env()
"""

import os
import re
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_PORTS = {"http": 80, "https": 443}

# RFC 6265 cookie-name token characters
_COOKIE_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class DomainConfig(BaseModel):
    """One side of the insecure/secure domain pair.

    Attributes:
        protocol: URL scheme, "http" or "https". A trailing "://" is accepted
            and stripped.
        host: Host name without port.
        port: Explicit port, or None for the scheme default.
    """

    protocol: Literal["http", "https"] = Field(
        default="http",
        description="URL scheme of the domain",
    )
    host: str = Field(
        default="localhost",
        min_length=1,
        description="Host name of the domain",
    )
    port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description="Port of the domain (None for the scheme default)",
    )

    model_config = {"frozen": True}

    @field_validator("protocol", mode="before")
    @classmethod
    def normalize_protocol(cls, v: Any) -> Any:
        """Lowercase the protocol and strip a trailing '://'.

        Example:
            >>> DomainConfig(protocol="HTTPS://").protocol
            'https'
        """
        if isinstance(v, str):
            v = v.strip().lower()
            if v.endswith("://"):
                v = v[:-3]
        return v

    @field_validator("host", mode="before")
    @classmethod
    def normalize_host(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
        return v

    @field_validator("port", mode="before")
    @classmethod
    def normalize_port(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return int(v) if v else None
        return v

    @property
    def effective_port(self) -> int:
        """Port number with the scheme default filled in."""
        return self.port if self.port is not None else DEFAULT_PORTS[self.protocol]

    @property
    def netloc(self) -> str:
        """Host plus port, omitting the port when it is the scheme default."""
        if self.port is None or self.port == DEFAULT_PORTS[self.protocol]:
            return self.host
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        """Absolute origin of the domain, e.g. 'https://secure.example.com:8443'."""
        return f"{self.protocol}://{self.netloc}"

    def serves(self, scheme: str | None, host: str | None, port: int | None) -> bool:
        """Return True if an absolute URL's components address this domain.

        Args:
            scheme: URL scheme, used to default the port when port is None.
            host: URL host name.
            port: Explicit URL port, or None.
        """
        if not host or host.lower() != self.host:
            return False
        if port is None:
            port = DEFAULT_PORTS.get((scheme or self.protocol).lower())
        return port == self.effective_port


class EscrowConfig(BaseModel):
    """Configuration for the secure escrow middleware.

    Attributes:
        insecure_domain: Public-facing domain users browse on. Escrowed
            responses are retrieved here.
        secure_domain: TLS domain that escrow forms submit to.
        ttl_seconds: Lifetime of an escrow entry in seconds (1-3600).
            Default is 180.
        data_key: Name of the cookie or query parameter carrying the token.
            Default is "escrow".
        key_namespace: Prefix of store keys. Default is "secure_escrow".
        nonce_bytes: Random bytes in each nonce (4-64). Default is 4.
        storage_adapter: Backing store type, "memory" or "redis".
        redis_url: Connection URL used when storage_adapter is "redis".

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    insecure_domain: DomainConfig = Field(
        default_factory=DomainConfig,
        description="Public domain on which escrowed responses are retrieved",
    )
    secure_domain: DomainConfig = Field(
        default_factory=DomainConfig,
        description="TLS domain that escrow forms submit to",
    )
    ttl_seconds: int = Field(
        default=180,
        description="Lifetime of an escrow entry in seconds (1-3600)",
    )
    data_key: str = Field(
        default="escrow",
        description="Cookie or query parameter name carrying the escrow token",
    )
    key_namespace: str = Field(
        default="secure_escrow",
        min_length=1,
        description="Namespace prefix for store keys",
    )
    nonce_bytes: int = Field(
        default=4,
        description="Number of random bytes per nonce (4-64)",
    )
    storage_adapter: Literal["memory", "redis"] = Field(
        default="memory",
        description="Type of backing store for escrow entries",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Connection URL for the Redis store",
    )

    model_config = {"frozen": True}

    @field_validator("ttl_seconds")
    @classmethod
    def validate_ttl_seconds(cls, v: int) -> int:
        """Validate TTL is within acceptable range.

        Escrow entries only bridge a POST and the immediately following GET,
        so the ceiling is one hour.

        Raises:
            ValueError: If TTL is not between 1 and 3600.
        """
        if not (1 <= v <= 3600):
            raise ValueError(f"ttl_seconds must be between 1 and 3600 (1 hour), got {v}")
        return v

    @field_validator("nonce_bytes")
    @classmethod
    def validate_nonce_bytes(cls, v: int) -> int:
        """Validate nonce width.

        Raises:
            ValueError: If nonce_bytes is not between 4 and 64.
        """
        if not (4 <= v <= 64):
            raise ValueError(f"nonce_bytes must be between 4 and 64, got {v}")
        return v

    @field_validator("data_key")
    @classmethod
    def validate_data_key(cls, v: str) -> str:
        """Validate the token name is usable as both cookie and query key.

        Raises:
            ValueError: If the name contains characters outside the RFC 6265
                token set.
        """
        if not _COOKIE_NAME_RE.match(v):
            raise ValueError(f"data_key must be a cookie-safe token, got {v!r}")
        return v

    @property
    def domains_match(self) -> bool:
        """True when the insecure and secure domains are the same endpoint.

        In that case tokens travel by cookie and no URL is rewritten.
        """
        insecure, secure = self.insecure_domain, self.secure_domain
        return (insecure.protocol, insecure.host, insecure.effective_port) == (
            secure.protocol,
            secure.host,
            secure.effective_port,
        )

    @classmethod
    def from_env(cls, prefix: str = "SECURE_ESCROW_") -> "EscrowConfig":
        """Create configuration from environment variables.

        Domain settings use the names ``{prefix}SECURE_DOMAIN_NAME``,
        ``{prefix}SECURE_DOMAIN_PROTOCOL`` and ``{prefix}SECURE_DOMAIN_PORT``
        (and the same with ``INSECURE``). Other fields use their uppercase
        field name, e.g. ``SECURE_ESCROW_TTL_SECONDS``.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            EscrowConfig instance populated from environment variables.

        Raises:
            ValidationError: If a variable holds a malformed or out-of-range value.

        Example:
            >>> import os
            >>> os.environ['SECURE_ESCROW_INSECURE_DOMAIN_NAME'] = 'www.example.com'
            >>> os.environ['SECURE_ESCROW_TTL_SECONDS'] = '60'
            >>> config = EscrowConfig.from_env()
            >>> config.ttl_seconds
            60
        """
        config_dict: dict[str, Any] = {}

        for side in ("insecure", "secure"):
            domain: dict[str, Any] = {}
            for env_suffix, field_name in (
                ("NAME", "host"),
                ("PROTOCOL", "protocol"),
                ("PORT", "port"),
            ):
                env_value = os.environ.get(f"{prefix}{side.upper()}_DOMAIN_{env_suffix}")
                if env_value is not None:
                    domain[field_name] = env_value
            if domain:
                config_dict[f"{side}_domain"] = domain

        # Raw strings; pydantic coerces the numeric fields
        for field_name in (
            "ttl_seconds",
            "data_key",
            "key_namespace",
            "nonce_bytes",
            "storage_adapter",
            "redis_url",
        ):
            env_value = os.environ.get(f"{prefix}{field_name.upper()}")
            if env_value is not None:
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "EscrowConfig":
        """Create configuration from a dictionary.

        Nested domain settings may be given as dictionaries.

        Raises:
            ValidationError: If the dictionary contains invalid values.

        Example:
            >>> config = EscrowConfig.from_dict({
            ...     'secure_domain': {'protocol': 'https', 'host': 'secure.example.com'},
            ...     'ttl_seconds': 60,
            ... })
            >>> config.secure_domain.protocol
            'https'
        """
        return cls(**config_dict)
