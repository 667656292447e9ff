"""Unit tests for configuration module.

Tests the DomainConfig and EscrowConfig classes including validation,
factory methods and immutability.
"""

import os

import pytest
from pydantic import ValidationError

from secure_escrow.config import DomainConfig, EscrowConfig


class TestEscrowConfigDefaults:
    def test_default_values(self) -> None:
        config = EscrowConfig()

        assert config.insecure_domain == DomainConfig()
        assert config.secure_domain == DomainConfig()
        assert config.ttl_seconds == 180
        assert config.data_key == "escrow"
        assert config.key_namespace == "secure_escrow"
        assert config.nonce_bytes == 4
        assert config.storage_adapter == "memory"
        assert config.redis_url == "redis://localhost:6379"

    def test_default_domains_match(self) -> None:
        assert EscrowConfig().domains_match is True


class TestDomainConfig:
    def test_defaults(self) -> None:
        domain = DomainConfig()
        assert domain.protocol == "http"
        assert domain.host == "localhost"
        assert domain.port is None

    def test_protocol_normalized(self) -> None:
        assert DomainConfig(protocol="HTTPS://").protocol == "https"
        assert DomainConfig(protocol=" Http ").protocol == "http"

    def test_invalid_protocol(self) -> None:
        with pytest.raises(ValidationError):
            DomainConfig(protocol="ftp")

    def test_host_lowercased(self) -> None:
        assert DomainConfig(host="WWW.Example.COM").host == "www.example.com"

    def test_empty_host_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DomainConfig(host="")

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_port_range(self, port: int) -> None:
        with pytest.raises(ValidationError):
            DomainConfig(port=port)

    def test_port_from_string(self) -> None:
        assert DomainConfig(port="8443").port == 8443
        assert DomainConfig(port="").port is None

    def test_base_url_omits_default_port(self) -> None:
        assert DomainConfig(protocol="https", host="a.com").base_url == "https://a.com"
        assert DomainConfig(protocol="https", host="a.com", port=443).base_url == "https://a.com"
        assert DomainConfig(protocol="http", host="a.com", port=80).base_url == "http://a.com"

    def test_base_url_keeps_custom_port(self) -> None:
        domain = DomainConfig(protocol="https", host="a.com", port=8443)
        assert domain.base_url == "https://a.com:8443"

    def test_effective_port(self) -> None:
        assert DomainConfig(protocol="http").effective_port == 80
        assert DomainConfig(protocol="https").effective_port == 443
        assert DomainConfig(protocol="https", port=8443).effective_port == 8443

    def test_serves(self) -> None:
        domain = DomainConfig(protocol="https", host="secure.example.com")

        assert domain.serves("https", "secure.example.com", None)
        assert domain.serves("https", "SECURE.example.com", 443)
        assert not domain.serves("http", "secure.example.com", None)
        assert not domain.serves("https", "secure.example.com", 8443)
        assert not domain.serves("https", "www.example.com", None)
        assert not domain.serves("", None, None)

    def test_frozen(self) -> None:
        domain = DomainConfig()
        with pytest.raises(ValidationError):
            domain.host = "other"  # type: ignore[misc]


class TestDomainsMatch:
    def test_different_hosts(self) -> None:
        config = EscrowConfig(
            insecure_domain=DomainConfig(host="www.example.com"),
            secure_domain=DomainConfig(host="www.ssl-example.com"),
        )
        assert config.domains_match is False

    def test_different_protocols(self) -> None:
        config = EscrowConfig(
            insecure_domain=DomainConfig(protocol="http", host="example.com"),
            secure_domain=DomainConfig(protocol="https", host="example.com"),
        )
        assert config.domains_match is False

    def test_explicit_default_port_matches_implicit(self) -> None:
        config = EscrowConfig(
            insecure_domain=DomainConfig(protocol="https", host="example.com"),
            secure_domain=DomainConfig(protocol="https", host="example.com", port=443),
        )
        assert config.domains_match is True


class TestFieldValidation:
    @pytest.mark.parametrize("ttl", [1, 60, 3600])
    def test_ttl_valid(self, ttl: int) -> None:
        assert EscrowConfig(ttl_seconds=ttl).ttl_seconds == ttl

    @pytest.mark.parametrize("ttl", [0, -1, 3601])
    def test_ttl_invalid(self, ttl: int) -> None:
        with pytest.raises(ValidationError) as exc_info:
            EscrowConfig(ttl_seconds=ttl)
        assert "ttl_seconds must be between 1 and 3600" in str(exc_info.value)

    @pytest.mark.parametrize("nonce_bytes", [3, 65])
    def test_nonce_bytes_invalid(self, nonce_bytes: int) -> None:
        with pytest.raises(ValidationError):
            EscrowConfig(nonce_bytes=nonce_bytes)

    @pytest.mark.parametrize("data_key", ["", "has space", "semi;colon", "eq=sign"])
    def test_data_key_invalid(self, data_key: str) -> None:
        with pytest.raises(ValidationError):
            EscrowConfig(data_key=data_key)

    def test_data_key_valid(self) -> None:
        assert EscrowConfig(data_key="_escrow-token").data_key == "_escrow-token"

    def test_storage_adapter_invalid(self) -> None:
        with pytest.raises(ValidationError):
            EscrowConfig(storage_adapter="sql")

    def test_frozen(self) -> None:
        config = EscrowConfig()
        with pytest.raises(ValidationError):
            config.ttl_seconds = 60  # type: ignore[misc]


class TestFromEnv:
    def test_empty_env_gives_defaults(self, monkeypatch) -> None:
        for name in list(os.environ):
            if name.startswith("SECURE_ESCROW_"):
                monkeypatch.delenv(name)

        assert EscrowConfig.from_env() == EscrowConfig()

    def test_domains_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("SECURE_ESCROW_SECURE_DOMAIN_NAME", "www.ssl-example.com")
        monkeypatch.setenv("SECURE_ESCROW_SECURE_DOMAIN_PROTOCOL", "https://")
        monkeypatch.setenv("SECURE_ESCROW_SECURE_DOMAIN_PORT", "8443")
        monkeypatch.setenv("SECURE_ESCROW_INSECURE_DOMAIN_NAME", "www.example.com")

        config = EscrowConfig.from_env()

        assert config.secure_domain == DomainConfig(
            protocol="https", host="www.ssl-example.com", port=8443
        )
        assert config.insecure_domain == DomainConfig(host="www.example.com")
        assert config.domains_match is False

    def test_scalar_fields_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("SECURE_ESCROW_TTL_SECONDS", "60")
        monkeypatch.setenv("SECURE_ESCROW_DATA_KEY", "token")
        monkeypatch.setenv("SECURE_ESCROW_NONCE_BYTES", "8")
        monkeypatch.setenv("SECURE_ESCROW_STORAGE_ADAPTER", "redis")
        monkeypatch.setenv("SECURE_ESCROW_REDIS_URL", "redis://cache:6379/2")

        config = EscrowConfig.from_env()

        assert config.ttl_seconds == 60
        assert config.data_key == "token"
        assert config.nonce_bytes == 8
        assert config.storage_adapter == "redis"
        assert config.redis_url == "redis://cache:6379/2"

    def test_custom_prefix(self, monkeypatch) -> None:
        monkeypatch.setenv("APP_TTL_SECONDS", "30")
        assert EscrowConfig.from_env(prefix="APP_").ttl_seconds == 30

    def test_invalid_int(self, monkeypatch) -> None:
        monkeypatch.setenv("SECURE_ESCROW_TTL_SECONDS", "soon")
        with pytest.raises(ValidationError) as exc_info:
            EscrowConfig.from_env()
        assert "ttl_seconds" in str(exc_info.value)

    def test_invalid_nonce_bytes(self, monkeypatch) -> None:
        monkeypatch.setenv("SECURE_ESCROW_NONCE_BYTES", "4.5x")
        with pytest.raises(ValidationError) as exc_info:
            EscrowConfig.from_env()
        assert "nonce_bytes" in str(exc_info.value)

    def test_invalid_port(self, monkeypatch) -> None:
        monkeypatch.setenv("SECURE_ESCROW_SECURE_DOMAIN_PORT", "https")
        with pytest.raises(ValidationError):
            EscrowConfig.from_env()


class TestFromDict:
    def test_nested_domains(self) -> None:
        config = EscrowConfig.from_dict(
            {
                "secure_domain": {"protocol": "https", "host": "secure.example.com"},
                "insecure_domain": {"host": "www.example.com"},
                "ttl_seconds": 60,
            }
        )

        assert config.secure_domain.base_url == "https://secure.example.com"
        assert config.insecure_domain.base_url == "http://www.example.com"
        assert config.ttl_seconds == 60

    def test_invalid_values(self) -> None:
        with pytest.raises(ValidationError):
            EscrowConfig.from_dict({"ttl_seconds": 0})
