"""
Pytest configuration and shared fixtures for secure_escrow tests.
"""

import pytest

from secure_escrow.config import DomainConfig, EscrowConfig
from secure_escrow.models import RouteDescriptor
from secure_escrow.storage.memory import MemoryEscrowStore


class StubClassifier:
    """Table-driven RouteClassifier.

    Routes are keyed by (path, method); a route's name is its path, and
    url_for renders that path on the requested domain.
    """

    def __init__(self, routes: dict[tuple[str, str], RouteDescriptor] | None = None) -> None:
        self.routes = routes or {}
        self.resolve_calls: list[tuple[str, str]] = []

    def add(self, path: str, method: str, escrow: bool = False) -> None:
        self.routes[(path, method)] = RouteDescriptor(name=path, escrow=escrow)

    def resolve(self, path: str, method: str) -> RouteDescriptor | None:
        self.resolve_calls.append((path, method))
        return self.routes.get((path, method.upper()))

    def url_for(self, route: RouteDescriptor, domain: DomainConfig) -> str | None:
        if route.name is None:
            return None
        return f"{domain.base_url}{route.name}"


class Clock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def store(clock: Clock) -> MemoryEscrowStore:
    """Create a fresh memory store driven by the manual clock."""
    return MemoryEscrowStore(clock=clock)


@pytest.fixture
def classifier() -> StubClassifier:
    return StubClassifier()


@pytest.fixture
def same_domain_config() -> EscrowConfig:
    return EscrowConfig(
        insecure_domain=DomainConfig(host="www.example.com"),
        secure_domain=DomainConfig(host="www.example.com"),
    )


@pytest.fixture
def cross_domain_config() -> EscrowConfig:
    return EscrowConfig(
        insecure_domain=DomainConfig(protocol="http", host="www.example.com"),
        secure_domain=DomainConfig(protocol="https", host="www.ssl-example.com"),
    )
