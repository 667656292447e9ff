"""Route classification for escrow endpoints.

The engine needs two things from the host framework's router: whether a
path/method pair resolves to a route marked for escrow, and how to render a
resolved route as an absolute URL on a given domain. RouteClassifier is that
contract; StarletteRouteClassifier implements it for Starlette and FastAPI
applications.

Marking escrow routes::

    from secure_escrow.routing import escrow, escrow_route

    # Starlette route table
    routes = [
        Route("/login", login_form),
        escrow_route("/session", create_session),
    ]

    # FastAPI decorator stack
    @app.post("/session")
    @escrow
    async def create_session(...):
        ...
"""

from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

from starlette.routing import BaseRoute, Match, NoMatchFound, Route

from secure_escrow.config import DomainConfig
from secure_escrow.models import RouteDescriptor

ESCROW_ATTRIBUTE = "__secure_escrow__"

F = TypeVar("F", bound=Callable[..., Any])


@runtime_checkable
class RouteClassifier(Protocol):
    """Contract between the escrow engine and the application's router.

    Neither method raises for unknown routes: ``resolve`` returns None and
    ``url_for`` returns None.
    """

    def resolve(self, path: str, method: str) -> RouteDescriptor | None:
        """Resolve a path and method to a route, or None if nothing matches."""
        ...

    def url_for(self, route: RouteDescriptor, domain: DomainConfig) -> str | None:
        """Render a resolved route as an absolute URL on ``domain``."""
        ...


def escrow(endpoint: F) -> F:
    """Mark an endpoint so POSTs to it have their response escrowed."""
    setattr(endpoint, ESCROW_ATTRIBUTE, True)
    return endpoint


class EscrowRoute(Route):
    """A POST route whose response is placed in escrow."""

    escrow = True

    def __init__(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> None:
        kwargs.setdefault("methods", ["POST"])
        super().__init__(path, endpoint, **kwargs)


def escrow_route(path: str, endpoint: Callable[..., Any], **kwargs: Any) -> EscrowRoute:
    return EscrowRoute(path, endpoint, **kwargs)


def is_escrow_route(route: BaseRoute) -> bool:
    if getattr(route, "escrow", False) is True:
        return True
    endpoint = getattr(route, "endpoint", None)
    return bool(getattr(endpoint, ESCROW_ATTRIBUTE, False))


class StarletteRouteClassifier:
    """RouteClassifier over a Starlette (or FastAPI) application's routes.

    The route list is read on every call, so routes registered after the
    classifier is created are still seen. Only top-level routes are
    considered; mounted sub-applications are not descended into.

    Attributes:
        app: Any object with a ``routes`` attribute (Starlette, FastAPI,
            Router), or a plain list of routes.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    @property
    def routes(self) -> list[BaseRoute]:
        if isinstance(self.app, list):
            return self.app
        return list(self.app.routes)

    def resolve(self, path: str, method: str) -> RouteDescriptor | None:
        scope = {
            "type": "http",
            "path": path,
            "root_path": "",
            "method": method.upper(),
        }
        for route in self.routes:
            if not isinstance(route, Route):
                continue
            match, child_scope = route.matches(scope)
            if match == Match.FULL:
                return RouteDescriptor(
                    name=route.name,
                    path_params=dict(child_scope.get("path_params", {})),
                    escrow=is_escrow_route(route),
                )
        return None

    def url_for(self, route: RouteDescriptor, domain: DomainConfig) -> str | None:
        if route.name is None:
            return None
        for candidate in self.routes:
            try:
                url_path = candidate.url_path_for(route.name, **route.path_params)
            except NoMatchFound:
                continue
            return str(url_path.make_absolute_url(domain.base_url))
        return None
