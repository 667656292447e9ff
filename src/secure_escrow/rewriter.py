"""Domain rewriting between the insecure and secure domains.

When the public site and the TLS host differ, escrow forms must submit to the
secure domain, and any redirect the application issues from the secure domain
must send the user back to the public one. Both rewrites go through the
router: a URL is resolved to a logical route and re-rendered on the other
domain, rather than having its host swapped textually.

When both domains are the same endpoint every rewrite is the identity.

Examples:
    Rewriting a stored redirect back to the public domain::

        rewriter = DomainRewriter(config, StarletteRouteClassifier(app))
        headers = rewriter.rewrite_location(
            {"location": "https://secure.example.com/account"}
        )
        # {'location': 'http://www.example.com/account'}

    Decorating a form for a templating layer::

        rewriter.escrow_form_options("/session", {"html": {"class": "login"}})
        # {'html': {'class': 'login', 'data-escrow': True},
        #  'url': 'https://secure.example.com/session'}
"""

import html
from typing import Any

from starlette.datastructures import URL

from secure_escrow.config import DomainConfig, EscrowConfig
from secure_escrow.observability.logging import get_logger
from secure_escrow.routing import RouteClassifier
from secure_escrow.utils.headers import get_header_value, set_header

logger = get_logger(__name__)

DATA_ESCROW = "data-escrow"


def html_attributes(attributes: dict[str, Any]) -> str:
    """Render form options' ``html`` attributes for a tag.

    True renders as a bare attribute name; False and None are omitted.

    Example:
        >>> html_attributes({"class": "login", "data-escrow": True, "hidden": None})
        'class="login" data-escrow'
    """
    rendered = []
    for name, value in attributes.items():
        if value is None or value is False:
            continue
        if value is True:
            rendered.append(html.escape(name))
        else:
            rendered.append(f'{html.escape(name)}="{html.escape(str(value))}"')
    return " ".join(rendered)


class DomainRewriter:
    """Rewrites URLs between the insecure and secure domain.

    Attributes:
        config: Escrow configuration holding both domains.
        classifier: Router used to resolve and re-render URLs.
    """

    def __init__(self, config: EscrowConfig, classifier: RouteClassifier) -> None:
        self.config = config
        self.classifier = classifier

    def _rerender(self, url: str, method: str, target: DomainConfig) -> str | None:
        parsed = URL(url)
        route = self.classifier.resolve(parsed.path or "/", method)
        if route is None:
            return None

        rendered = self.classifier.url_for(route, target)
        if rendered is None:
            return None

        if parsed.query:
            rendered = f"{rendered}?{parsed.query}"
        if parsed.fragment:
            rendered = f"{rendered}#{parsed.fragment}"
        return rendered

    def rewrite_location(self, headers: dict[str, Any]) -> dict[str, Any]:
        """Point a secure-domain Location header at the insecure domain.

        The header is left untouched when it is absent, relative, addressed
        to any other host, or does not resolve to a known route.

        Returns:
            A new headers dict (the input is not modified).
        """
        if self.config.domains_match:
            return headers

        location = get_header_value(headers, "location")
        if not location or not isinstance(location, str):
            return headers

        parsed = URL(location)
        if not self.config.secure_domain.serves(parsed.scheme, parsed.hostname, parsed.port):
            return headers

        rewritten = self._rerender(location, "GET", self.config.insecure_domain)
        if rewritten is None:
            logger.warning("rewrite.unresolved_location", location=location)
            return headers

        return set_header(headers, "Location", rewritten)

    def secure_submission_url(self, url: str) -> str:
        """Render a form submission URL on the secure domain.

        Unknown routes are returned unchanged.
        """
        if self.config.domains_match:
            return url

        rewritten = self._rerender(url, "POST", self.config.secure_domain)
        if rewritten is None:
            logger.warning("rewrite.unresolved_submission", url=url)
            return url
        return rewritten

    def escrow_form_options(
        self,
        url: str,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Form options for an escrow form.

        Returns a copy of ``options`` whose ``url`` is the secure submission
        URL and whose ``html`` attributes carry ``data-escrow: True``, the
        marker client-side code and templates use to recognize escrow forms.
        """
        options = dict(options or {})
        html_options = dict(options.get("html") or {})
        html_options[DATA_ESCROW] = True
        options["html"] = html_options
        options["url"] = self.secure_submission_url(url)
        return options
