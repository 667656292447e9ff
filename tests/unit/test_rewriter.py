"""Unit tests for the domain rewriter."""

import pytest
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from secure_escrow.config import DomainConfig, EscrowConfig
from secure_escrow.rewriter import DATA_ESCROW, DomainRewriter, html_attributes
from secure_escrow.routing import StarletteRouteClassifier, escrow_route


async def endpoint(request):
    return PlainTextResponse("ok")


ROUTES = [
    Route("/account", endpoint, name="account"),
    Route("/orders/{order_id:int}", endpoint, name="order"),
    escrow_route("/session", endpoint, name="session"),
    escrow_route("/orders/{order_id:int}/pay", endpoint, name="pay"),
]


@pytest.fixture
def rewriter(cross_domain_config: EscrowConfig) -> DomainRewriter:
    return DomainRewriter(cross_domain_config, StarletteRouteClassifier(ROUTES))


@pytest.fixture
def same_domain_rewriter(same_domain_config: EscrowConfig) -> DomainRewriter:
    return DomainRewriter(same_domain_config, StarletteRouteClassifier(ROUTES))


class TestRewriteLocation:
    def test_secure_location_moves_to_insecure_domain(self, rewriter: DomainRewriter) -> None:
        headers = rewriter.rewrite_location({"location": "https://www.ssl-example.com/account"})
        assert headers == {"location": "http://www.example.com/account"}

    def test_path_params_query_and_fragment_kept(self, rewriter: DomainRewriter) -> None:
        headers = rewriter.rewrite_location(
            {"Location": "https://www.ssl-example.com/orders/12?tab=items#top"}
        )
        assert headers == {"Location": "http://www.example.com/orders/12?tab=items#top"}

    def test_other_headers_untouched(self, rewriter: DomainRewriter) -> None:
        headers = rewriter.rewrite_location(
            {"Location": "https://www.ssl-example.com/account", "X-Trace": "1"}
        )
        assert headers["X-Trace"] == "1"

    def test_input_not_modified(self, rewriter: DomainRewriter) -> None:
        original = {"Location": "https://www.ssl-example.com/account"}
        rewriter.rewrite_location(original)
        assert original == {"Location": "https://www.ssl-example.com/account"}

    @pytest.mark.parametrize(
        "location",
        [
            "/account",
            "https://elsewhere.example.com/account",
            "http://www.ssl-example.com/account",
            "https://www.ssl-example.com:8443/account",
        ],
    )
    def test_non_secure_locations_untouched(
        self, rewriter: DomainRewriter, location: str
    ) -> None:
        assert rewriter.rewrite_location({"Location": location}) == {"Location": location}

    def test_no_location(self, rewriter: DomainRewriter) -> None:
        assert rewriter.rewrite_location({"content-type": "text/html"}) == {
            "content-type": "text/html"
        }

    def test_unresolved_route_untouched(self, rewriter: DomainRewriter) -> None:
        headers = {"Location": "https://www.ssl-example.com/unknown"}
        assert rewriter.rewrite_location(headers) == headers

    def test_only_get_routes_considered(self, rewriter: DomainRewriter) -> None:
        headers = {"Location": "https://www.ssl-example.com/session"}
        assert rewriter.rewrite_location(headers) == headers

    def test_identity_when_domains_match(self, same_domain_rewriter: DomainRewriter) -> None:
        headers = {"Location": "http://www.example.com/account"}
        assert same_domain_rewriter.rewrite_location(headers) is headers


class TestSecureSubmissionUrl:
    def test_relative_url(self, rewriter: DomainRewriter) -> None:
        assert rewriter.secure_submission_url("/session") == "https://www.ssl-example.com/session"

    def test_absolute_insecure_url(self, rewriter: DomainRewriter) -> None:
        url = rewriter.secure_submission_url("http://www.example.com/orders/3/pay?step=2")
        assert url == "https://www.ssl-example.com/orders/3/pay?step=2"

    def test_unknown_route_unchanged(self, rewriter: DomainRewriter) -> None:
        assert rewriter.secure_submission_url("/nowhere") == "/nowhere"

    def test_identity_when_domains_match(self, same_domain_rewriter: DomainRewriter) -> None:
        assert same_domain_rewriter.secure_submission_url("/session") == "/session"

    def test_custom_secure_port(self) -> None:
        config = EscrowConfig(
            insecure_domain=DomainConfig(host="www.example.com"),
            secure_domain=DomainConfig(protocol="https", host="www.example.com", port=8443),
        )
        rewriter = DomainRewriter(config, StarletteRouteClassifier(ROUTES))

        assert rewriter.secure_submission_url("/session") == "https://www.example.com:8443/session"


class TestEscrowFormOptions:
    def test_marks_form_and_sets_url(self, rewriter: DomainRewriter) -> None:
        options = rewriter.escrow_form_options("/session")

        assert options == {
            "html": {DATA_ESCROW: True},
            "url": "https://www.ssl-example.com/session",
        }

    def test_merges_existing_options(self, rewriter: DomainRewriter) -> None:
        given = {"html": {"class": "login"}, "method": "post"}

        options = rewriter.escrow_form_options("/session", given)

        assert options == {
            "html": {"class": "login", "data-escrow": True},
            "method": "post",
            "url": "https://www.ssl-example.com/session",
        }
        assert given == {"html": {"class": "login"}, "method": "post"}

    def test_same_domain_keeps_url(self, same_domain_rewriter: DomainRewriter) -> None:
        options = same_domain_rewriter.escrow_form_options("/session")
        assert options["url"] == "/session"
        assert options["html"][DATA_ESCROW] is True


class TestHtmlAttributes:
    def test_form_options_render(self, rewriter: DomainRewriter) -> None:
        options = rewriter.escrow_form_options("/session", {"html": {"class": "login"}})
        assert html_attributes(options["html"]) == 'class="login" data-escrow'

    def test_false_and_none_omitted(self) -> None:
        assert html_attributes({"disabled": False, "title": None, "id": "f"}) == 'id="f"'

    def test_values_escaped(self) -> None:
        rendered = html_attributes({"title": 'say "hi" & <go>'})
        assert rendered == 'title="say &quot;hi&quot; &amp; &lt;go&gt;"'

    def test_empty(self) -> None:
        assert html_attributes({}) == ""
