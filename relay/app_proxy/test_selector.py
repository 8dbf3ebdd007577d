import pytest
from starlette.datastructures import Headers

from relay.app_proxy.errors import (
    FeatureDisabledError,
    MissingTargetHostError,
    RouteNotFoundError,
)
from relay.app_proxy.selector import RouteDecision, select_route
from relay.vars import ProxyConfig


def _headers(**values):
    return Headers(headers={k.replace("_", "-"): v for k, v in values.items()})


class TestSelectRoute:
    def test_openai_prefix(self, proxy_config):
        decision = select_route("/o/v1/models", _headers(), proxy_config)
        assert decision == RouteDecision(origin="https://api.openai.com", prefix="/o")

    def test_cloudflare_prefix(self, proxy_config):
        decision = select_route("/c/client/v4/ai/run", _headers(), proxy_config)
        assert decision == RouteDecision(origin="https://api.cloudflare.com", prefix="/c")

    def test_prefix_is_a_plain_string_match(self, proxy_config):
        assert select_route("/openai/v1", _headers(), proxy_config).prefix == "/o"
        assert select_route("/cf/x", _headers(), proxy_config).prefix == "/c"

    def test_configured_origins_are_used(self):
        config = ProxyConfig(openai_upstream="http://mock-openai:8080")
        decision = select_route("/o/v1/models", _headers(), config)
        assert decision.origin == "http://mock-openai:8080"

    def test_unknown_prefix_is_not_found(self, proxy_config):
        with pytest.raises(RouteNotFoundError) as exc_info:
            select_route("/x/anything", _headers(), proxy_config)
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize(
        "headers",
        [{}, {"x_target_host": "example.com"}, {"x_target_host": ""}],
    )
    def test_any_site_disabled_is_forbidden_regardless_of_headers(self, proxy_config, headers):
        with pytest.raises(FeatureDisabledError) as exc_info:
            select_route("/p/foo", _headers(**headers), proxy_config)
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "The any site proxy function is disabled."

    def test_any_site_without_target_host_is_bad_request(self, any_site_config):
        with pytest.raises(MissingTargetHostError) as exc_info:
            select_route("/p/foo", _headers(), any_site_config)
        assert exc_info.value.status_code == 400

    def test_any_site_uses_target_host_header(self, any_site_config, caplog):
        caplog.set_level("WARNING", logger="uvicorn.error")

        decision = select_route(
            "/p/foo", _headers(x_target_host="example.com"), any_site_config
        )

        assert decision == RouteDecision(origin="https://example.com", prefix="/p")
        assert "example.com" in caplog.text

    def test_target_host_header_lookup_is_case_insensitive(self, any_site_config):
        headers = Headers(raw=[(b"x-target-host", b"internal.example:8443")])
        decision = select_route("/p/x", headers, any_site_config)
        assert decision.origin == "https://internal.example:8443"

    def test_fixed_routes_win_over_any_site(self, any_site_config):
        decision = select_route("/o/p/x", _headers(x_target_host="evil.example"), any_site_config)
        assert decision.origin == "https://api.openai.com"
