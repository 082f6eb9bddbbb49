"""End-to-end tests through the FastAPI front end."""

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from conftest import echo_handler, upstream_response
from core.config import Config, LimitsSettings, RouteSettings
from core.exceptions import ConfigurationError


@pytest.fixture
def config():
    return Config(
        routes=[
            RouteSettings(name="root", base_path="", upstream="http://root-upstream/base/"),
            RouteSettings(name="api", base_path="/api", upstream="http://api-upstream"),
        ]
    )


@pytest.fixture
def make_client(config, logger):
    def _make(handler=echo_handler, cfg=None):
        app = create_app(cfg or config, logger, transport=httpx.MockTransport(handler))
        return TestClient(app)

    return _make


class TestRouting:
    """Test base-path mounting and URL rewriting."""

    def test_prefixed_route(self, make_client):
        with make_client() as client:
            response = client.get("/api/users", params={"page": "2"})

        assert response.status_code == 200
        assert response.headers["x-echo-url"] == "http://api-upstream/users?page=2"

    def test_base_path_root(self, make_client):
        with make_client() as client:
            response = client.get("/api")

        assert response.headers["x-echo-url"] == "http://api-upstream/"

    def test_catch_all_route(self, make_client):
        with make_client() as client:
            response = client.get("/other/thing")

        assert response.headers["x-echo-url"] == "http://root-upstream/base/other/thing"

    def test_longest_base_path_wins(self, make_client):
        with make_client() as client:
            response = client.get("/api/x")

        assert response.headers["x-echo-url"].startswith("http://api-upstream/")

    def test_trailing_slash_base_path(self, make_client):
        """Test a base path configured with a trailing slash, with and without it inbound."""
        config = Config(routes=[RouteSettings(base_path="/base/", upstream="http://up/svc")])

        with make_client(cfg=config) as client:
            bare = client.get("/base")
            slashed = client.get("/base/")
            nested = client.get("/base/leaf")

        assert bare.headers["x-echo-url"] == "http://up/svc/"
        assert slashed.headers["x-echo-url"] == "http://up/svc/"
        assert nested.headers["x-echo-url"] == "http://up/svc/leaf"

    def test_head_reply_without_synthesized_length(self, make_client):
        def handler(request):
            return upstream_response(200, [("Transfer-Encoding", "chunked"), ("X-A", "1")])

        with make_client(handler) as client:
            response = client.head("/api/x")

        assert response.status_code == 200
        assert response.headers["x-a"] == "1"
        assert "content-length" not in response.headers

    def test_percent_encoding_preserved(self, make_client):
        with make_client() as client:
            response = client.get("/api/a%2Fb")

        assert response.headers["x-echo-url"] == "http://api-upstream/a%2Fb"

    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    def test_methods_forwarded(self, make_client, method):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            return upstream_response(200, body=b"ok")

        with make_client(handler) as client:
            response = client.request(method, "/api/items")

        assert response.status_code == 200
        assert seen["method"] == method

    def test_unrouted_path(self, logger):
        config = Config(routes=[RouteSettings(base_path="/api", upstream="http://api-upstream")])
        app = create_app(config, logger, transport=httpx.MockTransport(echo_handler))

        with TestClient(app) as client:
            response = client.get("/elsewhere")

        assert response.status_code == 404


class TestPassThrough:
    """Test bodies and headers in both directions."""

    def test_binary_body_round_trip(self, make_client):
        body = bytes(range(256)) * 16

        with make_client() as client:
            response = client.post("/api/upload", content=body)

        assert response.status_code == 200
        assert response.content == body

    def test_duplicate_reply_headers(self, make_client):
        def handler(request):
            return upstream_response(
                200,
                [("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"), ("Keep-Alive", "timeout=5")],
                b"",
            )

        with make_client(handler) as client:
            response = client.get("/api/login")

        assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]
        assert "keep-alive" not in response.headers

    def test_request_headers_filtered(self, make_client):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return upstream_response(200)

        with make_client(handler) as client:
            client.get(
                "/api/x",
                headers={"X-Custom": "yes", "Proxy-Authorization": "Basic abc", "TE": "trailers"},
            )

        assert seen["headers"]["x-custom"] == "yes"
        assert "proxy-authorization" not in seen["headers"]
        assert "te" not in seen["headers"]

    def test_upstream_status_relayed(self, make_client):
        def handler(request):
            return upstream_response(418, [("Content-Type", "text/plain")], b"teapot")

        with make_client(handler) as client:
            response = client.get("/api/tea")

        assert response.status_code == 418
        assert response.text == "teapot"


class TestRejections:
    """Test mapping of rejection kinds to error replies."""

    def test_upstream_unreachable(self, make_client, logger):
        def handler(request):
            raise httpx.ConnectError("Connection refused")

        with make_client(handler) as client:
            response = client.get("/api/x")

        assert response.status_code == 502
        assert response.json()["kind"] == "upstream_unreachable"
        assert logger.rejections[0]["route"] == "api"

    def test_upstream_timeout(self, make_client):
        def handler(request):
            raise httpx.ReadTimeout("slow")

        with make_client(handler) as client:
            response = client.get("/api/x")

        assert response.status_code == 504
        assert response.json()["kind"] == "upstream_unreachable"

    def test_malformed_response(self, make_client):
        def handler(request):
            return upstream_response(304, body=b"body on a 304")

        with make_client(handler) as client:
            response = client.get("/api/x")

        assert response.status_code == 502
        assert response.json()["kind"] == "malformed_response"

    def test_body_too_large(self, make_client, config):
        cfg = config.model_copy(update={"limits": LimitsSettings(max_body_size=10)})

        with make_client(cfg=cfg) as client:
            response = client.post("/api/x", content=b"x" * 11)

        assert response.status_code == 413


class TestConfiguration:
    """Test route validation at app creation."""

    def test_duplicate_base_paths(self, logger):
        config = Config(
            routes=[
                RouteSettings(base_path="/api", upstream="http://a"),
                RouteSettings(base_path="api/", upstream="http://b"),
            ]
        )

        with pytest.raises(ConfigurationError):
            create_app(config, logger)

    def test_invalid_upstream(self, logger):
        config = Config(routes=[RouteSettings(base_path="/api", upstream="ftp://a")])

        with pytest.raises(ConfigurationError):
            create_app(config, logger)
