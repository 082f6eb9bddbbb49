import socket

import httpx
import pytest

from core.request_types import ForwardingTarget, InboundRequest


class RecordingLogger:
    """RequestLogger that keeps every call for assertions."""

    def __init__(self):
        self.forwards = []
        self.rejections = []

    def log_forward(self, route, method, path, target_url, status, *, headers, elapsed_ms):
        self.forwards.append(
            {
                "route": route,
                "method": method,
                "path": path,
                "target_url": target_url,
                "status": status,
                "headers": headers,
            }
        )

    def log_rejection(self, route, kind, stage, message):
        self.rejections.append({"route": route, "kind": kind, "stage": stage, "message": message})


def upstream_response(status_code=200, headers=None, body=b""):
    """Simulated upstream reply whose raw stream has not been consumed yet."""
    return httpx.Response(status_code, headers=headers or [], stream=httpx.ByteStream(body))


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Upstream that answers with the request body and echoes the target."""
    return upstream_response(
        200,
        headers=[("content-type", "application/octet-stream"), ("x-echo-url", str(request.url))],
        body=request.content,
    )


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def target():
    return ForwardingTarget(base_path="/api", upstream_address="http://upstream:8080", name="api")


@pytest.fixture
def make_inbound():
    def _make(path="/api/items", query=None, method="GET", headers=None, body=b""):
        return InboundRequest(
            path=path,
            query=query,
            method=method,
            headers=httpx.Headers(headers or []),
            body=body,
        )

    return _make


@pytest.fixture
def unused_port():
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
