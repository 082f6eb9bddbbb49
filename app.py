"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import (
    handle_forward,
    handle_forwarding_error,
    handle_request_too_large,
)
from core.config import Config
from core.exceptions import ForwardingError, RequestTooLarge
from core.protocols import RequestLogger
from core.request_types import ForwardingTarget
from services.forwarding_service import ForwardingService
from services.targets import build_targets, mount_path
from services.upstream import UpstreamClient

FORWARDED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    targets = build_targets(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(
            max_connections=config.upstream.max_connections,
            max_keepalive_connections=config.upstream.max_keepalive_connections,
        )
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.upstream.timeout, connect=config.upstream.connect_timeout),
            limits=limits,
            follow_redirects=False,
            transport=transport,
        )
        upstream = UpstreamClient(client)
        app.state.forwarding_service = ForwardingService(upstream, logger)
        try:
            yield
        finally:
            await upstream.aclose()

    # No docs routes: every path belongs to the upstreams.
    app = FastAPI(
        title="Prefix Proxy",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_exception_handler(ForwardingError, handle_forwarding_error)
    app.add_exception_handler(RequestTooLarge, handle_request_too_large)

    for target in targets:
        _mount_route(app, config, target)

    return app


def _mount_route(app: FastAPI, config: Config, target: ForwardingTarget) -> None:
    """Register the catch-all routes of one target."""

    async def proxy_route(request: Request):
        return await handle_forward(request, config, target)

    mount = mount_path(target)
    if mount:
        app.add_api_route(mount, proxy_route, methods=FORWARDED_METHODS, include_in_schema=False)
    app.add_api_route(
        f"{mount}/{{path:path}}",
        proxy_route,
        methods=FORWARDED_METHODS,
        include_in_schema=False,
    )
