"""FastAPI route handlers."""

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from core.config import Config
from core.exceptions import ForwardingError, RejectionKind, RequestTooLarge, UpstreamTimeout
from core.request_types import ForwardingTarget, InboundRequest

# nginx convention for "client closed request"; nobody reads it.
CLIENT_CLOSED_REQUEST = 499

REJECTION_STATUS = {
    RejectionKind.MALFORMED_REQUEST: 400,
    RejectionKind.UPSTREAM_UNREACHABLE: 502,
    RejectionKind.MALFORMED_RESPONSE: 502,
    RejectionKind.CLIENT_DISCONNECTED: CLIENT_CLOSED_REQUEST,
}


async def capture_request(request: Request, max_body_size: int) -> InboundRequest:
    """Capture path, query, method, headers and full body of a request.

    Path and query are taken raw from the ASGI scope so percent-encoding
    reaches the upstream untouched.
    """
    raw_path = request.scope.get("raw_path")
    path = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else request.url.path
    query_string = request.scope.get("query_string", b"")
    body = await request.body()
    if len(body) > max_body_size:
        raise RequestTooLarge(f"body of {len(body)} bytes exceeds {max_body_size}")

    return InboundRequest(
        path=path,
        query=query_string.decode("latin-1") if query_string else None,
        method=request.method,
        headers=httpx.Headers(request.headers.raw),
        body=body,
    )


async def handle_forward(
    request: Request,
    config: Config,
    target: ForwardingTarget,
) -> Response:
    """Forward a request matched by a route to that route's upstream."""
    inbound = await capture_request(request, config.limits.max_body_size)
    forwarding_service = request.app.state.forwarding_service
    return await forwarding_service.forward(
        target,
        inbound,
        wait_disconnected=lambda: wait_for_disconnect(request),
    )


async def wait_for_disconnect(request: Request) -> None:
    """Return once the ASGI server reports that the client went away.

    Only valid after the body has been read: remaining messages on the
    receive channel are then disconnect notifications.
    """
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def handle_forwarding_error(request: Request, exc: ForwardingError) -> Response:
    """Map a rejection kind to an error reply."""
    status = 504 if isinstance(exc, UpstreamTimeout) else REJECTION_STATUS[exc.kind]
    return JSONResponse(
        {"error": exc.message, "kind": exc.kind.value},
        status_code=status,
    )


async def handle_request_too_large(request: Request, exc: RequestTooLarge) -> Response:
    return JSONResponse({"error": "Request body too large"}, status_code=413)
