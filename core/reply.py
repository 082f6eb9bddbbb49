"""Translation of upstream responses into front-end replies."""

from fastapi import Response

from core.exceptions import MalformedResponse
from core.headers import invalid_header, remove_hop_headers
from core.request_types import UpstreamResponse

# Statuses that must not carry a message body (RFC 7230 3.3.3).
BODYLESS_STATUSES = frozenset({204, 304})


class ReplyBuilder:
    """Reconstruct a reply from an upstream response."""

    def to_reply(self, upstream: UpstreamResponse, method: str = "GET") -> Response:
        """Copy status and body verbatim, relay only end-to-end headers.

        ``method`` is the forwarded request's method: a HEAD reply never gets a
        synthesized content-length, since its empty body says nothing about the
        size of the GET body.
        """
        status = upstream.status_code
        if not 100 <= status <= 599:
            raise MalformedResponse(f"unrepresentable status code {status}")
        if upstream.body and (status < 200 or status in BODYLESS_STATUSES):
            raise MalformedResponse(f"status {status} cannot carry a body")

        raw_headers: list[tuple[bytes, bytes]] = []
        has_length = False
        for name, value in remove_hop_headers(upstream.headers).raw:
            problem = invalid_header(name, value)
            if problem:
                raise MalformedResponse(problem)
            name = name.lower()
            has_length = has_length or name == b"content-length"
            raw_headers.append((name, value))

        # Upstream chunked framing is dropped with Transfer-Encoding.
        if (
            not has_length
            and method.upper() != "HEAD"
            and status >= 200
            and status not in BODYLESS_STATUSES
        ):
            raw_headers.append((b"content-length", str(len(upstream.body)).encode("ascii")))

        reply = Response(content=upstream.body, status_code=status)
        reply.raw_headers = raw_headers
        return reply
