"""Translation of captured inbound requests into outbound httpx requests."""

import httpx

from core.exceptions import MalformedRequest
from core.headers import TOKEN_RE, invalid_header, remove_hop_headers
from core.paths import rewrite_path
from core.request_types import ForwardingTarget, InboundRequest


class RequestTransformer:
    """Build the upstream request for a route."""

    def resolve_url(self, target: ForwardingTarget, inbound: InboundRequest) -> str:
        """Resolve the upstream URL for an inbound request."""
        return rewrite_path(
            target.base_path,
            inbound.path,
            target.upstream_address,
            inbound.query,
            strict=target.strict_base_path,
        )

    def to_outbound(self, target: ForwardingTarget, inbound: InboundRequest) -> httpx.Request:
        """Combine method, filtered headers, body and resolved URL.

        The request is built directly rather than through a client so that no
        client default headers (User-Agent, Accept-Encoding...) are added.
        """
        url = self.resolve_url(target, inbound)
        self._check_method(inbound.method)
        headers = remove_hop_headers(inbound.headers)
        for name, value in headers.raw:
            problem = invalid_header(name, value)
            if problem:
                raise MalformedRequest(problem)

        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise MalformedRequest(f"invalid upstream URL {url!r}: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise MalformedRequest(f"upstream URL {url!r} is not an absolute http(s) URL")

        try:
            return httpx.Request(
                inbound.method,
                parsed,
                headers=headers,
                content=bytes(inbound.body),
            )
        except (httpx.InvalidURL, UnicodeEncodeError, TypeError, ValueError) as e:
            raise MalformedRequest(f"cannot build request for {url!r}: {e}") from e

    @staticmethod
    def _check_method(method: str) -> None:
        try:
            raw = method.encode("ascii")
        except UnicodeEncodeError:
            raw = b""
        if not TOKEN_RE.fullmatch(raw):
            raise MalformedRequest(f"invalid method {method!r}")
