"""Shared request data types."""

from dataclasses import dataclass, field

import httpx


@dataclass(frozen=True)
class ForwardingTarget:
    """One configured route: requests under base_path go to upstream_address."""

    base_path: str
    upstream_address: str
    name: str = ""
    strict_base_path: bool = False

    @property
    def label(self) -> str:
        return self.name or self.base_path or "/"


@dataclass(frozen=True)
class InboundRequest:
    """Request data captured by the front end, body fully received."""

    path: str
    query: str | None
    method: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b""


@dataclass(frozen=True)
class UpstreamResponse:
    """Complete upstream response with the body exactly as it came off the wire."""

    status_code: int
    headers: httpx.Headers
    body: bytes
