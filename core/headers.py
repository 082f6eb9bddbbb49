"""Hop-by-hop header filtering for both directions of a forwarded exchange."""

import re

import httpx

# Connection-scoped headers (RFC 2616 13.5.1); never relayed across connections.
HOP_BY_HOP_HEADERS = frozenset(
    {
        b"connection",
        b"keep-alive",
        b"proxy-authenticate",
        b"proxy-authorization",
        b"te",
        b"trailers",
        b"transfer-encoding",
        b"upgrade",
    }
)

# RFC 7230 token and field-value checks, shared by request and reply building.
TOKEN_RE = re.compile(rb"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
INVALID_VALUE_RE = re.compile(rb"[\r\n\x00]")


def is_hop_header(name: str | bytes) -> bool:
    """Check a header name against the hop-by-hop set.

    Comparison is ASCII-only: bytes.lower() never applies locale rules.
    """
    if isinstance(name, str):
        try:
            name = name.encode("ascii")
        except UnicodeEncodeError:
            return False
    return name.lower() in HOP_BY_HOP_HEADERS


def remove_hop_headers(headers: httpx.Headers | list[tuple[bytes, bytes]]) -> httpx.Headers:
    """Return a copy of headers without hop-by-hop entries.

    Duplicates and the relative order of the remaining entries are kept.
    """
    if not isinstance(headers, httpx.Headers):
        headers = httpx.Headers(headers)
    return httpx.Headers(
        [(name, value) for name, value in headers.raw if not is_hop_header(name)]
    )


def invalid_header(name: bytes, value: bytes) -> str | None:
    """Describe why a header cannot be put on the wire, or None if it can."""
    if not TOKEN_RE.fullmatch(name):
        return f"invalid header name {name!r}"
    if INVALID_VALUE_RE.search(value):
        return f"invalid value for header {name.decode('latin-1')!r}"
    return None
