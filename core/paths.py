"""Outbound URL construction from a route's base path and upstream address."""

from core.exceptions import MalformedRequest


def normalize_base_path(base_path: str) -> str:
    """Ensure a non-empty base path starts with a slash."""
    if base_path and not base_path.startswith("/"):
        return "/" + base_path
    return base_path


def strip_base_path(base_path: str, inbound_path: str, *, strict: bool = False) -> str:
    """Return the part of inbound_path below base_path, without leading slashes.

    The default trim is best-effort: a path outside the base path only loses its
    leading slashes. With strict=True such a path raises MalformedRequest, and
    the base path must end on a segment boundary ("/api" does not own "/apix").
    """
    # "/base/" and "/base" own the same paths, the bare "/base" included.
    base_path = normalize_base_path(base_path).rstrip("/")
    if strict:
        return _strip_segments(base_path, inbound_path)
    if base_path and inbound_path.startswith(base_path):
        inbound_path = inbound_path[len(base_path):]
    return inbound_path.lstrip("/")


def rewrite_path(
    base_path: str,
    inbound_path: str,
    upstream_address: str,
    query: str | None = None,
    *,
    strict: bool = False,
) -> str:
    """Map an inbound path onto the upstream address.

    rewrite_path("handle", "/handle/this/path", "http://x") == "http://x/this/path"
    """
    relative = strip_base_path(base_path, inbound_path, strict=strict)
    url = f"{upstream_address.rstrip('/')}/{relative}"
    if query is not None:
        url = f"{url}?{query}"
    return url


def _strip_segments(base_path: str, inbound_path: str) -> str:
    if not base_path:
        return inbound_path.lstrip("/")
    if inbound_path == base_path or inbound_path.startswith(base_path + "/"):
        return inbound_path[len(base_path):].lstrip("/")
    raise MalformedRequest(f"path {inbound_path!r} is outside base path {base_path!r}")
