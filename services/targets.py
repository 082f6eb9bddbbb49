"""Forwarding targets built from the configured routes."""

import httpx

from core.config import Config, RouteSettings
from core.exceptions import ConfigurationError
from core.paths import normalize_base_path
from core.request_types import ForwardingTarget


def build_target(route: RouteSettings) -> ForwardingTarget:
    """Validate one route and freeze it into a ForwardingTarget."""
    try:
        url = httpx.URL(route.upstream)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"route {route.name!r}: invalid upstream {route.upstream!r}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            f"route {route.name!r}: upstream must be an absolute http(s) URL, got {route.upstream!r}"
        )
    if url.query or url.fragment:
        raise ConfigurationError(f"route {route.name!r}: upstream must not carry a query or fragment")

    return ForwardingTarget(
        base_path=route.base_path,
        upstream_address=route.upstream,
        name=route.name,
        strict_base_path=route.strict_base_path,
    )


def build_targets(config: Config) -> list[ForwardingTarget]:
    """Build all targets, most specific base path first."""
    targets = [build_target(route) for route in config.routes]
    if not targets:
        raise ConfigurationError("no routes configured")

    seen: dict[str, ForwardingTarget] = {}
    for target in targets:
        key = mount_path(target)
        if key in seen:
            raise ConfigurationError(
                f"routes {seen[key].label!r} and {target.label!r} share base path {key or '/'!r}"
            )
        seen[key] = target

    return sorted(targets, key=lambda t: len(mount_path(t)), reverse=True)


def mount_path(target: ForwardingTarget) -> str:
    """Base path as mounted on the front end: leading slash, no trailing slash."""
    return normalize_base_path(target.base_path).rstrip("/")
