"""Shared protocol definitions."""

from typing import Protocol

import httpx


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard)."""

    def log_forward(
        self,
        route: str,
        method: str,
        path: str,
        target_url: str,
        status: int,
        *,
        headers: httpx.Headers,
        elapsed_ms: float,
    ) -> None: ...
    def log_rejection(self, route: str, kind: str, stage: str, message: str) -> None: ...
