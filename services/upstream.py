"""HTTP transport to upstream services."""

import httpx

from core.exceptions import UpstreamTimeout, UpstreamUnreachable
from core.request_types import UpstreamResponse


class UpstreamClient:
    """Send outbound requests over a shared, pooled httpx client."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def send(self, request: httpx.Request) -> UpstreamResponse:
        """Send a fully buffered request and read the complete response.

        The body is collected with aiter_raw() so Content-Encoding is not
        undone; the relayed bytes match the relayed headers.
        """
        try:
            response = await self._client.send(request, stream=True)
            try:
                body = b"".join([chunk async for chunk in response.aiter_raw()])
            finally:
                await response.aclose()
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"Upstream timeout: {e}") from e
        except httpx.TransportError as e:
            raise UpstreamUnreachable(f"Upstream connection error: {e!r}") from e

        return UpstreamResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=body,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
