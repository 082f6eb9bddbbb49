"""Forwarding orchestration: one inbound request in, one reply or rejection out."""

import asyncio
import time
from collections.abc import Awaitable, Callable

import httpx
from fastapi import Response

from core.exceptions import ClientDisconnected, ForwardingError, ForwardingStage
from core.protocols import RequestLogger
from core.reply import ReplyBuilder
from core.request_types import ForwardingTarget, InboundRequest, UpstreamResponse
from core.transform import RequestTransformer
from services.upstream import UpstreamClient

DisconnectWaiter = Callable[[], Awaitable[object]]


class ForwardingService:
    """Compose request translation, transport and reply translation.

    Each call walks RECEIVED -> TRANSLATED -> DISPATCHED -> REPLIED. The first
    failure ends the call with a ForwardingError whose ``stage`` is the last
    state reached; nothing is retried and no partial reply is produced. The
    service keeps no per-request state, so one instance serves all routes.
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        logger: RequestLogger,
        transformer: RequestTransformer | None = None,
        reply_builder: ReplyBuilder | None = None,
    ) -> None:
        self._upstream = upstream
        self._logger = logger
        self._transformer = transformer or RequestTransformer()
        self._replies = reply_builder or ReplyBuilder()

    async def forward(
        self,
        target: ForwardingTarget,
        inbound: InboundRequest,
        wait_disconnected: DisconnectWaiter | None = None,
    ) -> Response:
        """Forward one inbound request to the target's upstream.

        If ``wait_disconnected`` completes before the upstream answers, the
        upstream call is cancelled and ClientDisconnected is raised.
        """
        stage = ForwardingStage.RECEIVED
        started = time.perf_counter()
        try:
            request = self._transformer.to_outbound(target, inbound)
            stage = ForwardingStage.TRANSLATED

            upstream = await self._dispatch(request, wait_disconnected)
            stage = ForwardingStage.DISPATCHED

            reply = self._replies.to_reply(upstream, inbound.method)
            stage = ForwardingStage.REPLIED
        except ForwardingError as e:
            e.stage = stage
            self._logger.log_rejection(target.label, e.kind, stage, e.message)
            raise

        self._logger.log_forward(
            target.label,
            inbound.method,
            inbound.path,
            str(request.url),
            reply.status_code,
            headers=request.headers,
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )
        return reply

    async def _dispatch(
        self,
        request: httpx.Request,
        wait_disconnected: DisconnectWaiter | None,
    ) -> UpstreamResponse:
        if wait_disconnected is None:
            return await self._upstream.send(request)

        call = asyncio.ensure_future(self._upstream.send(request))
        watcher = asyncio.ensure_future(wait_disconnected())
        try:
            await asyncio.wait({call, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            # Reached on cancellation of forward() too; abandon both.
            watcher.cancel()
            # A watcher that failed counts as a disconnect; its error is consumed here.
            await asyncio.gather(watcher, return_exceptions=True)
            if not call.done():
                call.cancel()
                await asyncio.gather(call, return_exceptions=True)
        if call.cancelled():
            raise ClientDisconnected(f"client disconnected before {request.url} replied")
        return call.result()
