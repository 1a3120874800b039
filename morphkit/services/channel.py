# morphkit/services/channel.py
"""
WorkerChannel: request/reply over a Transport.

The worker protocol carries no correlation ids, so the channel keeps exactly
one request outstanding and attributes each reply to it. Everything else
waits in a FIFO queue. Callers always get a Response back: transport faults,
a missing worker and termination all surface as ErrorResponse values.
"""
from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from morphkit.core.domain.exceptions import HandshakeFailed, TransportUnavailable
from morphkit.core.domain.messages import (
    ApplyDownRequest,
    ApplyJoinRequest,
    ApplyUpRequest,
    DownResponse,
    ErrorResponse,
    InitRequest,
    JoinResponse,
    LoadPackRequest,
    ReadyResponse,
    Response,
    UpResponse,
    parse_response,
    to_wire,
)
from morphkit.core.domain.models import JoinDecision
from morphkit.core.ports import JoinAdapter, Transport

logger = structlog.get_logger()

NO_TRANSPORT = "no transport"
TERMINATED = "terminated"

TransportFactory = Callable[[], Optional[Transport]]


@dataclass
class QueueEntry:
    request: dict
    future: asyncio.Future


class WorkerChannel(JoinAdapter):
    """
    Serializes requests to one worker.

    Args:
        transport_factory: Called by `init()` to start the worker; may return
            None (or raise TransportUnavailable) to run in stub mode.
    """

    def __init__(self, transport_factory: TransportFactory):
        self._transport_factory = transport_factory
        self._transport: Optional[Transport] = None
        self._queue: Deque[QueueEntry] = deque()
        self._outstanding: Optional[QueueEntry] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._init_lock: Optional[asyncio.Lock] = None
        # Bumped by terminate(); an init that straddles it must not mark the channel ready.
        self._generation = 0
        self.initialized = False

    @property
    def available(self) -> bool:
        return self._transport is not None

    @property
    def pending(self) -> int:
        """Requests queued or in flight."""
        return len(self._queue) + (1 if self._outstanding else 0)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self, engine_url: str = "", pack_url: Optional[str] = None) -> None:
        """
        Start the worker and perform the init handshake. Idempotent.

        Concurrent callers share one worker: the first performs the
        handshake, the rest wait for it and return. A failed handshake tears
        the worker down; the channel stays initialized in stub mode for the
        rest of the session. A terminate() during the handshake wins.
        """
        if self.initialized:
            return
        loop = asyncio.get_running_loop()
        if self._init_lock is None or self._loop is not loop:
            self._init_lock = asyncio.Lock()
            self._loop = loop

        async with self._init_lock:
            if self.initialized:
                return
            await self._start(engine_url, pack_url)

    async def _start(self, engine_url: str, pack_url: Optional[str]) -> None:
        generation = self._generation

        try:
            transport = self._transport_factory()
        except TransportUnavailable as e:
            logger.warning("channel_transport_unavailable", error=str(e))
            transport = None

        if transport is None:
            logger.info("channel_stub_mode")
            self.initialized = True
            return

        transport.on_message(self._on_transport_message)
        self._transport = transport

        try:
            response = await self.request(InitRequest(engine_url=engine_url, pack_url=pack_url))
            if not isinstance(response, ReadyResponse):
                raise HandshakeFailed(getattr(response, "message", repr(response)))
            logger.info("channel_handshake_ok", engine_url=engine_url)
        except HandshakeFailed as e:
            logger.error("channel_handshake_failed", error=str(e))
            if self._transport is transport:
                self._close_transport()

        if generation != self._generation:
            logger.info("channel_init_superseded")
            return
        self.initialized = True

    def terminate(self) -> None:
        """Destroy the worker and fail everything still waiting. Idempotent."""
        self._close_transport()

        entries: List[QueueEntry] = list(self._queue)
        if self._outstanding is not None:
            entries.insert(0, self._outstanding)
        self._queue.clear()
        self._outstanding = None

        for entry in entries:
            if not entry.future.done():
                entry.future.set_result(ErrorResponse(message=TERMINATED))
        if entries:
            logger.info("channel_pending_failed", count=len(entries))
        self.initialized = False
        self._generation += 1

    def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            transport.close()
        except Exception as e:
            logger.warning("channel_transport_close_failed", error=str(e))

    # ------------------------------------------------------------------
    # Request / reply
    # ------------------------------------------------------------------

    async def request(self, message: Union[BaseModel, dict]) -> Response:
        """Queue one request and wait for the reply attributed to it."""
        if self._transport is None:
            return ErrorResponse(message=NO_TRANSPORT)

        payload = to_wire(message) if isinstance(message, BaseModel) else dict(message)
        entry = QueueEntry(request=payload, future=asyncio.get_running_loop().create_future())
        self._queue.append(entry)
        self._dispatch()
        return await entry.future

    def _dispatch(self) -> None:
        if self._outstanding is not None or not self._queue:
            return
        if self._transport is None:
            return

        entry = self._queue.popleft()
        self._outstanding = entry
        logger.debug("channel_request_sent", type=entry.request.get("type"))
        try:
            self._transport.post(entry.request)
        except Exception as e:
            logger.error("channel_post_failed", error=str(e))
            self._settle({"type": "error", "message": f"post failed: {e}"})

    def _on_transport_message(self, payload: dict) -> None:
        # May run on a transport thread; hop onto the channel's loop.
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("channel_reply_without_loop", type=payload.get("type"))
            return
        loop.call_soon_threadsafe(self._settle, payload)

    def _settle(self, payload: dict) -> None:
        entry, self._outstanding = self._outstanding, None
        if entry is None:
            logger.warning("channel_unexpected_reply", type=payload.get("type"))
            return

        try:
            response = parse_response(payload)
        except ValidationError as e:
            logger.error("channel_malformed_reply", error=str(e))
            response = ErrorResponse(message="malformed reply")

        if not entry.future.done():
            entry.future.set_result(response)
        self._dispatch()

    # ------------------------------------------------------------------
    # Typed wrappers
    # ------------------------------------------------------------------

    async def load_pack(self, pack_url: str) -> bool:
        if self._transport is None:
            return False
        response = await self.request(LoadPackRequest(pack_url=pack_url))
        if isinstance(response, ErrorResponse):
            logger.warning("channel_load_pack_failed", url=pack_url, error=response.message)
            return False
        return True

    async def apply_up(self, text: str) -> List[str]:
        if self._transport is None:
            return []
        response = await self.request(ApplyUpRequest(input=text))
        if isinstance(response, UpResponse):
            return list(response.outputs)
        logger.warning("channel_apply_up_failed", input=text, reply=response.type)
        return []

    async def apply_down(self, text: str) -> List[str]:
        if self._transport is None:
            return []
        response = await self.request(ApplyDownRequest(input=text))
        if isinstance(response, DownResponse):
            return list(response.outputs)
        logger.warning("channel_apply_down_failed", input=text, reply=response.type)
        return []

    async def apply_join(self, prev: str, next: str, lang: str) -> Optional[JoinDecision]:
        if self._transport is None:
            return None
        response = await self.request(ApplyJoinRequest(prev=prev, next=next, lang=lang))
        if isinstance(response, JoinResponse):
            return response.decision
        logger.warning("channel_apply_join_failed", prev=prev, next=next, lang=lang, reply=response.type)
        return None


__all__ = ["WorkerChannel", "QueueEntry", "NO_TRANSPORT", "TERMINATED"]
