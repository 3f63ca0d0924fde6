"""Transport handles owned by sessions.

``Transport`` is the narrow surface the registry, heartbeat and broadcast
engine need from one connection. ``WebsocketsTransport`` adapts a
``websockets`` server connection to it.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Protocol

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedError
from websockets.protocol import State

from chat_backend.application.exceptions import DeliveryError, TransportError

logger = logging.getLogger(__name__)

PongCallback = Callable[[], None]


class Transport(Protocol):
    @property
    def is_open(self) -> bool: ...

    async def send(self, data: str) -> None:
        """Send one text frame. Raises DeliveryError."""
        ...

    async def ping(self, on_pong: PongCallback) -> None:
        """Send a protocol ping; ``on_pong`` runs when the matching pong arrives."""
        ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    def abort(self) -> None:
        """Drop the connection without a closing handshake."""
        ...

    def frames(self) -> AsyncIterator[str | bytes]:
        """Inbound data frames in receipt order. Raises TransportError."""
        ...


class WebsocketsTransport:
    def __init__(self, connection: ServerConnection) -> None:
        self._conn = connection

    @property
    def is_open(self) -> bool:
        return self._conn.state is State.OPEN

    async def send(self, data: str) -> None:
        try:
            await self._conn.send(data)
        except ConnectionClosed as exc:
            raise DeliveryError(str(exc)) from exc

    async def ping(self, on_pong: PongCallback) -> None:
        try:
            waiter = await self._conn.ping()
        except ConnectionClosed as exc:
            raise TransportError(str(exc)) from exc

        def _done(fut: asyncio.Future[float]) -> None:
            if fut.cancelled() or fut.exception() is not None:
                return
            on_pong()

        waiter.add_done_callback(_done)  # type: ignore[attr-defined]

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._conn.close(code, reason)

    def abort(self) -> None:
        self._conn.transport.abort()

    async def frames(self) -> AsyncIterator[str | bytes]:
        try:
            async for message in self._conn:
                yield message
        except ConnectionClosedError as exc:
            raise TransportError(str(exc)) from exc
