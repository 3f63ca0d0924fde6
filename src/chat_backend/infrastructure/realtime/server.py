"""Server context that owns the realtime components and their lifecycle."""
from __future__ import annotations

import logging

from chat_backend.application.exceptions import TransportError
from chat_backend.application.ports.auth import TokenIssuer
from chat_backend.application.ports.clock import Clock
from chat_backend.application.ports.message_store import MessageStore
from chat_backend.domain.value_objects.enums import ConnectionState
from chat_backend.infrastructure.realtime.broadcast import DEFAULT_SEND_TIMEOUT_SECONDS, BroadcastEngine
from chat_backend.infrastructure.realtime.gateway import SessionGateway
from chat_backend.infrastructure.realtime.heartbeat import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PING_TIMEOUT_SECONDS,
    HeartbeatMonitor,
)
from chat_backend.infrastructure.realtime.protocol import OutboundMessage
from chat_backend.infrastructure.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class ChatServer:
    def __init__(
        self,
        store: MessageStore,
        *,
        token_issuer: TokenIssuer | None = None,
        host: str = "0.0.0.0",
        port: int = 8080,
        heartbeat_seconds: float = DEFAULT_INTERVAL_SECONDS,
        ping_timeout: float = DEFAULT_PING_TIMEOUT_SECONDS,
        send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
        drain_seconds: float = 5.0,
        clock: Clock | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self._drain_seconds = drain_seconds
        self.registry = ConnectionRegistry()
        self.engine = BroadcastEngine(self.registry, store, clock, send_timeout=send_timeout)
        self.heartbeat = HeartbeatMonitor(self.registry, heartbeat_seconds, ping_timeout)
        self.gateway = SessionGateway(self.registry, self.engine, token_issuer)
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self, *, listen: bool = True) -> None:
        """Start the heartbeat and, unless ``listen`` is False, the WS listener."""
        if self._started:
            return
        if listen:
            await self.gateway.serve(self.host, self.port)
        await self.heartbeat.start()
        self._started = True

    async def stop(self) -> None:
        if not self._started:
            return
        await self.heartbeat.stop()
        await self.gateway.close()
        for session in self.registry.sessions():
            session.state = ConnectionState.CLOSING
            try:
                await session.transport.close(1001, "Server shutting down")
            except TransportError as exc:
                logger.debug("Close failed for session %s: %s", session.id, exc)
            self.registry.unregister(session)
        if self.engine.pending_writes:
            logger.info("Waiting for %d pending message write(s)", self.engine.pending_writes)
        await self.engine.drain(self._drain_seconds)
        self._started = False
        logger.info("Chat server stopped")

    def client_count(self) -> int:
        return self.registry.count_open()

    async def send_to_user(self, user_id: str, message: OutboundMessage) -> bool:
        return await self.engine.send_to_user(user_id, message)
