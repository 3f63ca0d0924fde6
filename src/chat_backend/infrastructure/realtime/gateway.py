"""Accepts WebSocket connections and turns them into managed sessions."""
from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlsplit

from websockets.asyncio.server import Server, ServerConnection, serve

from chat_backend.application.exceptions import AuthError, TransportError
from chat_backend.application.ports.auth import TokenIssuer
from chat_backend.infrastructure.realtime.broadcast import BroadcastEngine
from chat_backend.infrastructure.realtime.registry import ConnectionRegistry
from chat_backend.infrastructure.realtime.transport import Transport, WebsocketsTransport

logger = logging.getLogger(__name__)

WELCOME_TEXT = "Welcome to the WebSocket server!"


def _token_from_path(path: str) -> str | None:
    values = parse_qs(urlsplit(path).query).get("token")
    return values[0] if values else None


class SessionGateway:
    def __init__(
        self,
        registry: ConnectionRegistry,
        engine: BroadcastEngine,
        token_issuer: TokenIssuer | None = None,
        welcome_text: str = WELCOME_TEXT,
    ) -> None:
        self._registry = registry
        self._engine = engine
        self._token_issuer = token_issuer
        self._welcome_text = welcome_text
        self._server: Server | None = None

    @property
    def port(self) -> int | None:
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    async def handle(self, transport: Transport, token: str | None = None) -> None:
        """Serve one connection until it closes.

        Registration, the welcome frame and inbound dispatch all happen
        here in order, so no frame is read before the session is wired.
        Errors end this connection only.
        """
        user_id = await self._identify(token)
        session = self._registry.register(transport, user_id=user_id)
        logger.info(
            "A new client connected: %s user=%s (total=%d)",
            session.id, user_id or "-", len(self._registry),
        )
        try:
            await self._engine.send(session, self._engine.welcome(self._welcome_text))
            async for raw in transport.frames():
                await self._engine.handle_inbound(session, raw)
        except TransportError as exc:
            logger.warning("WebSocket error for session %s: %s", session.id, exc)
        except Exception:
            logger.exception("WebSocket error for session %s", session.id)
        finally:
            self._registry.unregister(session)
            logger.info("A client disconnected: %s (total=%d)", session.id, len(self._registry))

    async def serve(self, host: str, port: int) -> None:
        # Keepalive is owned by HeartbeatMonitor.
        self._server = await serve(self._on_connection, host, port, ping_interval=None)
        logger.info("WebSocket server is running on ws://%s:%s", host, self.port)

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("WebSocket server closed")

    async def _on_connection(self, connection: ServerConnection) -> None:
        token = _token_from_path(connection.request.path) if connection.request else None
        await self.handle(WebsocketsTransport(connection), token=token)

    async def _identify(self, token: str | None) -> str | None:
        if not token or self._token_issuer is None:
            return None
        try:
            principal = await self._token_issuer.verify(token)
        except AuthError:
            logger.debug("WS token rejected, continuing anonymously", exc_info=True)
            return None
        return principal.user_id
