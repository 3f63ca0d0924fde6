"""In-process registry of live chat sessions."""
from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable

from chat_backend.application.ports.clock import utcnow
from chat_backend.domain.value_objects.enums import ConnectionState
from chat_backend.domain.value_objects.ids import SessionId
from chat_backend.infrastructure.realtime.transport import Transport

logger = logging.getLogger(__name__)

SessionVisitor = Callable[["Session"], Awaitable[None] | None]


@dataclass(eq=False, slots=True)
class Session:
    """One live participant: a transport handle plus its own state."""

    transport: Transport
    id: SessionId = field(default_factory=lambda: SessionId(uuid.uuid4()))
    user_id: str | None = None
    is_alive: bool = True
    state: ConnectionState = ConnectionState.OPEN
    connected_at: datetime = field(default_factory=utcnow)

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN and self.transport.is_open

    def mark_alive(self) -> None:
        self.is_alive = True


class ConnectionRegistry:
    """Tracks sessions by id.

    Mutated only from the event loop. Iteration always walks a snapshot,
    so sessions may be registered or removed while a sweep or a fan-out
    is suspended on I/O.
    """

    def __init__(self) -> None:
        self._sessions: dict[SessionId, Session] = {}

    def register(self, transport: Transport, user_id: str | None = None) -> Session:
        session = Session(transport=transport, user_id=user_id)
        self._sessions[session.id] = session
        logger.debug("Session registered: %s (total=%d)", session.id, len(self._sessions))
        return session

    def unregister(self, session: Session) -> bool:
        """Remove a session. Returns False if it was already gone."""
        session.state = ConnectionState.CLOSED
        removed = self._sessions.pop(session.id, None) is not None
        if removed:
            logger.debug("Session unregistered: %s (total=%d)", session.id, len(self._sessions))
        return removed

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def find_by_user(self, user_id: str) -> list[Session]:
        return [s for s in self._sessions.values() if s.user_id == user_id and s.is_open]

    def count_open(self) -> int:
        return sum(1 for s in self._sessions.values() if s.is_open)

    async def for_each_open(self, fn: SessionVisitor) -> int:
        """Call ``fn`` on every session that is still open when reached.

        Awaitable results run concurrently, so one slow session cannot hold
        up the rest. Returns the number of sessions visited.
        """
        visited = 0

        async def _visit(session: Session) -> None:
            nonlocal visited
            if session.id not in self._sessions or not session.is_open:
                return
            visited += 1
            result = fn(session)
            if inspect.isawaitable(result):
                await result

        snapshot = self.sessions()
        results = await asyncio.gather(*(_visit(s) for s in snapshot), return_exceptions=True)
        for session, result in zip(snapshot, results):
            if isinstance(result, Exception):
                logger.error("Visitor failed for session %s", session.id, exc_info=result)
        return visited

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session: object) -> bool:
        return isinstance(session, Session) and session.id in self._sessions
