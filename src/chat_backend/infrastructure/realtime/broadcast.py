"""Normalize inbound chat events, persist them and fan them out."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from chat_backend.application.exceptions import DecodeError, DeliveryError
from chat_backend.application.ports.clock import Clock, SystemClock
from chat_backend.application.ports.message_store import MessageStore
from chat_backend.domain.entities.message import ANONYMOUS_SENDER, ChatMessage
from chat_backend.domain.value_objects.enums import PERSISTED_TYPES, ConnectionState, OutboundType
from chat_backend.infrastructure.realtime.protocol import InboundEvent, OutboundMessage
from chat_backend.infrastructure.realtime.registry import ConnectionRegistry, Session

logger = logging.getLogger(__name__)

PROCESSING_FAILED = "Failed to process message"
DEFAULT_SEND_TIMEOUT_SECONDS = 5.0


def _as_utc(ts: datetime) -> datetime:
    # Client timestamps without an offset are taken as UTC.
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


@dataclass(frozen=True, slots=True)
class BroadcastResult:
    delivered: int
    failed: int
    persisted: asyncio.Task[ChatMessage] | None = None


class BroadcastEngine:
    def __init__(
        self,
        registry: ConnectionRegistry,
        store: MessageStore,
        clock: Clock | None = None,
        send_timeout: float | None = DEFAULT_SEND_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._store = store
        self._clock = clock or SystemClock()
        self._send_timeout = send_timeout
        self._pending: set[asyncio.Task[ChatMessage]] = set()

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    async def handle_inbound(self, sender: Session, raw: str | bytes) -> BroadcastResult | None:
        """Process one frame from ``sender``.

        Returns None when the frame could not be processed; the sender has
        then been sent an error frame and nothing was broadcast.
        """
        try:
            event = self.normalize(sender, raw)
            persisted = None
            if event.type in PERSISTED_TYPES:
                persisted = self.submit(self._to_record(event))
            # Re-stamped: the broadcast time, not the persisted one.
            outbound = self.outbound(
                OutboundType.BROADCAST,
                event.content,
                user_id=event.user_id or sender.user_id,
            )
        except Exception:
            logger.exception("Error processing message from session %s", sender.id)
            await self.send(sender, self.error(PROCESSING_FAILED))
            return None

        delivered, failed = await self.fan_out(outbound)
        return BroadcastResult(delivered=delivered, failed=failed, persisted=persisted)

    def normalize(self, sender: Session, raw: str | bytes) -> InboundEvent:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        logger.debug("Received message from %s: %s", sender.id, text)
        try:
            return InboundEvent.decode(text)
        except DecodeError:
            return InboundEvent(
                type=OutboundType.MESSAGE,
                content=text,
                timestamp=self._clock.now(),
                user_id=sender.user_id,
            )

    def submit(self, message: ChatMessage) -> asyncio.Task[ChatMessage]:
        """Schedule a write without waiting for it.

        The returned task may be awaited by callers that care about the
        outcome; failures are logged either way.
        """
        task = asyncio.create_task(self._store.save(message), name=f"persist-{message.id}")
        self._pending.add(task)
        task.add_done_callback(self._on_persisted)
        return task

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for in-flight writes. Returns how many were still pending after ``timeout``."""
        if not self._pending:
            return 0
        _done, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            logger.warning("%d message write(s) still pending at shutdown", len(pending))
        return len(pending)

    async def fan_out(self, message: OutboundMessage) -> tuple[int, int]:
        """Send ``message`` to every open session concurrently.

        Each send is bounded by the send timeout. Returns (delivered, failed).
        """
        raw = message.to_json()
        failed = 0

        async def _deliver(session: Session) -> None:
            nonlocal failed
            if not await self._send_raw(session, raw):
                failed += 1

        visited = await self._registry.for_each_open(_deliver)
        return visited - failed, failed

    async def send_to_user(self, user_id: str, message: OutboundMessage) -> bool:
        """Deliver to every open session of ``user_id``. True if any send succeeded."""
        raw = message.to_json()
        sent = False
        for session in self._registry.find_by_user(user_id):
            sent = await self._send_raw(session, raw) or sent
        return sent

    async def send(self, session: Session, message: OutboundMessage) -> bool:
        return await self._send_raw(session, message.to_json())

    def outbound(
        self,
        type_: OutboundType,
        content: str,
        user_id: str | None = None,
    ) -> OutboundMessage:
        return OutboundMessage(type=type_, content=content, timestamp=self._clock.now(), user_id=user_id)

    def welcome(self, content: str) -> OutboundMessage:
        return self.outbound(OutboundType.WELCOME, content)

    def error(self, content: str) -> OutboundMessage:
        return self.outbound(OutboundType.ERROR, content)

    async def _send_raw(self, session: Session, raw: str) -> bool:
        try:
            async with asyncio.timeout(self._send_timeout):
                await session.transport.send(raw)
        except TimeoutError:
            # The peer stopped reading. Dropping it ends its read loop.
            logger.warning(
                "Send to session %s timed out after %ss, aborting",
                session.id, self._send_timeout,
            )
            session.state = ConnectionState.CLOSING
            session.transport.abort()
            return False
        except DeliveryError as exc:
            logger.debug("Delivery to session %s failed: %s", session.id, exc)
            return False
        except Exception:
            logger.exception("Unexpected send error for session %s", session.id)
            return False
        return True

    def _to_record(self, event: InboundEvent) -> ChatMessage:
        return ChatMessage(
            id=uuid.uuid4(),
            sender=event.user_id or ANONYMOUS_SENDER,
            content=event.content,
            timestamp=_as_utc(event.timestamp) if event.timestamp else self._clock.now(),
        )

    def _on_persisted(self, task: asyncio.Task[ChatMessage]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Failed to save message: %s", exc, exc_info=exc)
