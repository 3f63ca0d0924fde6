from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chat_backend.domain.entities.message import ChatMessage


class MessageStore(Protocol):
    """Append-only chat history consumed by the broadcast engine."""

    async def save(self, message: ChatMessage) -> ChatMessage:
        """Persist one message. Raises StorageError on failure."""
        ...

    async def list_recent(
        self,
        limit: int = 20,
        before: datetime | None = None,
    ) -> list[ChatMessage]:
        """Newest first; only messages strictly older than ``before`` when given."""
        ...
