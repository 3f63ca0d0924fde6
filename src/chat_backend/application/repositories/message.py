from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chat_backend.domain.entities.message import ChatMessage


class MessageReader(Protocol):
    async def list_recent(
        self,
        *,
        limit: int = 20,
        before: datetime | None = None,
    ) -> list[ChatMessage]: ...


class MessageWriter(Protocol):
    async def add(self, message: ChatMessage) -> ChatMessage: ...
