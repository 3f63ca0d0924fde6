from __future__ import annotations

from datetime import datetime

from chat_backend.application.uow import UnitOfWork
from chat_backend.domain.entities.message import ChatMessage

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


async def list_messages(
    limit: int,
    before: datetime | None,
    uow: UnitOfWork,
) -> list[ChatMessage]:
    """Chat history page, newest first."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    return await uow.messages.list_recent(limit=limit, before=before)
