"""MessageStore adapter over the unit of work."""
from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from chat_backend.application.exceptions import StorageError
from chat_backend.application.uow import UnitOfWork
from chat_backend.domain.entities.message import ChatMessage

logger = logging.getLogger(__name__)

UowFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


class UowMessageStore:
    """Each call runs in its own unit of work, so interleaved saves never share a session."""

    def __init__(self, uow_factory: UowFactory) -> None:
        self._uow_factory = uow_factory

    async def save(self, message: ChatMessage) -> ChatMessage:
        try:
            async with self._uow_factory() as uow:
                saved = await uow.messages_w.add(message)
                await uow.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"Failed to save message {message.id}: {exc}") from exc
        logger.debug("Message %s saved (from=%s)", saved.id, saved.sender)
        return saved

    async def list_recent(
        self,
        limit: int = 20,
        before: datetime | None = None,
    ) -> list[ChatMessage]:
        try:
            async with self._uow_factory() as uow:
                return await uow.messages.list_recent(limit=limit, before=before)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"Failed to read messages: {exc}") from exc
