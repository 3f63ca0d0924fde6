from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.domain.entities.message import ChatMessage
from chat_backend.infrastructure.db.mappers import message as mapper
from chat_backend.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_recent(
        self,
        *,
        limit: int = 20,
        before: datetime | None = None,
    ) -> list[ChatMessage]:
        stmt = (
            select(MessageModel)
            .order_by(MessageModel.timestamp.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        if before is not None:
            stmt = stmt.where(MessageModel.timestamp < before)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, message: ChatMessage) -> ChatMessage:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)
