from __future__ import annotations

from chat_backend.domain.entities.message import ChatMessage
from chat_backend.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> ChatMessage:
    return ChatMessage(
        id=model.id,
        sender=model.sender,
        recipient=model.recipient,
        content=model.content,
        timestamp=model.timestamp,
    )


def entity_to_model(entity: ChatMessage) -> MessageModel:
    return MessageModel(
        id=entity.id,
        sender=entity.sender,
        recipient=entity.recipient,
        content=entity.content,
        timestamp=entity.timestamp,
    )
