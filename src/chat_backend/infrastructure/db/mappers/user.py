from __future__ import annotations

from chat_backend.domain.entities.user import User
from chat_backend.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: User) -> UserModel:
    return UserModel(
        id=entity.id,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
