"""Password-less registration and login."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from chat_backend.application.exceptions import ConflictError, NotFoundError, ValidationError
from chat_backend.application.ports.auth import TokenIssuer
from chat_backend.application.ports.clock import Clock, SystemClock
from chat_backend.application.uow import UnitOfWork
from chat_backend.domain.entities.user import User

logger = logging.getLogger(__name__)

MAX_USER_ID_LENGTH = 50


@dataclass(frozen=True, slots=True)
class AuthResult:
    message: str
    token: str
    user: User


def normalize_user_id(raw: object) -> str:
    """Trim and validate a user id. Raises ValidationError."""
    if not isinstance(raw, str) or not raw:
        raise ValidationError("Valid ID is required")
    user_id = raw.strip()
    if not user_id:
        raise ValidationError("ID cannot be empty")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise ValidationError(f"ID cannot exceed {MAX_USER_ID_LENGTH} characters")
    return user_id


async def register(
    raw_id: object,
    uow: UnitOfWork,
    issuer: TokenIssuer,
    clock: Clock | None = None,
) -> AuthResult:
    user_id = normalize_user_id(raw_id)
    if await uow.users.exists(user_id):
        raise ConflictError("Account already registered")

    now = (clock or SystemClock()).now()
    user = await uow.users_w.create(User(id=user_id, created_at=now, updated_at=now))
    await uow.commit()

    logger.info("User registered: %s", user_id)
    return AuthResult(message="Registration successful", token=issuer.sign(user_id), user=user)


async def login(raw_id: object, uow: UnitOfWork, issuer: TokenIssuer) -> AuthResult:
    user_id = normalize_user_id(raw_id)
    user = await uow.users.find_by_id(user_id)
    if user is None:
        raise NotFoundError("Account not found")

    logger.info("User logged in: %s", user_id)
    return AuthResult(message="Login successful", token=issuer.sign(user_id), user=user)


async def list_users(uow: UnitOfWork) -> list[User]:
    return await uow.users.list_all()
