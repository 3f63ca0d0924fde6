from __future__ import annotations

from typing import Protocol

from chat_backend.domain.entities.user import User


class UserReader(Protocol):
    async def exists(self, user_id: str) -> bool: ...

    async def find_by_id(self, user_id: str) -> User | None: ...

    async def list_all(self) -> list[User]: ...


class UserWriter(Protocol):
    async def create(self, user: User) -> User:
        """Insert user. Raises ConflictError if the id is taken."""
        ...
