from __future__ import annotations

from typing import Protocol

from chat_backend.application.dto.principal import Principal


class TokenIssuer(Protocol):
    def sign(self, user_id: str) -> str: ...

    async def verify(self, token: str) -> Principal:
        """Return the token's principal or raise AuthError."""
        ...
