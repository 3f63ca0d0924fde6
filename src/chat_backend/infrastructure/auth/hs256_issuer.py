from __future__ import annotations

from datetime import timedelta

import jwt

from chat_backend.application.dto.principal import Principal
from chat_backend.application.exceptions import AuthError
from chat_backend.application.ports.clock import Clock, SystemClock

DEFAULT_TTL = timedelta(days=7)


class HS256TokenIssuer:
    """Sign and verify session tokens with a shared HS256 secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock | None = None,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock or SystemClock()

    def sign(self, user_id: str) -> str:
        now = self._clock.now()
        payload = {"userId": user_id, "iat": now, "exp": now + self._ttl}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.InvalidTokenError as exc:
            raise AuthError("Invalid or expired token") from exc
        user_id = payload.get("userId")
        if not isinstance(user_id, str) or not user_id:
            raise AuthError("Invalid or expired token")
        return Principal(user_id=user_id)
