"""FastAPI dependency injection helpers."""
from __future__ import annotations

from datetime import timedelta
from typing import Annotated, AsyncIterator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chat_backend.application.dto.principal import Principal
from chat_backend.application.exceptions import AuthError
from chat_backend.application.ports.auth import TokenIssuer
from chat_backend.config import settings
from chat_backend.infrastructure.auth.hs256_issuer import HS256TokenIssuer
from chat_backend.infrastructure.db.uow import SqlAlchemyUoW, uow_scope

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with uow_scope() as uow:
        yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


_token_issuer: TokenIssuer | None = None


def get_token_issuer() -> TokenIssuer:
    global _token_issuer  # noqa: PLW0603
    if _token_issuer is None:
        _token_issuer = HS256TokenIssuer(
            settings.JWT_SECRET,
            settings.JWT_ALGORITHM,
            ttl=timedelta(days=settings.JWT_EXPIRES_DAYS),
        )
    return _token_issuer


TokenIssuerDep = Annotated[TokenIssuer, Depends(get_token_issuer)]


async def get_current_principal(
    issuer: TokenIssuerDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Principal:
    if credentials is None:
        raise AuthError("No token provided")
    return await issuer.verify(credentials.credentials)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
