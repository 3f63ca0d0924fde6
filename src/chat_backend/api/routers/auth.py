from __future__ import annotations

import logging

from fastapi import APIRouter

from chat_backend.api.deps import TokenIssuerDep, UoWDep
from chat_backend.api.schemas.common import ApiResponse
from chat_backend.api.schemas.user import UserIdRequest
from chat_backend.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=ApiResponse, status_code=201)
async def register(body: UserIdRequest, uow: UoWDep, issuer: TokenIssuerDep) -> ApiResponse:
    logger.info("Register request: id=%r", body.id)
    result = await user_service.register(body.id, uow, issuer)
    return ApiResponse(message=result.message, token=result.token)


@router.post("/login", response_model=ApiResponse)
async def login(body: UserIdRequest, uow: UoWDep, issuer: TokenIssuerDep) -> ApiResponse:
    logger.info("Login request: id=%r", body.id)
    result = await user_service.login(body.id, uow, issuer)
    return ApiResponse(message=result.message, token=result.token)
