from __future__ import annotations

from fastapi import APIRouter

from chat_backend.api.deps import UoWDep
from chat_backend.api.schemas.user import UserListResponse, UserResponse
from chat_backend.services import user_service

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/users", response_model=UserListResponse)
async def list_users(uow: UoWDep) -> UserListResponse:
    users = await user_service.list_users(uow)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in users])
