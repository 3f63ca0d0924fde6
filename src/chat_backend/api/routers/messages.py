from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query

from chat_backend.api.deps import CurrentPrincipal, UoWDep
from chat_backend.api.schemas.message import MessageListResponse, MessageResponse
from chat_backend.services import message_service

router = APIRouter(prefix="/api", tags=["messages"])


@router.get("/messages", response_model=MessageListResponse)
async def list_messages(
    _principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(message_service.DEFAULT_PAGE_SIZE, ge=1, le=message_service.MAX_PAGE_SIZE),
    before: datetime | None = Query(None),
) -> MessageListResponse:
    messages = await message_service.list_messages(limit, before, uow)
    return MessageListResponse(messages=[MessageResponse.model_validate(m) for m in messages])
