from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender: str = Field(serialization_alias="from")
    recipient: str | None = Field(default=None, serialization_alias="to")
    content: str
    timestamp: datetime


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
