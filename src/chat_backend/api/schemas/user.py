from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UserIdRequest(BaseModel):
    # Left loose so the service can answer with its own validation message.
    id: Any = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class UserListResponse(BaseModel):
    users: list[UserResponse]
