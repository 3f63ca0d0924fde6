"""WebSocket chat frame models."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from chat_backend.application.exceptions import DecodeError
from chat_backend.domain.value_objects.enums import OutboundType


class InboundEvent(BaseModel):
    """Client → Server.

    Only ``content`` is required. Unknown fields are ignored and optional
    fields with a bad value fall back to their defaults.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = OutboundType.MESSAGE
    content: str
    timestamp: datetime | None = None
    user_id: str | None = Field(default=None, alias="userId")

    @field_validator("type", "timestamp", "user_id", mode="wrap")
    @classmethod
    def _default_when_invalid(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except PydanticValidationError:
            return cls.model_fields[info.field_name].default

    @classmethod
    def decode(cls, raw: str) -> InboundEvent:
        """Parse a JSON frame. Raises DecodeError unless it is an object with string ``content``."""
        try:
            return cls.model_validate_json(raw)
        except PydanticValidationError as exc:
            raise DecodeError(f"not a chat event: {exc.error_count()} error(s)") from exc


class OutboundMessage(BaseModel):
    """Server → Client. ``type`` is always present on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    type: OutboundType
    content: str
    timestamp: datetime
    user_id: str | None = Field(default=None, alias="userId")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
