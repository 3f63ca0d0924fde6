from __future__ import annotations

from pydantic import BaseModel


class ApiResponse(BaseModel):
    message: str
    token: str | None = None
