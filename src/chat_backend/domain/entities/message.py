from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

ANONYMOUS_SENDER = "anonymous"


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """A persisted chat history record. Append-only, never mutated."""

    id: UUID
    sender: str
    content: str
    timestamp: datetime
    recipient: str | None = None
