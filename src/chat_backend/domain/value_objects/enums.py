from __future__ import annotations

from enum import StrEnum


class ConnectionState(StrEnum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class OutboundType(StrEnum):
    WELCOME = "welcome"
    MESSAGE = "message"
    BROADCAST = "broadcast"
    ERROR = "error"


# Inbound event types that are written to chat history.
PERSISTED_TYPES = frozenset({OutboundType.MESSAGE, OutboundType.BROADCAST})
