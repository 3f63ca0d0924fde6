"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Callable

import pytest

from chat_backend.application.exceptions import (
    ConflictError,
    DeliveryError,
    StorageError,
    TransportError,
)
from chat_backend.domain.entities.message import ChatMessage
from chat_backend.domain.entities.user import User
from chat_backend.infrastructure.auth.hs256_issuer import HS256TokenIssuer
from chat_backend.infrastructure.realtime.broadcast import BroadcastEngine
from chat_backend.infrastructure.realtime.registry import ConnectionRegistry

TEST_SECRET = "test-secret-that-is-long-enough-for-hs256"
T0 = datetime(2025, 8, 2, 17, 0, tzinfo=timezone.utc)


@dataclass
class FakeClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def make_message(
    *,
    content: str = "hello",
    sender: str = "anonymous",
    timestamp: datetime | None = None,
) -> ChatMessage:
    return ChatMessage(
        id=uuid.uuid4(),
        sender=sender,
        content=content,
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def make_user(user_id: str = "alice", created_at: datetime | None = None) -> User:
    ts = created_at or datetime.now(timezone.utc)
    return User(id=user_id, created_at=ts, updated_at=ts)


@dataclass(eq=False)
class FakeTransport:
    """In-memory stand-in for one WebSocket connection."""

    inbound: list[str | bytes] = field(default_factory=list)
    sent: list[str] = field(default_factory=list)
    open: bool = True
    aborted: bool = False
    closed_with: tuple[int, str] | None = None
    pings: int = 0
    fail_send: bool = False
    fail_ping: bool = False
    hang_send: bool = False
    hang_ping: bool = False
    auto_pong: bool = False
    read_error: Exception | None = None
    on_send: Callable[[str], None] | None = None
    _pong_callbacks: list[Callable[[], None]] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.open

    async def send(self, data: str) -> None:
        if self.fail_send or not self.open:
            raise DeliveryError("connection closed")
        if self.hang_send:
            await asyncio.Event().wait()
        self.sent.append(data)
        if self.on_send is not None:
            self.on_send(data)

    async def ping(self, on_pong: Callable[[], None]) -> None:
        if self.fail_ping:
            raise TransportError("ping failed")
        if self.hang_ping:
            await asyncio.Event().wait()
        self.pings += 1
        if self.auto_pong:
            on_pong()
        else:
            self._pong_callbacks.append(on_pong)

    def pong(self) -> None:
        callbacks, self._pong_callbacks = self._pong_callbacks, []
        for callback in callbacks:
            callback()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.open = False
        self.closed_with = (code, reason)

    def abort(self) -> None:
        self.open = False
        self.aborted = True

    async def frames(self) -> AsyncIterator[str | bytes]:
        for raw in self.inbound:
            yield raw
        if self.read_error is not None:
            raise self.read_error

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]


@dataclass
class FakeMessageStore:
    saved: list[ChatMessage] = field(default_factory=list)
    fail: bool = False
    attempts: int = 0

    async def save(self, message: ChatMessage) -> ChatMessage:
        self.attempts += 1
        if self.fail:
            raise StorageError("database unavailable")
        self.saved.append(message)
        return message

    async def list_recent(self, limit: int = 20, before: datetime | None = None) -> list[ChatMessage]:
        items = sorted(self.saved, key=lambda m: m.timestamp, reverse=True)
        if before is not None:
            items = [m for m in items if m.timestamp < before]
        return items[:limit]


@dataclass
class FakeUserReader:
    _store: dict[str, User] = field(default_factory=dict)

    async def exists(self, user_id: str) -> bool:
        return user_id in self._store

    async def find_by_id(self, user_id: str) -> User | None:
        return self._store.get(user_id)

    async def list_all(self) -> list[User]:
        return sorted(self._store.values(), key=lambda u: u.created_at, reverse=True)


@dataclass
class FakeUserWriter:
    _reader: FakeUserReader

    async def create(self, user: User) -> User:
        if user.id in self._reader._store:
            raise ConflictError(f"User with ID '{user.id}' already exists")
        self._reader._store[user.id] = user
        return user


@dataclass
class FakeMessageReader:
    _messages: list[ChatMessage] = field(default_factory=list)

    async def list_recent(self, *, limit: int = 20, before: datetime | None = None) -> list[ChatMessage]:
        items = sorted(self._messages, key=lambda m: m.timestamp, reverse=True)
        if before is not None:
            items = [m for m in items if m.timestamp < before]
        return items[:limit]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail_with: Exception | None = None

    async def add(self, message: ChatMessage) -> ChatMessage:
        if self.fail_with is not None:
            raise self.fail_with
        self._reader._messages.append(message)
        return message


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    users: FakeUserReader = field(default_factory=FakeUserReader)
    users_w: FakeUserWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False
    _commits: int = 0

    def __post_init__(self) -> None:
        if self.users_w is None:
            self.users_w = FakeUserWriter(self.users)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self._commits += 1

    async def rollback(self) -> None:
        pass


def uow_factory(uow: FakeUoW) -> Callable[[], Any]:
    @asynccontextmanager
    async def _scope() -> AsyncIterator[FakeUoW]:
        yield uow

    return _scope


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def issuer() -> HS256TokenIssuer:
    return HS256TokenIssuer(TEST_SECRET)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def store() -> FakeMessageStore:
    return FakeMessageStore()


@pytest.fixture
def engine(registry: ConnectionRegistry, store: FakeMessageStore) -> BroadcastEngine:
    return BroadcastEngine(registry, store)
