from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

import pytest

from chat_backend.application.exceptions import StorageError
from chat_backend.domain.value_objects.enums import ConnectionState, OutboundType
from chat_backend.infrastructure.realtime.broadcast import BroadcastEngine
from tests.conftest import FakeTransport


@pytest.mark.asyncio
async def test_plain_text_is_persisted_and_broadcast(registry, store, engine):
    sender_t = FakeTransport()
    other_t = FakeTransport()
    sender = registry.register(sender_t)
    registry.register(other_t)

    result = await engine.handle_inbound(sender, "hello")
    saved = await result.persisted

    assert saved.sender == "anonymous"
    assert saved.content == "hello"
    assert store.saved == [saved]
    assert result.delivered == 2
    for transport in (sender_t, other_t):
        (frame,) = transport.sent_json()
        assert frame["type"] == "broadcast"
        assert frame["content"] == "hello"
        assert "userId" not in frame


@pytest.mark.asyncio
async def test_malformed_json_falls_back_to_plain_text(registry, store, engine):
    transport = FakeTransport()
    sender = registry.register(transport)

    result = await engine.handle_inbound(sender, "{bad")
    await result.persisted

    assert store.saved[0].content == "{bad"
    assert transport.sent_json()[0]["content"] == "{bad"


@pytest.mark.asyncio
async def test_structured_event_keeps_user_and_timestamp(registry, store, engine):
    transport = FakeTransport()
    sender = registry.register(transport)
    raw = json.dumps({
        "type": "message",
        "content": "hi all",
        "timestamp": "2025-08-02T17:00:00Z",
        "userId": "alice",
        "extra": "ignored",
    })

    result = await engine.handle_inbound(sender, raw)
    saved = await result.persisted

    assert saved.sender == "alice"
    assert saved.timestamp == datetime(2025, 8, 2, 17, 0, tzinfo=timezone.utc)
    frame = transport.sent_json()[0]
    assert frame["userId"] == "alice"
    # broadcast timestamp is assigned at fan-out time
    assert not frame["timestamp"].startswith("2025-08-02T17:00:00")


@pytest.mark.asyncio
async def test_sender_identity_used_when_event_has_none(registry, store, engine):
    transport = FakeTransport()
    sender = registry.register(transport, user_id="bob")

    result = await engine.handle_inbound(sender, "yo")
    saved = await result.persisted

    assert saved.sender == "bob"
    assert transport.sent_json()[0]["userId"] == "bob"


@pytest.mark.asyncio
async def test_non_chat_types_are_broadcast_but_not_persisted(registry, store, engine):
    transport = FakeTransport()
    sender = registry.register(transport)

    result = await engine.handle_inbound(sender, json.dumps({"type": "typing", "content": "..."}))

    assert result.persisted is None
    assert store.attempts == 0
    assert transport.sent_json()[0]["type"] == "broadcast"


@pytest.mark.asyncio
async def test_persistence_failure_does_not_block_broadcast(registry, store, engine, caplog):
    store.fail = True
    transport = FakeTransport()
    sender = registry.register(transport)

    with caplog.at_level(logging.ERROR):
        result = await engine.handle_inbound(sender, "still delivered")
        with pytest.raises(StorageError):
            await result.persisted

    assert store.attempts == 1
    assert result.delivered == 1
    assert transport.sent_json()[0]["content"] == "still delivered"
    assert "Failed to save message" in caplog.text


@pytest.mark.asyncio
async def test_failed_recipient_does_not_stop_fan_out(registry, engine):
    first = FakeTransport()
    broken = FakeTransport(fail_send=True)
    last = FakeTransport()
    sender = registry.register(first)
    registry.register(broken)
    registry.register(last)

    result = await engine.handle_inbound(sender, "ping")

    assert result.delivered == 2
    assert result.failed == 1
    assert len(first.sent) == 1
    assert len(last.sent) == 1


@pytest.mark.asyncio
async def test_connection_closing_mid_fan_out_is_skipped(registry, engine):
    closer = FakeTransport()
    victim = FakeTransport()
    bystander = FakeTransport()
    sender = registry.register(closer)
    registry.register(victim)
    registry.register(bystander)
    closer.on_send = lambda _data: setattr(victim, "open", False)

    result = await engine.handle_inbound(sender, "bye")

    assert victim.sent == []
    assert len(bystander.sent) == 1
    assert result.delivered == 2


@pytest.mark.asyncio
async def test_undecodable_frame_returns_error_to_sender_only(registry, store, engine):
    sender_t = FakeTransport()
    other_t = FakeTransport()
    sender = registry.register(sender_t)
    registry.register(other_t)

    result = await engine.handle_inbound(sender, b"\xff\xfe")

    assert result is None
    assert store.attempts == 0
    assert other_t.sent == []
    (frame,) = sender_t.sent_json()
    assert frame["type"] == "error"
    assert frame["content"] == "Failed to process message"


@pytest.mark.asyncio
async def test_send_to_user_targets_identified_sessions(registry, engine):
    alice = FakeTransport()
    bob = FakeTransport()
    registry.register(alice, user_id="alice")
    registry.register(bob, user_id="bob")

    sent = await engine.send_to_user("alice", engine.outbound(OutboundType.MESSAGE, "direct"))

    assert sent is True
    assert alice.sent_json()[0]["content"] == "direct"
    assert bob.sent == []
    assert await engine.send_to_user("carol", engine.outbound(OutboundType.MESSAGE, "x")) is False


@pytest.mark.asyncio
async def test_drain_waits_for_pending_writes(registry, store):
    engine = BroadcastEngine(registry, store)
    sender = registry.register(FakeTransport())

    await engine.handle_inbound(sender, "one")
    await engine.handle_inbound(sender, "two")

    assert await engine.drain(timeout=1) == 0
    assert engine.pending_writes == 0
    assert [m.content for m in store.saved] == ["one", "two"]


@pytest.mark.asyncio
async def test_stalled_recipient_is_aborted_without_holding_up_others(registry, store):
    engine = BroadcastEngine(registry, store, send_timeout=0.05)
    sender_t = FakeTransport()
    stalled = FakeTransport(hang_send=True)
    last = FakeTransport()
    sender = registry.register(sender_t)
    stalled_session = registry.register(stalled)
    registry.register(last)

    result = await asyncio.wait_for(engine.handle_inbound(sender, "anyone there"), 1)

    assert result.delivered == 2
    assert result.failed == 1
    assert len(sender_t.sent) == 1
    assert len(last.sent) == 1
    assert stalled.aborted is True
    assert stalled_session.state == ConnectionState.CLOSING


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "extra",
    [{"userId": 42}, {"timestamp": "yesterday"}, {"type": None}],
)
async def test_bad_optional_field_keeps_structured_content(registry, store, engine, extra):
    transport = FakeTransport()
    sender = registry.register(transport)
    raw = json.dumps({"type": "message", "content": "hi", **extra})

    result = await engine.handle_inbound(sender, raw)
    saved = await result.persisted

    assert saved.content == "hi"
    assert saved.sender == "anonymous"
    frame = transport.sent_json()[0]
    assert frame["content"] == "hi"
    assert "userId" not in frame


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ['["hi"]', '{"content": 5}', '{"text": "hi"}'])
async def test_json_without_string_content_is_plain_text(registry, store, engine, raw):
    transport = FakeTransport()
    sender = registry.register(transport)

    result = await engine.handle_inbound(sender, raw)
    await result.persisted

    assert store.saved[0].content == raw
    assert transport.sent_json()[0]["content"] == raw


@pytest.mark.asyncio
async def test_long_user_id_is_persisted_intact(registry, store, engine):
    long_id = "x" * 80
    sender = registry.register(FakeTransport())

    result = await engine.handle_inbound(sender, json.dumps({"content": "hey", "userId": long_id}))
    saved = await result.persisted

    assert saved.sender == long_id
