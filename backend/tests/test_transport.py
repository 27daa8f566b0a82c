"""
Tests for the feed hub transport client against an in-process fake hub.

Run: pytest backend/tests/test_transport.py -v
"""
from __future__ import annotations

import asyncio
import json
from typing import Callable

import pytest
from prometheus_client import REGISTRY

from shared.models.enums import ConnectionStatus, RelayEventType

from relay.events import RelayEvent
from relay.messages import build_heartbeat
from relay.transport import TransportClient

from conftest import FakeHub


async def _eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


async def _next_event(events: asyncio.Queue[RelayEvent], event_type: RelayEventType) -> RelayEvent:
    while True:
        event = await asyncio.wait_for(events.get(), timeout=1.0)
        if event.type == event_type:
            return event


def _client(hub: FakeHub, events: asyncio.Queue[RelayEvent], epoch: int = 1, sent_count: int = 0) -> TransportClient:
    return TransportClient(
        url="ws://hub.test/feed",
        events=events,
        heartbeat_factory=lambda: build_heartbeat("dust2", "/matches", 0),
        epoch=epoch,
        reconnect_delay_s=0.01,
        sent_count=sent_count,
        connect_factory=hub.connect,
    )


@pytest.mark.asyncio
async def test_send_while_disconnected_returns_false(hub: FakeHub) -> None:
    client = _client(hub, asyncio.Queue())
    assert client.status == ConnectionStatus.DISCONNECTED
    assert await client.send(build_heartbeat("dust2", "/", 0)) is False
    assert client.sent_count == 0


@pytest.mark.asyncio
async def test_open_sends_heartbeat_then_posts_opened(hub: FakeHub) -> None:
    events: asyncio.Queue[RelayEvent] = asyncio.Queue()
    client = _client(hub, events, epoch=3)
    client.connect()
    try:
        event = await _next_event(events, RelayEventType.OPENED)
        assert event.epoch == 3
        assert client.is_open
        assert client.sent_count == 1
        first = json.loads(hub.sockets[0].sent[0])
        assert first["type"] == "heartbeat"
        assert first["payload"]["page"] == "/matches"
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_send_while_connected_counts(hub: FakeHub) -> None:
    events: asyncio.Queue[RelayEvent] = asyncio.Queue()
    client = _client(hub, events, sent_count=10)
    client.connect()
    try:
        await _next_event(events, RelayEventType.OPENED)
        assert await client.send(build_heartbeat("dust2", "/", 2)) is True
        assert client.sent_count == 12
        assert len(hub.sockets[0].sent) == 2
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_connect_is_noop_while_active(hub: FakeHub) -> None:
    events: asyncio.Queue[RelayEvent] = asyncio.Queue()
    client = _client(hub, events)
    client.connect()
    client.connect()
    try:
        await _next_event(events, RelayEventType.OPENED)
        client.connect()
        await asyncio.sleep(0.02)
        assert len(hub.sockets) == 1
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_close_schedules_exactly_one_reconnect(hub: FakeHub) -> None:
    events: asyncio.Queue[RelayEvent] = asyncio.Queue()
    client = _client(hub, events)
    client.connect()
    try:
        await _next_event(events, RelayEventType.OPENED)
        hub.sockets[0].drop(1006)

        closed = await _next_event(events, RelayEventType.CLOSED)
        assert closed.detail["code"] == 1006
        assert client.status == ConnectionStatus.DISCONNECTED
        assert client.reconnect_pending

        pending = client._reconnect_task
        client._schedule_reconnect()
        assert client._reconnect_task is pending

        await _next_event(events, RelayEventType.OPENED)
        assert len(hub.sockets) == 2
        assert client.sent_count == 2
        assert not client.reconnect_pending
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_failed_open_is_retried(hub: FakeHub) -> None:
    hub.refuse = 2
    events: asyncio.Queue[RelayEvent] = asyncio.Queue()
    client = _client(hub, events)
    client.connect()
    try:
        closed = await _next_event(events, RelayEventType.CLOSED)
        assert closed.detail["code"] is None
        await _next_event(events, RelayEventType.OPENED)
        assert hub.refuse == 0
        assert len(hub.sockets) == 1
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_shutdown_does_not_reconnect(hub: FakeHub) -> None:
    events: asyncio.Queue[RelayEvent] = asyncio.Queue()
    client = _client(hub, events)
    client.connect()
    await _next_event(events, RelayEventType.OPENED)

    await client.close()
    assert client.status == ConnectionStatus.DISCONNECTED
    assert not client.reconnect_pending
    assert hub.sockets[0].closed

    client.connect()
    await asyncio.sleep(0.05)
    assert len(hub.sockets) == 1
    assert all(e.type != RelayEventType.CLOSED for e in _drain(events))


@pytest.mark.asyncio
async def test_hub_rejection_is_counted(hub: FakeHub) -> None:
    events: asyncio.Queue[RelayEvent] = asyncio.Queue()
    client = _client(hub, events)
    client.connect()
    try:
        await _next_event(events, RelayEventType.OPENED)
        before = REGISTRY.get_sample_value("lr_hub_acks_total", {"ok": "false"}) or 0.0
        hub.sockets[0].push(json.dumps({"ok": False, "note": "unknown source"}))
        await _eventually(
            lambda: (REGISTRY.get_sample_value("lr_hub_acks_total", {"ok": "false"}) or 0.0) == before + 1
        )
        assert client.is_open
    finally:
        await client.close()


def _drain(events: asyncio.Queue[RelayEvent]) -> list[RelayEvent]:
    drained: list[RelayEvent] = []
    while not events.empty():
        drained.append(events.get_nowait())
    return drained
