"""Tests for the event bus."""

import pytest

from datamanager.shared.core.event_bus import ANY_TOPIC, EventBus


def test_sync_listener_runs_inline():
    bus = EventBus()
    received = []

    bus.subscribe("topic", received.append)
    bus.subscribe("topic", received.append)
    bus.emit("topic", {"n": 1})

    assert received == [{"n": 1}]


def test_unsubscribe_callable():
    bus = EventBus()
    received = []

    unsubscribe = bus.subscribe("topic", received.append)
    unsubscribe()
    unsubscribe()
    bus.emit("topic", {})

    assert received == []


def test_wildcard_listener_sees_every_topic():
    bus = EventBus()
    received = []

    bus.subscribe(ANY_TOPIC, received.append)
    bus.emit("a", {"n": 1})
    bus.emit("b", {"n": 2})

    assert received == [{"n": 1}, {"n": 2}]


def test_failing_listener_does_not_stop_others():
    bus = EventBus()
    received = []

    def broken(payload):
        raise RuntimeError("boom")

    bus.subscribe("topic", broken)
    bus.subscribe("topic", received.append)
    bus.emit("topic", {"ok": True})

    assert received == [{"ok": True}]


def test_coroutine_listener_without_loop_is_dropped():
    bus = EventBus()
    called = []

    async def handler(payload):
        called.append(payload)

    bus.subscribe("topic", handler)
    bus.emit("topic", {})

    assert called == []
    assert bus._pending == set()


@pytest.mark.asyncio
async def test_publish_awaits_coroutine_listeners():
    bus = EventBus()
    received = []

    async def handler(payload):
        received.append(payload)

    async def broken(payload):
        raise RuntimeError("boom")

    bus.subscribe("topic", broken)
    bus.subscribe("topic", handler)
    await bus.publish("topic", {"n": 1})

    assert received == [{"n": 1}]


@pytest.mark.asyncio
async def test_wait_until_idle_follows_chained_emits():
    bus = EventBus()
    received = []

    async def first(payload):
        bus.emit("second", {"from": "first"})

    async def second(payload):
        received.append(payload)

    bus.subscribe("first", first)
    bus.subscribe("second", second)
    bus.emit("first", {})

    assert await bus.wait_until_idle(timeout=1.0)
    assert received == [{"from": "first"}]


def test_clear_removes_listeners():
    bus = EventBus()
    received = []

    bus.subscribe("topic", received.append)
    bus.clear()
    bus.emit("topic", {})

    assert received == []
