"""Tests for the in-process event bus."""

import discord
import pytest
from structlog.testing import capture_logs

from interlink.app import InterlinkClient
from interlink.event_bus import EventBus


@pytest.mark.asyncio
async def test_on_receives_every_emit_with_raw_args():
    bus = EventBus()
    seen = []
    bus.on("member_join", lambda *args: seen.append(args))

    assert bus.emit("member_join", "a", 1) == 1
    bus.emit("member_join", "b", 2)
    await bus.drain()

    assert seen == [("a", 1), ("b", 2)]


@pytest.mark.asyncio
async def test_once_fires_a_single_time():
    bus = EventBus()
    seen = []

    async def on_ready():
        seen.append("ready")

    bus.once("ready", on_ready)
    bus.emit("ready")
    bus.emit("ready")
    await bus.drain()

    assert seen == ["ready"]
    assert bus.listeners("ready") == []


@pytest.mark.asyncio
async def test_off_removes_binding():
    bus = EventBus()
    seen = []
    binding = bus.on("x", lambda: seen.append(1))
    bus.off(binding)
    bus.off(binding)

    assert bus.emit("x") == 0
    await bus.drain()
    assert seen == []


@pytest.mark.asyncio
async def test_failing_listener_is_logged_and_others_still_run():
    bus = EventBus()
    seen = []

    async def broken():
        raise RuntimeError("listener broke")

    bus.on("tick", broken)
    bus.on("tick", lambda: seen.append("ok"))

    with capture_logs() as logs:
        bus.emit("tick")
        await bus.drain()

    assert seen == ["ok"]
    failures = [e for e in logs if e["event"] == "listener_task_failed"]
    assert len(failures) == 1
    assert failures[0]["error_type"] == "RuntimeError"


@pytest.mark.asyncio
async def test_client_dispatch_is_mirrored_onto_bus():
    bus = EventBus()
    seen = []
    bus.on("custom_signal", lambda *args: seen.append(args))

    client = InterlinkClient(bus, intents=discord.Intents.none())
    client.dispatch("custom_signal", "payload", 7)
    await bus.drain()

    assert seen == [("payload", 7)]
    assert client.uptime >= 0
