"""Tests for the bundled handlers and response helpers."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

import interlink
from interlink.handler_types import CapabilityKind, MessageTrigger
from interlink.module_loader import import_uncached, load_candidate
from interlink.responses import DEFAULT_ERROR, error_message, format_uptime

BUILTIN = Path(interlink.__file__).parent / "builtin"


@pytest.mark.asyncio
async def test_slash_ping_reports_latency_and_uptime():
    module = import_uncached(BUILTIN / "commands/slash/ping.py")
    interaction = MagicMock()
    interaction.client.latency = 0.0421
    interaction.client.uptime = 65
    interaction.client.user = None
    interaction.response.send_message = AsyncMock()

    await module.execute(interaction)

    embed = interaction.response.send_message.await_args.kwargs["embed"]
    assert embed.description == "**Ping:** 42ms\n**Uptime:** 1m 5s"
    assert embed.thumbnail.url is None


def test_format_latency_before_first_heartbeat():
    module = import_uncached(BUILTIN / "commands/slash/ping.py")
    assert module.format_latency(float("nan")) == "n/a"
    assert module.format_latency(0.2) == "200ms"


@pytest.mark.asyncio
async def test_message_ping_replies_pong():
    trigger = load_candidate(BUILTIN / "commands/messages/ping.py", CapabilityKind.MESSAGE_TRIGGER)
    assert isinstance(trigger, MessageTrigger)

    message = MagicMock()
    message.reply = AsyncMock()
    await trigger.execute(message)

    message.reply.assert_awaited_once_with("Pong!")


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0s"),
        (59, "59s"),
        (65, "1m 5s"),
        (3723, "1h 2m 3s"),
        (2 * 86400 + 3 * 3600 + 4 * 60 + 5, "2d 3h 4m"),
    ],
)
def test_format_uptime(seconds, expected):
    assert format_uptime(seconds) == expected


@pytest.mark.asyncio
async def test_error_message_shape():
    # discord.ui.View needs a running loop
    plain = error_message()
    assert set(plain) == {"embed"}
    assert plain["embed"].description == DEFAULT_ERROR

    linked = error_message(support_url="https://discord.gg/example", ephemeral=True)
    assert linked["ephemeral"] is True
    (button,) = linked["view"].children
    assert isinstance(button, discord.ui.Button)
    assert button.url == "https://discord.gg/example"
