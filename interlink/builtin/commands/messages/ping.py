"""!ping text command."""

import discord

from interlink.handler_types import MessageTrigger


async def _pong(message: discord.Message) -> None:
    await message.reply("Pong!")


handler = MessageTrigger(name="ping", event="message", execute=_pong)
