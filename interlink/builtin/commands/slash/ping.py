"""/ping: gateway latency and uptime."""

import math

import discord

from interlink.handler_types import CommandData
from interlink.responses import format_uptime

data = CommandData(name="ping", description="Show ping and uptime")


def format_latency(latency: float) -> str:
    # latency is nan until the first heartbeat ack
    if latency is None or math.isnan(latency):
        return "n/a"
    return f"{round(latency * 1000)}ms"


async def execute(interaction: discord.Interaction) -> None:
    client = interaction.client
    embed = discord.Embed(
        title="Ping",
        description=(
            f"**Ping:** {format_latency(client.latency)}\n"
            f"**Uptime:** {format_uptime(getattr(client, 'uptime', 0))}"
        ),
    )
    if client.user is not None:
        embed.set_thumbnail(url=client.user.display_avatar.url)
    await interaction.response.send_message(embed=embed)
