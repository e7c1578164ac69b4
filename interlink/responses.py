"""User-facing response builders.

Error replies are deliberately generic: exception text and tracebacks
go to the logs, never into a message a user can see.
"""

from typing import Any, Dict, Optional

import discord

DEFAULT_ERROR = "An error occurred during the interaction."
ERROR_FOOTER = "Please try again or report the error to the support server."
GUILD_ONLY_NOTICE = "You can only use this command within a server."


def create_error_embed(description: str = DEFAULT_ERROR) -> discord.Embed:
    embed = discord.Embed(
        title="❌ An error occurred",
        description=description,
        colour=discord.Colour.red(),
    )
    embed.set_footer(text=ERROR_FOOTER)
    return embed


def error_message(
    description: str = DEFAULT_ERROR,
    *,
    support_url: Optional[str] = None,
    ephemeral: bool = False,
) -> Dict[str, Any]:
    """Keyword arguments for send_message / followup.send / reply.

    Args:
        description: Generic text shown to the user.
        support_url: Adds a link button to a support server when set.
        ephemeral: Only the invoking user sees the message.
    """
    kwargs: Dict[str, Any] = {"embed": create_error_embed(description)}
    if support_url:
        view = discord.ui.View()
        view.add_item(discord.ui.Button(label="💬 Support server", url=support_url))
        kwargs["view"] = view
    if ephemeral:
        kwargs["ephemeral"] = True
    return kwargs


def format_uptime(seconds: float) -> str:
    """Render an uptime in seconds as e.g. ``2d 3h 4m`` or ``5m 6s``."""
    if not seconds or seconds < 0:
        return "0s"

    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
