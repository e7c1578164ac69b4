"""Administrative sync of slash-command metadata with Discord.

Collects ``data`` from every slash command in the handler trees and
PUTs the list to the application's command endpoint, replacing what
Discord has. ``--delete`` PUTs an empty list. When DISCORD_GUILD_ID is
set the guild-scoped endpoint is used (changes appear instantly);
otherwise commands are global.

This runs once, out of band; it is not part of the dispatch path.
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from .exceptions import CommandSyncError, ConfigError
from .handler_types import CapabilityKind
from .loader import HandlerLoader
from .registry import Registrar, Registry

logger = structlog.get_logger("interlink.sync")

API_BASE = "https://discord.com/api/v10"


def command_payload(data: Any) -> Dict[str, Any]:
    """JSON body for one command's metadata."""
    if hasattr(data, "to_payload"):
        return data.to_payload()
    if isinstance(data, Mapping):
        return dict(data)
    if hasattr(data, "to_dict"):
        return data.to_dict()
    raise TypeError(f"Cannot serialize command data of type {type(data).__name__}")


def collect_commands(loader: HandlerLoader) -> List[Dict[str, Any]]:
    """Load slash commands only and return their payloads in discovery order."""
    registry = Registry()
    registrar = Registrar(registry, strict=loader.strict)
    for path in loader.walker.discover(CapabilityKind.COMMAND):
        loader.load_file(registrar, CapabilityKind.COMMAND, path)

    payloads = []
    for command in registry.commands.values():
        try:
            payloads.append(command_payload(command.data))
        except TypeError as e:
            logger.warning("command_payload_skipped", command=command.name, error=str(e))
            continue
        logger.info("command_collected", command=command.name)
    return payloads


class CommandSync:
    """Thin client for the application-commands bulk-overwrite endpoint.

    Args:
        token: Bot token.
        application_id: Application (client) id.
        guild_id: Scope the sync to one guild when set.
        api_base: Discord API base URL.
    """

    def __init__(
        self,
        token: str,
        application_id: str,
        guild_id: Optional[str] = None,
        api_base: str = API_BASE,
    ):
        self.token = token
        self.application_id = application_id
        self.guild_id = guild_id
        self.api_base = api_base.rstrip("/")

    @property
    def url(self) -> str:
        if self.guild_id:
            return (
                f"{self.api_base}/applications/{self.application_id}"
                f"/guilds/{self.guild_id}/commands"
            )
        return f"{self.api_base}/applications/{self.application_id}/commands"

    async def put(self, session: aiohttp.ClientSession, commands: List[Dict[str, Any]]) -> list:
        """Replace the registered commands with ``commands``.

        Raises:
            CommandSyncError: Non-200 response.
        """
        headers = {"Authorization": f"Bot {self.token}"}
        async with session.put(
            self.url,
            json=commands,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=30),
        ) as resp:
            if resp.status != 200:
                body = await resp.text()
                raise CommandSyncError(
                    "Discord rejected command sync",
                    status=resp.status,
                    body=body[:200],
                )
            return await resp.json()


async def sync_main(delete: bool = False, config=None) -> int:
    """Register (or delete) all slash commands. Returns a process exit code."""
    from .config import get_config

    config = config or get_config()
    try:
        token = config.require_token()
        if not config.discord_client_id:
            raise ConfigError("Discord client id not found", key="DISCORD_CLIENT_ID")
    except ConfigError as e:
        logger.error("command_sync_config_missing", error=str(e))
        return 1

    commands = [] if delete else collect_commands(HandlerLoader.from_config(config))
    sync = CommandSync(token, config.discord_client_id, config.discord_guild_id or None)

    logger.info(
        "command_sync_started",
        commands=len(commands),
        scope="guild" if sync.guild_id else "global",
    )
    try:
        async with aiohttp.ClientSession() as session:
            result = await sync.put(session, commands)
    except (CommandSyncError, aiohttp.ClientError) as e:
        logger.error("command_sync_failed", error=str(e), error_type=type(e).__name__)
        return 1

    logger.info("command_sync_complete", registered=len(result))
    return 0


def run():
    """Entry point for the ``interlink-sync`` console script."""
    import argparse
    import asyncio
    import sys

    from .logging_config import setup_logging

    parser = argparse.ArgumentParser(description="Sync slash commands with Discord")
    parser.add_argument(
        "--delete",
        action="store_true",
        help="Remove every registered command instead of registering",
    )
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(sync_main(delete=args.delete)))


if __name__ == "__main__":
    run()
