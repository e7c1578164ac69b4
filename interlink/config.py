"""Configuration management for interlink.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Property getters provide safe access with
sensible defaults for the Discord connection, handler discovery,
text-command prefix, and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
import re
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError

logger = structlog.get_logger("interlink.bot")

# Default intents: guilds, guild messages, members, message content, DMs
DEFAULT_INTENTS = [
    "guilds",
    "guild_messages",
    "members",
    "message_content",
    "dm_messages",
]


class Config:
    """Central configuration manager for interlink.

    Loads settings.yaml and .env from the config directory. Provides
    typed property accessors for every configurable subsystem. No
    mutation after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = config_dir

        # .env first, then .env.local overrides
        for env_name in (".env", ".env.local"):
            env_file = config_dir / env_name
            if env_file.exists():
                load_dotenv(env_file, override=env_name == ".env.local")

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                data = yaml.safe_load(f)
            if data is not None and not isinstance(data, dict):
                logger.error("config_invalid_file", file=filename, type=type(data).__name__)
                return {}
            return data or {}
        return {}

    def validate(self):
        """Validate critical settings at startup.

        Logs warnings/errors but does not raise; use require_token()
        for the one fatal check.
        """
        if not self.discord_token:
            logger.error("discord_token_missing", msg="Set DISCORD_TOKEN in config/.env")

        client_id = self.discord_client_id
        if client_id and not client_id.isdigit():
            logger.error("discord_client_id_invalid", value=client_id)

        prefix = self.text_command_prefix
        if not prefix or re.search(r"\s", prefix):
            logger.warning("text_command_prefix_invalid", prefix=prefix)

        for section in ("handlers", "logging"):
            value = self.settings.get(section)
            if value is not None and not isinstance(value, dict):
                logger.error("config_invalid_value", key=section, type=type(value).__name__)

        if not self.handlers_base_dir.is_dir():
            logger.warning("handlers_base_dir_missing", path=str(self.handlers_base_dir))

        for name in self.intents:
            if not isinstance(name, str):
                logger.error("config_invalid_value", key="intents", value=name)

    def _section(self, name: str) -> dict:
        """A nested settings block, or {} when absent, empty or not a mapping."""
        value = self.settings.get(name)
        return value if isinstance(value, dict) else {}

    def require_token(self) -> str:
        """Return the bot token or raise ConfigError if it is not set."""
        token = self.discord_token
        if not token:
            raise ConfigError("Discord bot token not found", key="DISCORD_TOKEN")
        return token

    @property
    def discord_token(self) -> str:
        """Bot token. Env var DISCORD_TOKEN only (never stored in YAML)."""
        return os.environ.get("DISCORD_TOKEN", "")

    @property
    def discord_client_id(self) -> str:
        """Application id used by the command sync. Env var DISCORD_CLIENT_ID."""
        return os.environ.get("DISCORD_CLIENT_ID", "")

    @property
    def discord_guild_id(self) -> str:
        """Optional guild id. When set, command sync is guild-scoped."""
        return os.environ.get("DISCORD_GUILD_ID") or str(self.settings.get("guild_id", "") or "")

    @property
    def environment(self) -> str:
        """Deployment environment name (default "production")."""
        return os.environ.get("INTERLINK_ENV") or self.settings.get("environment", "production")

    @property
    def text_command_prefix(self) -> str:
        """Prefix for message-triggered text commands (default "!")."""
        return self.settings.get("text_command_prefix", "!")

    @property
    def presence(self) -> Optional[dict]:
        """Activity shown under the bot's name, e.g. {"type": "watching", "name": "..."}."""
        configured = self.settings.get("presence")
        if configured is not None and not isinstance(configured, dict):
            logger.error("presence_invalid_type", type=type(configured).__name__)
            return None
        return configured

    @property
    def support_url(self) -> Optional[str]:
        """Support server invite linked from error replies (optional)."""
        return self.settings.get("support_url") or None

    @property
    def handlers_base_dir(self) -> Path:
        """Base handler tree. Defaults to the package's builtin handlers."""
        configured = self._section("handlers").get("base_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent / "builtin"

    @property
    def handlers_extensions_dir(self) -> Path:
        """Root whose immediate subdirectories each contribute handlers."""
        configured = self._section("handlers").get("extensions_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "extensions"

    @property
    def strict_duplicates(self) -> bool:
        """Reject duplicate registry keys instead of last-write-wins (default False)."""
        return bool(self._section("handlers").get("strict_duplicates", False))

    @property
    def intents(self) -> List[str]:
        """Gateway intent flag names (discord.Intents attribute names)."""
        configured = self.settings.get("intents")
        if configured is None:
            return list(DEFAULT_INTENTS)
        if not isinstance(configured, list):
            logger.error("intents_invalid_type", type=type(configured).__name__)
            return list(DEFAULT_INTENTS)
        return configured

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        return self._section("logging").get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"dispatch": "DEBUG"}."""
        levels = self._section("logging").get("subsystem_levels")
        return levels if isinstance(levels, dict) else {}

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        return self._section("logging").get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        return self._section("logging").get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
