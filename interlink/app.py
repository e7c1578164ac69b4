"""Application context for interlink.

Owns the config, event bus, registry reference, dispatcher and the
Discord client. The registry is built by the HandlerLoader and then
only read; ``reload()`` builds a replacement off to the side and swaps
the reference in one synchronous step, rebinding lifecycle events and
message-trigger listeners at the same time.

Key classes:
    InterlinkClient: discord.Client that mirrors every event onto the bus.
    AppContext: The single value wiring loader, registry and dispatcher.
"""

import asyncio
import functools
import time
from typing import Any, Callable, List, Optional, Set, Tuple

import discord
import structlog

from .config import Config
from .dispatcher import Dispatcher
from .event_bus import Binding, EventBus
from .handler_types import Descriptor, LifecycleEvent
from .loader import HandlerLoader
from .registry import Registry

logger = structlog.get_logger("interlink.bot")


def build_intents(names: List[str]) -> discord.Intents:
    """Intents with exactly the named flags enabled; unknown names are logged and skipped."""
    intents = discord.Intents.none()
    for name in names:
        if name not in discord.Intents.VALID_FLAGS:
            logger.warning("unknown_intent", intent=name)
            continue
        setattr(intents, name, True)
    return intents


def build_activity(presence: Optional[dict]) -> Optional[discord.Activity]:
    """Activity from a ``{"type": ..., "name": ...}`` mapping, or None."""
    if not presence or not presence.get("name"):
        return None
    type_name = str(presence.get("type", "playing")).lower()
    activity_type = getattr(discord.ActivityType, type_name, None)
    if not isinstance(activity_type, discord.ActivityType):
        logger.warning("unknown_activity_type", type=type_name)
        activity_type = discord.ActivityType.playing
    return discord.Activity(type=activity_type, name=presence["name"])


def _once_key(event: LifecycleEvent) -> Tuple[str, str]:
    if event.source:
        return event.name, event.source
    return event.name, getattr(event.execute, "__qualname__", repr(event.execute))


class InterlinkClient(discord.Client):
    """Discord client that forwards every dispatched event to an EventBus."""

    def __init__(self, bus: EventBus, *, intents: discord.Intents, **options):
        super().__init__(intents=intents, **options)
        self.bus = bus
        self.started_at = time.monotonic()

    @property
    def uptime(self) -> float:
        """Seconds since the client object was created."""
        return time.monotonic() - self.started_at

    def dispatch(self, event: str, /, *args, **kwargs) -> None:
        super().dispatch(event, *args, **kwargs)
        self.bus.emit(event, *args)


class AppContext:
    """Explicit application state, constructed once per process.

    Args:
        config: Loaded Config.
        bus: Event bus; a new one is created when omitted.
        loader: Handler loader; defaults to one built from config.
    """

    def __init__(
        self,
        config: Config,
        bus: Optional[EventBus] = None,
        loader: Optional[HandlerLoader] = None,
    ):
        self.config = config
        self.bus = bus or EventBus()
        self.loader = loader or HandlerLoader.from_config(config)
        self.registry = Registry()
        self.dispatcher = Dispatcher(
            lambda: self.registry,
            prefix=config.text_command_prefix,
            support_url=config.support_url,
        )
        self.client: Optional[InterlinkClient] = None
        self._extra: List[Descriptor] = []
        self._handler_bindings: List[Binding] = []
        self._fired_once: Set[Tuple[str, str]] = set()
        self.bus.on("interaction", self.dispatcher.dispatch_interaction)

    def add_handler(self, descriptor: Descriptor) -> None:
        """Register a descriptor assembled in code; applied on every (re)load."""
        self._extra.append(descriptor)

    def load(self) -> Registry:
        """Build the registry from disk and install it."""
        registry = self.loader.build(list(self._extra))
        self.install(registry)
        return registry

    async def reload(self) -> Registry:
        """Rebuild the registry in a worker thread, then swap it in."""
        logger.info("registry_reload_started")
        registry = await asyncio.to_thread(self.loader.build, list(self._extra))
        self.install(registry)
        logger.info("registry_reloaded", **registry.summary())
        return registry

    def install(self, registry: Registry) -> None:
        """Swap ``registry`` in and replace the bus bindings it implies.

        Synchronous: no event can be dispatched between unbinding the
        old snapshot and binding the new one. One-shot lifecycle
        handlers that already fired are not re-armed.
        """
        for binding in self._handler_bindings:
            self.bus.off(binding)
        self.registry = registry
        self._handler_bindings = self._bind(registry)

    def _bind(self, registry: Registry) -> List[Binding]:
        bindings = []
        for event in registry.events:
            if event.once:
                key = _once_key(event)
                # a one-shot handler stays spent across reloads
                if key in self._fired_once:
                    continue
                bindings.append(self.bus.once(event.name, self._spend_once(key, event.execute)))
            else:
                bindings.append(self.bus.on(event.name, event.execute))
        for event_name in registry.trigger_events():
            listener = functools.partial(self.dispatcher.dispatch_message, event=event_name)
            bindings.append(self.bus.on(event_name, listener))
        return bindings

    def _spend_once(self, key: Tuple[str, str], execute: Callable[..., Any]) -> Callable[..., Any]:
        def listener(*args):
            self._fired_once.add(key)
            return execute(*args)
        return listener

    def create_client(self) -> InterlinkClient:
        self.client = InterlinkClient(
            self.bus,
            intents=build_intents(self.config.intents),
            activity=build_activity(self.config.presence),
        )
        return self.client

    async def start(self) -> None:
        """Load handlers, connect, and run until the client is closed.

        Raises:
            ConfigError: DISCORD_TOKEN is not set.
        """
        token = self.config.require_token()
        self.load()
        client = self.client or self.create_client()
        logger.info("client_connecting")
        await client.start(token)

    async def close(self) -> None:
        if self.client is not None and not self.client.is_closed():
            await self.client.close()
            logger.info("client_closed")
