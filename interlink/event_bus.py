"""In-process event bus.

The Discord client forwards every gateway event here (see
``app.InterlinkClient.dispatch``). Listeners are either recurring
(``on``) or one-shot (``once``); each invocation runs as its own task
so a slow listener never delays the others.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Set

import structlog

logger = structlog.get_logger("interlink.bot")

Listener = Callable[..., Any]


@dataclass(eq=False)
class Binding:
    """One subscription. Identity-compared so the same callable can be bound twice."""
    event: str
    listener: Listener
    once: bool = False


def log_task_exception(task: asyncio.Task):
    """Log exceptions from listener tasks instead of silently swallowing them."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error(
            "listener_task_failed",
            task=task.get_name(),
            error=str(exc),
            error_type=type(exc).__name__,
        )


class EventBus:
    """Named-event subscription surface."""

    def __init__(self):
        self._bindings: Dict[str, List[Binding]] = {}
        self._tasks: Set[asyncio.Task] = set()

    def on(self, event: str, listener: Listener) -> Binding:
        """Subscribe ``listener`` to every ``event``."""
        return self._add(Binding(event, listener, once=False))

    def once(self, event: str, listener: Listener) -> Binding:
        """Subscribe ``listener`` to the next ``event`` only."""
        return self._add(Binding(event, listener, once=True))

    def off(self, binding: Binding) -> None:
        """Remove a binding. Removing an already-removed binding is a no-op."""
        bindings = self._bindings.get(binding.event, [])
        if binding in bindings:
            bindings.remove(binding)

    def listeners(self, event: str) -> List[Binding]:
        return list(self._bindings.get(event, []))

    def emit(self, event: str, *args: Any) -> int:
        """Schedule every listener for ``event`` with ``args`` unmodified.

        Returns the number of listeners scheduled. Must be called from
        inside a running event loop. One-shot bindings are removed
        before their listener runs.
        """
        bindings = self.listeners(event)
        for binding in bindings:
            if binding.once:
                self.off(binding)
            self._schedule(binding, args)
        return len(bindings)

    async def drain(self) -> None:
        """Wait for all scheduled listener tasks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _add(self, binding: Binding) -> Binding:
        self._bindings.setdefault(binding.event, []).append(binding)
        return binding

    def _schedule(self, binding: Binding, args) -> None:
        name = getattr(binding.listener, "__qualname__", "listener")
        task = asyncio.create_task(_invoke(binding.listener, args), name=f"{binding.event}:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(log_task_exception)


async def _invoke(listener: Listener, args) -> None:
    result = listener(*args)
    if inspect.isawaitable(result):
        await result
