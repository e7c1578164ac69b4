"""Registry store and registrar.

The Registry is a snapshot of every validated handler, built once by
the loader and then only read by the dispatcher. A reload builds a new
Registry and swaps the reference; tables are never patched in place
while they are being served.

Key classes:
    ComponentTable: Literal hash table plus ordered predicate table.
    Registry: The six handler tables and per-kind load counters.
    Registrar: Inserts descriptors, applying duplicate-key policy.
"""

from collections import Counter
from typing import Dict, Iterator, List, Optional, Union

import structlog

from .exceptions import DuplicateHandlerError
from .handler_types import (
    CapabilityKind,
    ComponentHandler,
    Descriptor,
    LifecycleEvent,
    MessageTrigger,
    PredicateId,
    SlashCommand,
)

logger = structlog.get_logger("interlink.loader")


class ComponentTable:
    """Handlers addressed by custom id.

    Literal ids live in a dict for O(1) lookup. Predicate handlers are
    kept in registration order under their surrogate key; re-registering
    a surrogate key replaces the entry without moving it.
    """

    def __init__(self):
        self.literals: Dict[str, ComponentHandler] = {}
        self.predicates: Dict[str, ComponentHandler] = {}

    def __len__(self) -> int:
        return len(self.literals) + len(self.predicates)

    def __contains__(self, key: str) -> bool:
        return key in self.literals or key in self.predicates

    def __iter__(self) -> Iterator[ComponentHandler]:
        yield from self.literals.values()
        yield from self.predicates.values()

    def add(self, handler: ComponentHandler) -> None:
        key = handler.identifier.key
        if isinstance(handler.identifier, PredicateId):
            self.predicates[key] = handler
        else:
            self.literals[key] = handler

    def resolve(self, custom_id: str) -> Optional[ComponentHandler]:
        """Literal match first, then the first predicate that accepts ``custom_id``.

        A predicate that raises counts as a non-match.
        """
        handler = self.literals.get(custom_id)
        if handler is not None:
            return handler

        for key, candidate in self.predicates.items():
            try:
                if candidate.identifier.matches(custom_id):
                    return candidate
            except Exception as e:
                logger.warning(
                    "predicate_error",
                    key=key,
                    custom_id=custom_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return None


class Registry:
    """Process-wide handler tables, owned by the application context."""

    def __init__(self):
        self.commands: Dict[str, SlashCommand] = {}
        self.buttons = ComponentTable()
        self.modals = ComponentTable()
        self.menus = ComponentTable()
        # Keyed by lower-cased trigger name
        self.message_triggers: Dict[str, MessageTrigger] = {}
        self.events: List[LifecycleEvent] = []
        self.counts: Counter = Counter()

    def component_table(self, kind: CapabilityKind) -> ComponentTable:
        tables = {
            CapabilityKind.BUTTON: self.buttons,
            CapabilityKind.MODAL: self.modals,
            CapabilityKind.MENU: self.menus,
        }
        return tables[kind]

    def get_command(self, name: str) -> Optional[SlashCommand]:
        return self.commands.get(name)

    def get_message_trigger(self, name: str) -> Optional[MessageTrigger]:
        return self.message_triggers.get(name.lower())

    def trigger_events(self) -> List[str]:
        """Distinct event names message triggers listen on, in first-seen order."""
        return list(dict.fromkeys(t.event for t in self.message_triggers.values()))

    def summary(self) -> Dict[str, Union[int, Dict[str, int]]]:
        """Load counters and table sizes, for logging."""
        return {
            "loaded": {kind.value: self.counts[kind] for kind in CapabilityKind},
            "commands": len(self.commands),
            "buttons": len(self.buttons),
            "modals": len(self.modals),
            "menus": len(self.menus),
            "message_triggers": len(self.message_triggers),
            "events": len(self.events),
        }


class Registrar:
    """Inserts validated descriptors into a Registry.

    Args:
        registry: Target snapshot.
        strict: Raise DuplicateHandlerError on key collisions instead of
            replacing the earlier handler.
    """

    def __init__(self, registry: Registry, strict: bool = False):
        self.registry = registry
        self.strict = strict

    def register(self, descriptor: Descriptor) -> None:
        """Insert ``descriptor`` and bump its kind's load counter.

        Raises:
            DuplicateHandlerError: strict mode and the key is taken.
        """
        kind = getattr(descriptor, "kind", None)
        if isinstance(descriptor, SlashCommand):
            self._check_duplicate(kind, descriptor.name, descriptor.name in self.registry.commands)
            self.registry.commands[descriptor.name] = descriptor
        elif isinstance(descriptor, ComponentHandler):
            table = self.registry.component_table(kind)
            key = descriptor.identifier.key
            self._check_duplicate(kind, key, key in table)
            table.add(descriptor)
        elif isinstance(descriptor, MessageTrigger):
            key = descriptor.name.lower()
            self._check_duplicate(kind, key, key in self.registry.message_triggers)
            self.registry.message_triggers[key] = descriptor
        elif isinstance(descriptor, LifecycleEvent):
            self.registry.events.append(descriptor)
        else:
            raise TypeError(f"Not a handler descriptor: {descriptor!r}")

        self.registry.counts[kind] += 1

    def register_all(self, descriptors) -> None:
        for descriptor in descriptors:
            self.register(descriptor)

    def _check_duplicate(self, kind: CapabilityKind, key: str, taken: bool) -> None:
        if not taken:
            return
        if self.strict:
            raise DuplicateHandlerError(
                f"Duplicate {kind.value} key {key!r}", kind=kind.value, key=key
            )
        logger.debug("handler_key_replaced", kind=kind.value, key=key)
