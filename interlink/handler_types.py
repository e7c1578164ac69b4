"""Handler descriptor types for interlink.

A handler module contributes exactly one candidate object; once
validated it becomes one of the descriptor records below, tagged by
its capability kind. Descriptors are data only: the registry stores
them and the dispatcher invokes their ``execute`` callable.

Component handlers (buttons, modals, menus) are addressed by an
Identifier: either a literal custom id or a predicate over the
incoming custom id.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field

# execute may be sync or async; the dispatcher awaits awaitables
Execute = Callable[..., Union[Awaitable[None], None]]

# Predicate: (candidate_custom_id) -> bool
Predicate = Callable[[str], bool]


class CapabilityKind(str, Enum):
    """Category of a handler. Values double as counter names."""
    COMMAND = "command"
    BUTTON = "button"
    MODAL = "modal"
    MENU = "menu"
    MESSAGE_TRIGGER = "message_trigger"
    EVENT = "event"

    @property
    def sub_path(self) -> str:
        """Well-known directory (relative to a tree root) for this kind."""
        return KIND_SUB_PATHS[self]


KIND_SUB_PATHS: Dict[CapabilityKind, str] = {
    CapabilityKind.COMMAND: "commands/slash",
    CapabilityKind.MESSAGE_TRIGGER: "commands/messages",
    CapabilityKind.BUTTON: "handlers/buttons",
    CapabilityKind.MODAL: "handlers/modals",
    CapabilityKind.MENU: "handlers/menus",
    CapabilityKind.EVENT: "events",
}

# Named exports probed by the module loader, in priority order.
EXPORT_KEYWORDS = ("command", "event", "button", "modal", "menu")

KIND_KEYWORDS: Dict[CapabilityKind, str] = {
    CapabilityKind.COMMAND: "command",
    CapabilityKind.MESSAGE_TRIGGER: "trigger",
    CapabilityKind.BUTTON: "button",
    CapabilityKind.MODAL: "modal",
    CapabilityKind.MENU: "menu",
    CapabilityKind.EVENT: "event",
}

# Order in which kinds are loaded at startup.
LOAD_ORDER = (
    CapabilityKind.BUTTON,
    CapabilityKind.COMMAND,
    CapabilityKind.MESSAGE_TRIGGER,
    CapabilityKind.EVENT,
    CapabilityKind.MENU,
    CapabilityKind.MODAL,
)


class CommandData(BaseModel):
    """Slash command metadata, synced to Discord by command_sync.

    Attributes:
        name: Command name as typed by users (lower-case, 1-32 chars).
        description: One-line description shown in the client.
        options: Raw Discord application command option objects.
        type: Application command type (1 = CHAT_INPUT).
        dm_permission: Whether the command is usable in DMs.
    """
    name: str = Field(pattern=r"^[-_a-z0-9]{1,32}$")
    description: str = Field(min_length=1, max_length=100)
    options: List[Dict[str, Any]] = Field(default_factory=list)
    type: int = 1
    dm_permission: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON body Discord expects for this command."""
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LiteralId:
    """Exact custom id match."""
    value: str

    @property
    def key(self) -> str:
        return self.value

    def matches(self, candidate: str) -> bool:
        return candidate == self.value


@dataclass(frozen=True)
class PredicateId:
    """Dynamic custom id match.

    Attributes:
        predicate: Called with the incoming custom id.
        key: Surrogate registry key, stable for the process lifetime.
    """
    predicate: Predicate = field(compare=False)
    key: str

    def matches(self, candidate: str) -> bool:
        return bool(self.predicate(candidate))


Identifier = Union[LiteralId, PredicateId]


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SlashCommand:
    """Chat-input command, addressed by its name."""
    name: str
    data: Any
    execute: Execute
    source: Optional[str] = None
    kind: CapabilityKind = field(default=CapabilityKind.COMMAND, init=False)


@dataclass(frozen=True)
class ComponentHandler:
    """Base for handlers addressed by a component custom id."""
    identifier: Identifier
    execute: Execute
    source: Optional[str] = None


@dataclass(frozen=True)
class Button(ComponentHandler):
    kind: CapabilityKind = field(default=CapabilityKind.BUTTON, init=False)


@dataclass(frozen=True)
class Modal(ComponentHandler):
    kind: CapabilityKind = field(default=CapabilityKind.MODAL, init=False)


@dataclass(frozen=True)
class Menu(ComponentHandler):
    kind: CapabilityKind = field(default=CapabilityKind.MENU, init=False)


@dataclass(frozen=True)
class MessageTrigger:
    """Prefixed text command bound to a message event.

    Attributes:
        name: Trigger word typed after the configured prefix.
        event: Event bus name to listen on (normally "message").
    """
    name: str
    event: str
    execute: Execute
    source: Optional[str] = None
    kind: CapabilityKind = field(default=CapabilityKind.MESSAGE_TRIGGER, init=False)


@dataclass(frozen=True)
class LifecycleEvent:
    """Direct event bus subscription (e.g. "ready")."""
    name: str
    execute: Execute
    once: bool = False
    source: Optional[str] = None
    kind: CapabilityKind = field(default=CapabilityKind.EVENT, init=False)


Descriptor = Union[SlashCommand, Button, Modal, Menu, MessageTrigger, LifecycleEvent]

COMPONENT_TYPES = {
    CapabilityKind.BUTTON: Button,
    CapabilityKind.MODAL: Modal,
    CapabilityKind.MENU: Menu,
}
