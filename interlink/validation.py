"""Candidate classification and validation.

Each capability kind has a constructor that takes an arbitrary loaded
candidate (object, mapping, or module namespace) and returns either
``Accepted(descriptor)`` or ``Rejected(...)`` naming the first missing
field. Constructors never raise for a malformed candidate.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from pydantic import ValidationError

from .handler_types import (
    COMPONENT_TYPES,
    CapabilityKind,
    CommandData,
    Descriptor,
    Identifier,
    LifecycleEvent,
    LiteralId,
    MessageTrigger,
    PredicateId,
    SlashCommand,
)


@dataclass(frozen=True)
class Accepted:
    descriptor: Descriptor


@dataclass(frozen=True)
class Rejected:
    """Validation failure for one candidate.

    Attributes:
        kind: Kind the candidate was validated as.
        missing: Name of the missing or malformed field.
        source: Source path of the candidate, if loaded from a file.
        reason: Extra detail (e.g. pydantic error summary).
    """
    kind: CapabilityKind
    missing: str
    source: Optional[str] = None
    reason: str = ""


ValidationResult = Union[Accepted, Rejected]


def field_of(candidate: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or an attribute."""
    if isinstance(candidate, Mapping):
        return candidate.get(name)
    return getattr(candidate, name, None)


def predicate_key(predicate: Callable, source: Optional[str]) -> str:
    """Surrogate registry key for a predicate custom id.

    With a source path the key is derived from the path, so it is
    identical across reloads. Without one (explicit registration) the
    function identity is used.
    """
    qualname = getattr(predicate, "__qualname__", type(predicate).__name__)
    if source:
        return f"{source}#{qualname}"
    return f"{qualname}@{id(predicate):x}"


def validate_command(candidate: Any, source: Optional[str] = None) -> ValidationResult:
    kind = CapabilityKind.COMMAND
    if candidate is None:
        return Rejected(kind, "candidate", source)

    data = field_of(candidate, "data")
    if data is None:
        return Rejected(kind, "data", source)

    execute = field_of(candidate, "execute")
    if not callable(execute):
        return Rejected(kind, "execute", source)

    if isinstance(data, Mapping):
        try:
            data = CommandData.model_validate(data)
        except ValidationError as e:
            return Rejected(kind, "data", source, reason=_summarize(e))

    name = field_of(data, "name")
    if not isinstance(name, str) or not name:
        return Rejected(kind, "data.name", source)

    return Accepted(SlashCommand(name=name, data=data, execute=execute, source=source))


def _component_validator(kind: CapabilityKind):
    descriptor_cls = COMPONENT_TYPES[kind]

    def validate(candidate: Any, source: Optional[str] = None) -> ValidationResult:
        if candidate is None:
            return Rejected(kind, "candidate", source)

        custom_id = field_of(candidate, "custom_id")
        if custom_id is None or custom_id == "":
            return Rejected(kind, "custom_id", source)

        execute = field_of(candidate, "execute")
        if not callable(execute):
            return Rejected(kind, "execute", source)

        identifier: Identifier
        if isinstance(custom_id, str):
            identifier = LiteralId(custom_id)
        elif callable(custom_id):
            identifier = PredicateId(custom_id, predicate_key(custom_id, source))
        else:
            return Rejected(
                kind, "custom_id", source,
                reason=f"expected str or callable, got {type(custom_id).__name__}",
            )

        return Accepted(descriptor_cls(identifier=identifier, execute=execute, source=source))

    validate.__name__ = f"validate_{kind.value}"
    return validate


validate_button = _component_validator(CapabilityKind.BUTTON)
validate_modal = _component_validator(CapabilityKind.MODAL)
validate_menu = _component_validator(CapabilityKind.MENU)


def validate_message_trigger(candidate: Any, source: Optional[str] = None) -> ValidationResult:
    kind = CapabilityKind.MESSAGE_TRIGGER
    if candidate is None:
        return Rejected(kind, "candidate", source)

    name = field_of(candidate, "name")
    if not isinstance(name, str) or not name:
        return Rejected(kind, "name", source)

    event = field_of(candidate, "event")
    if not isinstance(event, str) or not event:
        return Rejected(kind, "event", source)

    execute = field_of(candidate, "execute")
    if not callable(execute):
        return Rejected(kind, "execute", source)

    return Accepted(MessageTrigger(name=name, event=event, execute=execute, source=source))


def validate_event(candidate: Any, source: Optional[str] = None) -> ValidationResult:
    kind = CapabilityKind.EVENT
    if candidate is None:
        return Rejected(kind, "candidate", source)

    name = field_of(candidate, "name")
    if not isinstance(name, str) or not name:
        return Rejected(kind, "name", source)

    execute = field_of(candidate, "execute")
    if not callable(execute):
        return Rejected(kind, "execute", source)

    once = bool(field_of(candidate, "once") or False)
    return Accepted(LifecycleEvent(name=name, execute=execute, once=once, source=source))


VALIDATORS: Dict[CapabilityKind, Callable[..., ValidationResult]] = {
    CapabilityKind.COMMAND: validate_command,
    CapabilityKind.BUTTON: validate_button,
    CapabilityKind.MODAL: validate_modal,
    CapabilityKind.MENU: validate_menu,
    CapabilityKind.MESSAGE_TRIGGER: validate_message_trigger,
    CapabilityKind.EVENT: validate_event,
}


def validate(kind: CapabilityKind, candidate: Any, source: Optional[str] = None) -> ValidationResult:
    """Validate ``candidate`` as a handler of ``kind``."""
    return VALIDATORS[kind](candidate, source)


def _summarize(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()
    )
