"""Tests for the discovery -> load -> validate -> register pipeline."""

import sys
import textwrap
from pathlib import Path

from structlog.testing import capture_logs

import interlink
from interlink.handler_types import CapabilityKind, LifecycleEvent, MessageTrigger
from interlink.loader import HandlerLoader

COMMAND_SRC = """
from interlink.handler_types import CommandData

data = CommandData(name="{name}", description="{description}")

async def execute(interaction):
    interaction.seen = "{description}"
"""


def _write(root, rel, source):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source))
    return path


def test_duplicate_command_across_trees_last_discovered_wins(tmp_path):
    base = tmp_path / "base"
    ext = tmp_path / "extensions"
    _write(base, "commands/slash/foo.py", COMMAND_SRC.format(name="foo", description="base"))
    _write(ext, "ext1/commands/slash/foo.py", COMMAND_SRC.format(name="foo", description="ext"))

    registry = HandlerLoader(base, ext).build()

    assert list(registry.commands) == ["foo"]
    assert registry.commands["foo"].source == "ext1/commands/slash/foo.py"
    assert registry.counts[CapabilityKind.COMMAND] == 2


def test_strict_mode_keeps_first_and_logs_error(tmp_path):
    base = tmp_path / "base"
    ext = tmp_path / "extensions"
    _write(base, "commands/slash/foo.py", COMMAND_SRC.format(name="foo", description="base"))
    _write(ext, "ext1/commands/slash/foo.py", COMMAND_SRC.format(name="foo", description="ext"))

    with capture_logs() as logs:
        registry = HandlerLoader(base, ext, strict=True).build()

    assert registry.commands["foo"].source == "commands/slash/foo.py"
    assert registry.counts[CapabilityKind.COMMAND] == 1
    errors = [e for e in logs if e["event"] == "handler_duplicate_rejected"]
    assert len(errors) == 1
    assert errors[0]["key"] == "foo"


def test_invalid_candidate_skipped_siblings_load(tmp_path):
    base = tmp_path / "base"
    _write(base, "handlers/buttons/a_ok.py", """
        async def execute(interaction):
            pass
        custom_id = "ok"
    """)
    _write(base, "handlers/buttons/b_missing_execute.py", """
        custom_id = "broken"
        execute = "not callable"
    """)
    _write(base, "handlers/buttons/c_ok.py", """
        async def execute(interaction):
            pass
        custom_id = "also_ok"
    """)

    with capture_logs() as logs:
        registry = HandlerLoader(base).build()

    assert "ok" in registry.buttons
    assert "also_ok" in registry.buttons
    assert "broken" not in registry.buttons
    assert registry.counts[CapabilityKind.BUTTON] == 2

    rejected = [e for e in logs if e["event"] == "handler_rejected"]
    assert len(rejected) == 1
    assert rejected[0]["missing"] == "execute"
    assert rejected[0]["path"] == "handlers/buttons/b_missing_execute.py"


def test_import_failure_contributes_nothing(tmp_path):
    base = tmp_path / "base"
    _write(base, "handlers/modals/bad.py", "def broken(:\n")
    _write(base, "handlers/modals/good.py", """
        modal = {"custom_id": "feedback", "execute": lambda interaction: None}
    """)

    with capture_logs() as logs:
        registry = HandlerLoader(base).build()

    assert "feedback" in registry.modals
    assert registry.counts[CapabilityKind.MODAL] == 1
    failures = [e for e in logs if e["event"] == "handler_load_failed"]
    assert len(failures) == 1
    assert failures[0]["path"] == "handlers/modals/bad.py"
    assert failures[0]["error_type"] == "SyntaxError"


def test_predicate_registration_follows_discovery_order(tmp_path):
    base = tmp_path / "base"
    _write(base, "handlers/buttons/confirm.py", """
        async def execute(interaction):
            pass
        custom_id = "confirm"
    """)
    _write(base, "handlers/buttons/confirm_dynamic.py", """
        async def execute(interaction):
            pass
        def custom_id(cid):
            return cid.startswith("confirm_")
    """)
    _write(base, "handlers/buttons/z_catch_all.py", """
        async def execute(interaction):
            pass
        def custom_id(cid):
            return True
    """)

    registry = HandlerLoader(base).build()

    resolved = registry.buttons.resolve("confirm_42")
    assert resolved.source == "handlers/buttons/confirm_dynamic.py"
    assert registry.buttons.resolve("confirm").source == "handlers/buttons/confirm.py"
    assert registry.buttons.resolve("other").source == "handlers/buttons/z_catch_all.py"
    assert list(registry.buttons.predicates) == [
        "handlers/buttons/confirm_dynamic.py#custom_id",
        "handlers/buttons/z_catch_all.py#custom_id",
    ]


def test_all_kinds_from_extension_tree(tmp_path):
    ext = tmp_path / "extensions"
    _write(ext, "tickets/commands/messages/close.py", """
        async def execute(message):
            pass
        trigger = {"name": "close", "event": "message", "execute": execute}
    """)
    _write(ext, "tickets/events/member_join.py", """
        name = "member_join"
        async def execute(member):
            pass
    """)
    _write(ext, "tickets/handlers/menus/topic.py", """
        async def execute(interaction):
            pass
        menu = {"custom_id": "ticket_topic", "execute": execute}
    """)

    registry = HandlerLoader(tmp_path / "base", ext).build()

    assert isinstance(registry.get_message_trigger("close"), MessageTrigger)
    assert [e.name for e in registry.events] == ["member_join"]
    assert isinstance(registry.events[0], LifecycleEvent)
    assert "ticket_topic" in registry.menus
    assert registry.summary()["loaded"] == {
        "command": 0,
        "button": 0,
        "modal": 0,
        "menu": 1,
        "message_trigger": 1,
        "event": 1,
    }


def test_extra_descriptors_registered_after_discovery(tmp_path):
    base = tmp_path / "base"
    _write(base, "commands/slash/foo.py", COMMAND_SRC.format(name="foo", description="disk"))

    async def execute(interaction):
        pass

    from interlink.handler_types import CommandData, SlashCommand
    explicit = SlashCommand(
        name="foo", data=CommandData(name="foo", description="code"), execute=execute
    )
    registry = HandlerLoader(base).build(extra=[explicit])

    assert registry.commands["foo"] is explicit
    assert registry.counts[CapabilityKind.COMMAND] == 2


def test_builtin_tree_loads():
    base = Path(interlink.__file__).parent / "builtin"
    registry = HandlerLoader(base, extensions_dir=None).build()

    assert "ping" in registry.commands
    assert registry.get_message_trigger("ping") is not None
    ready = [e for e in registry.events if e.name == "ready"]
    assert len(ready) == 1
    assert ready[0].once is True


def test_message_trigger_from_plain_module_attributes(tmp_path):
    base = tmp_path / "base"
    _write(base, "commands/messages/hello.py", """
        name = "hello"
        event = "message"
        async def execute(message):
            await message.reply("hi")
    """)

    registry = HandlerLoader(base).build()

    trigger = registry.get_message_trigger("hello")
    assert isinstance(trigger, MessageTrigger)
    assert trigger.event == "message"
    assert registry.counts[CapabilityKind.MESSAGE_TRIGGER] == 1


def test_handlers_import_private_helpers_from_their_tree(tmp_path):
    ext = tmp_path / "extensions"
    _write(ext, "tickets/handlers/_shared.py", 'PREFIX = "ticket_"\n')
    _write(ext, "tickets/handlers/buttons/_labels.py", 'CLOSE = "close"\n')
    _write(ext, "tickets/handlers/buttons/close.py", """
        from .._shared import PREFIX
        from ._labels import CLOSE

        custom_id = PREFIX + CLOSE
        async def execute(interaction):
            pass
    """)

    with capture_logs() as logs:
        registry = HandlerLoader(tmp_path / "base", ext).build()

    assert [e for e in logs if e["event"] == "handler_load_failed"] == []
    assert "ticket_close" in registry.buttons
    assert registry.buttons.resolve("ticket_close").source == "tickets/handlers/buttons/close.py"
    assert not [name for name in sys.modules if name.startswith("interlink_tree_")]


def test_helper_edits_picked_up_on_rebuild(tmp_path):
    base = tmp_path / "base"
    helper = _write(base, "handlers/modals/_ids.py", 'FEEDBACK = "feedback"\n')
    _write(base, "handlers/modals/feedback.py", """
        from ._ids import FEEDBACK
        modal = {"custom_id": FEEDBACK, "execute": lambda interaction: None}
    """)
    loader = HandlerLoader(base)
    assert "feedback" in loader.build().modals

    helper.write_text('FEEDBACK = "feedback_form_v2"\n')
    assert "feedback_form_v2" in loader.build().modals
