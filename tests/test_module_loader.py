"""Tests for uncached module loading and export resolution."""

import sys
import types
from types import SimpleNamespace

import pytest

from interlink.exceptions import HandlerLoadError
from interlink.handler_types import CapabilityKind
from interlink.module_loader import import_uncached, load_candidate, resolve_export


def _module(**attrs):
    mod = types.ModuleType("fake_handler")
    for key, value in attrs.items():
        setattr(mod, key, value)
    return mod


class TestResolveExport:

    def test_wrapped_default_export_is_unwrapped(self):
        inner = {"custom_id": "x", "execute": lambda i: None}
        mod = _module(handler=SimpleNamespace(handler=inner))
        assert resolve_export(mod, CapabilityKind.BUTTON) is inner

    def test_default_export(self):
        candidate = {"name": "ready", "execute": lambda: None}
        mod = _module(handler=candidate, event={"name": "other"})
        assert resolve_export(mod, CapabilityKind.EVENT) is candidate

    def test_callable_default_export_is_not_unwrapped(self):
        def handler():
            pass
        handler.handler = "not this"
        mod = _module(handler=handler)
        assert resolve_export(mod, CapabilityKind.EVENT) is handler

    def test_named_export_for_kind_keyword(self):
        button = {"custom_id": "b"}
        mod = _module(button=button)
        assert resolve_export(mod, CapabilityKind.BUTTON) is button

    def test_kind_keyword_takes_priority(self):
        menu = {"custom_id": "m"}
        mod = _module(command={"data": {}}, menu=menu)
        assert resolve_export(mod, CapabilityKind.MENU) is menu

    def test_other_keywords_in_fixed_order(self):
        command = {"data": {}}
        mod = _module(event={"name": "e"}, command=command)
        assert resolve_export(mod, CapabilityKind.MODAL) is command

    def test_falls_back_to_module_namespace(self):
        mod = _module(custom_id="raw")
        assert resolve_export(mod, CapabilityKind.BUTTON) is mod


class TestImportUncached:

    def test_each_load_reads_current_source(self, tmp_path):
        path = tmp_path / "counter.py"
        path.write_text("VALUE = 1\n")
        first = import_uncached(path)

        path.write_text("VALUE = 22222\n")
        second = import_uncached(path)

        assert first.VALUE == 1
        assert second.VALUE == 22222
        assert first.__name__ != second.__name__

    def test_module_is_not_left_in_sys_modules(self, tmp_path):
        path = tmp_path / "transient.py"
        path.write_text("X = 1\n")
        module = import_uncached(path)
        assert module.__name__ not in sys.modules

    def test_syntax_error_raises_load_error(self, tmp_path):
        path = tmp_path / "broken.py"
        path.write_text("def oops(:\n")
        with pytest.raises(HandlerLoadError) as exc_info:
            import_uncached(path)
        assert exc_info.value.path == str(path.resolve())
        assert isinstance(exc_info.value.__cause__, SyntaxError)

    def test_top_level_exception_raises_load_error(self, tmp_path):
        path = tmp_path / "throws.py"
        path.write_text("raise RuntimeError('boom at import')\n")
        with pytest.raises(HandlerLoadError, match="boom at import"):
            import_uncached(path)

    def test_missing_file_raises_load_error(self, tmp_path):
        with pytest.raises(HandlerLoadError):
            import_uncached(tmp_path / "absent.py")


def test_load_candidate_resolves_export(tmp_path):
    path = tmp_path / "btn.py"
    path.write_text(
        "async def execute(interaction):\n"
        "    pass\n"
        "button = {'custom_id': 'confirm', 'execute': execute}\n"
    )
    candidate = load_candidate(path, CapabilityKind.BUTTON)
    assert candidate["custom_id"] == "confirm"


def test_plain_keyword_value_is_not_an_export(tmp_path):
    path = tmp_path / "hello.py"
    path.write_text(
        "name = 'hello'\n"
        "event = 'message'\n"
        "async def execute(message):\n"
        "    pass\n"
    )
    module = import_uncached(path)
    assert resolve_export(module, CapabilityKind.MESSAGE_TRIGGER) is module


def test_tree_root_makes_file_a_submodule(tmp_path):
    helper = tmp_path / "tree" / "handlers" / "_common.py"
    helper.parent.mkdir(parents=True)
    helper.write_text("GREETING = 'hi'\n")
    path = tmp_path / "tree" / "handlers" / "greet.py"
    path.write_text("from ._common import GREETING\n")

    module = import_uncached(path, tmp_path / "tree")

    assert module.GREETING == "hi"
    assert module.__name__.endswith(".handlers.greet")
    assert module.__name__.split(".")[0] not in sys.modules

    with pytest.raises(HandlerLoadError):
        import_uncached(path)
