"""Uncached handler module loading.

Every call imports the file afresh under a new module name, so a
reload observes the current on-disk source instead of a module object
memoized in ``sys.modules``.
"""

import importlib
import importlib.machinery
import importlib.util
import itertools
import sys
from collections.abc import Mapping
from pathlib import Path
from types import ModuleType
from typing import Any, Optional

import structlog

from .exceptions import HandlerLoadError
from .handler_types import EXPORT_KEYWORDS, KIND_KEYWORDS, CapabilityKind

logger = structlog.get_logger("interlink.loader")

# Name of the module attribute treated as the default export
DEFAULT_EXPORT = "handler"

_load_counter = itertools.count(1)

_SCALARS = (str, bytes, int, float, bool, list, tuple)


def import_uncached(path: Path, root: Optional[Path] = None) -> ModuleType:
    """Execute ``path`` as a brand-new module and return it.

    The module name carries a monotonically increasing marker. When
    ``root`` is given and contains ``path``, the file is executed as a
    submodule of a throwaway package rooted at ``root``, so relative
    imports of helper files in the same tree work. Everything under the
    marker is removed from ``sys.modules`` once executed.

    Raises:
        HandlerLoadError: On missing file, syntax error, or any
            exception raised by the module's top-level code.
    """
    path = path.resolve()
    marker = next(_load_counter)
    package = None
    if root is not None and path.is_relative_to(root.resolve()):
        root = root.resolve()
        package = f"interlink_tree_{marker}"
        parts = path.relative_to(root).with_suffix("").parts
        module_name = ".".join((package,) + parts)
    else:
        module_name = f"interlink_handler_{path.stem}_{marker}"

    try:
        if package is not None:
            _install_tree_package(package, root)
            parent = module_name.rpartition(".")[0]
            if parent != package:
                # intermediate directories resolve as namespace packages
                importlib.import_module(parent)

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise HandlerLoadError("No import spec for handler file", path=str(path))

        module = importlib.util.module_from_spec(spec)
        # Present while executing so dataclasses / pydantic can resolve it
        sys.modules[module_name] = module
        spec.loader.exec_module(module)
    except HandlerLoadError:
        raise
    except Exception as e:
        raise HandlerLoadError(
            f"Failed to import handler module: {e}",
            path=str(path),
            error_type=type(e).__name__,
        ) from e
    finally:
        _forget(package or module_name)
    return module


def _install_tree_package(name: str, root: Path) -> None:
    spec = importlib.machinery.ModuleSpec(name, None, is_package=True)
    spec.submodule_search_locations = [str(root)]
    sys.modules[name] = importlib.util.module_from_spec(spec)


def _forget(name: str) -> None:
    prefix = name + "."
    for key in [k for k in sys.modules if k == name or k.startswith(prefix)]:
        sys.modules.pop(key, None)


def resolve_export(module: ModuleType, kind: CapabilityKind) -> Any:
    """Pick the handler candidate out of a loaded module.

    Resolution order:
        1. ``handler.handler`` when ``handler`` is itself a wrapper
        2. ``handler``
        3. a named export for the capability keyword (the kind's own
           keyword first, then command/event/button/modal/menu);
           plain values such as strings are skipped
        4. the module namespace itself
    """
    default = getattr(module, DEFAULT_EXPORT, None)
    if default is not None:
        inner = _field(default, DEFAULT_EXPORT)
        if inner is not None:
            return inner
        return default

    keywords = (KIND_KEYWORDS[kind],) + tuple(
        k for k in EXPORT_KEYWORDS if k != KIND_KEYWORDS[kind]
    )
    for keyword in keywords:
        exported = getattr(module, keyword, None)
        # a plain value such as a trigger's `event = "message"` is a field, not an export
        if exported is not None and not isinstance(exported, _SCALARS):
            return exported

    return module


def load_candidate(path: Path, kind: CapabilityKind, root: Optional[Path] = None) -> Any:
    """Import ``path`` uncached and return its exported candidate.

    ``root`` is the tree the file was discovered in; see import_uncached.
    """
    module = import_uncached(path, root)
    candidate = resolve_export(module, kind)
    logger.debug("module_loaded", path=str(path), kind=kind.value, module=module.__name__)
    return candidate


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    if isinstance(obj, (ModuleType, type)) or not callable(obj):
        return getattr(obj, name, None)
    return None
