"""Handler discovery, loading, and registration.

Builds a complete Registry snapshot from the handler trees:

    DiscoveryWalker -> load_candidate -> validate -> Registrar

Files are processed one at a time in discovery order so that
registration order (which decides predicate priority) and log output
are identical across runs. A file that fails to import or validate
contributes nothing and never stops its siblings from loading.
"""

import importlib
from pathlib import Path
from typing import Iterable, Optional

import structlog

from .discovery import DiscoveryWalker
from .exceptions import DuplicateHandlerError, HandlerLoadError
from .handler_types import LOAD_ORDER, CapabilityKind, Descriptor
from .module_loader import load_candidate
from .registry import Registrar, Registry
from .validation import Rejected, validate

logger = structlog.get_logger("interlink.loader")


class HandlerLoader:
    """Discovers and loads handler modules into a fresh Registry.

    Args:
        base_dir: Base handler tree.
        extensions_dir: Root of extension trees (optional).
        strict: Reject duplicate registry keys instead of replacing.
    """

    def __init__(
        self,
        base_dir: Path,
        extensions_dir: Optional[Path] = None,
        strict: bool = False,
    ):
        self.walker = DiscoveryWalker(base_dir, extensions_dir)
        self.strict = strict

    @classmethod
    def from_config(cls, config) -> "HandlerLoader":
        return cls(
            base_dir=config.handlers_base_dir,
            extensions_dir=config.handlers_extensions_dir,
            strict=config.strict_duplicates,
        )

    def build(self, extra: Iterable[Descriptor] = ()) -> Registry:
        """Discover every kind, then register ``extra`` descriptors last.

        Returns:
            A new Registry; nothing shared with earlier snapshots.
        """
        registry = Registry()
        registrar = Registrar(registry, strict=self.strict)
        # pick up helper files added since the last build
        importlib.invalidate_caches()

        for kind in LOAD_ORDER:
            for path in self.walker.discover(kind):
                self.load_file(registrar, kind, path)

        for descriptor in extra:
            self._register(registrar, descriptor, source=descriptor.source)

        logger.info("handler_loader_complete", **registry.summary())
        return registry

    def load_file(self, registrar: Registrar, kind: CapabilityKind, path: Path) -> int:
        """Load one file as ``kind``. Returns 1 if a handler was registered, else 0."""
        source = self.source_name(path)
        try:
            candidate = load_candidate(path, kind, self.walker.tree_root_for(path))
        except HandlerLoadError as e:
            logger.error(
                "handler_load_failed",
                kind=kind.value,
                path=source,
                error=str(e.__cause__ or e),
                error_type=type(e.__cause__ or e).__name__,
            )
            return 0

        result = validate(kind, candidate, source)
        if isinstance(result, Rejected):
            logger.warning(
                "handler_rejected",
                kind=kind.value,
                missing=result.missing,
                path=source,
                reason=result.reason or None,
            )
            return 0

        return self._register(registrar, result.descriptor, source=source)

    def source_name(self, path: Path) -> str:
        """Path relative to its tree root, used in logs and predicate keys."""
        root = self.walker.tree_root_for(path)
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            return path.as_posix()

    def _register(self, registrar: Registrar, descriptor: Descriptor, source: Optional[str]) -> int:
        try:
            registrar.register(descriptor)
        except DuplicateHandlerError as e:
            logger.error(
                "handler_duplicate_rejected",
                kind=e.kind,
                key=e.key,
                path=source,
            )
            return 0
        logger.debug("handler_registered", kind=descriptor.kind.value, path=source)
        return 1
