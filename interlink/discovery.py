"""Handler file discovery.

Walks the base handler tree and every extension subtree for the
well-known sub-path of a capability kind, yielding ``.py`` files in a
stable lexical order. Ordering is load-bearing: it decides the
registration order of predicate handlers, and therefore which one
wins when several predicates match.
"""

from pathlib import Path
from typing import List, Optional, Set

import structlog

from .exceptions import DiscoveryError
from .handler_types import CapabilityKind

logger = structlog.get_logger("interlink.loader")

SOURCE_SUFFIXES = frozenset({".py"})


class DiscoveryWalker:
    """Enumerates candidate handler files.

    Args:
        base_dir: Base tree, e.g. ``interlink/builtin``.
        extensions_dir: Root whose immediate subdirectories are each
            treated as an additional tree. May be None or absent.
    """

    def __init__(self, base_dir: Path, extensions_dir: Optional[Path] = None):
        self.base_dir = base_dir
        self.extensions_dir = extensions_dir

    def extension_roots(self) -> List[Path]:
        """Immediate subdirectories of the extensions root, lexically sorted."""
        if self.extensions_dir is None or not self.extensions_dir.is_dir():
            return []
        try:
            entries = sorted(self.extensions_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise DiscoveryError(
                "Cannot list extensions directory", path=str(self.extensions_dir)
            ) from e
        return [p for p in entries if p.is_dir() and not _is_skipped(p)]

    def search_paths(self, kind: CapabilityKind) -> List[Path]:
        """Directories to scan for ``kind``: base first, then each extension."""
        paths = []
        base_path = self.base_dir / kind.sub_path
        if base_path.is_dir():
            paths.append(base_path)
        else:
            logger.warning("discovery_path_missing", kind=kind.value, path=str(base_path))

        for root in self.extension_roots():
            ext_path = root / kind.sub_path
            if ext_path.is_dir():
                paths.append(ext_path)
            else:
                logger.debug(
                    "discovery_extension_path_absent",
                    kind=kind.value,
                    extension=root.name,
                )
        return paths

    def discover(self, kind: CapabilityKind) -> List[Path]:
        """Return every candidate file for ``kind`` in discovery order."""
        files: List[Path] = []
        for directory in self.search_paths(kind):
            files.extend(walk_sources(directory))
        logger.debug("discovery_complete", kind=kind.value, files=len(files))
        return files

    def tree_root_for(self, path: Path) -> Path:
        """Root (base or extensions dir) a discovered file belongs to."""
        if self.extensions_dir is not None and _is_relative_to(path, self.extensions_dir):
            return self.extensions_dir
        return self.base_dir


def walk_sources(directory: Path, _visited: Optional[Set[Path]] = None) -> List[Path]:
    """Recursively list source files under ``directory`` in lexical order.

    A directory that vanished between listing and walking is treated
    as empty. A directory reached a second time through a symlink is
    skipped. Other OS errors are raised as DiscoveryError.
    """
    visited = set() if _visited is None else _visited
    real = directory.resolve()
    if real in visited:
        logger.warning("discovery_cycle_skipped", path=str(directory))
        return []
    visited.add(real)

    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except FileNotFoundError:
        logger.warning("discovery_path_missing", path=str(directory))
        return []
    except OSError as e:
        raise DiscoveryError("Cannot list handler directory", path=str(directory)) from e

    found: List[Path] = []
    for entry in entries:
        if _is_skipped(entry):
            continue
        if entry.is_dir():
            found.extend(walk_sources(entry, visited))
        elif entry.suffix in SOURCE_SUFFIXES and entry.is_file():
            found.append(entry)
    return found


def _is_skipped(path: Path) -> bool:
    # __pycache__, __init__.py, private helpers and dotfiles
    return path.name.startswith(("_", "."))


def _is_relative_to(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
