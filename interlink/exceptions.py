"""Custom exception hierarchy for interlink.

Provides precise error classification for the handler pipeline
(discovery, loading, validation, registration, dispatch) and the
administrative command sync, so each boundary can catch exactly what
it expects and log structured context.
"""

from typing import Any, Optional


class InterlinkError(Exception):
    """Base exception for all interlink errors.

    Attributes:
        message: Human-readable error description.
        module: Originating module name (e.g. "loader").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.module = module
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return f"{cls}({self.message!r}, module={self.module!r})"


class ConfigError(InterlinkError):
    """Missing or invalid startup configuration (e.g. no bot token)."""

    def __init__(self, message: str = "", *, key: Optional[str] = None, **context: Any) -> None:
        self.key = key
        super().__init__(message, module="config", key=key, **context)


# ---------------------------------------------------------------------------
# Handler pipeline exceptions
# ---------------------------------------------------------------------------

class DiscoveryError(InterlinkError):
    """Unexpected I/O failure while walking a handler tree.

    A missing directory is not an error; this is raised only for
    failures such as permission denied.
    """

    def __init__(self, message: str = "", *, path: Optional[str] = None, **context: Any) -> None:
        self.path = path
        super().__init__(message, module="discovery", path=path, **context)


class HandlerLoadError(InterlinkError):
    """A handler module could not be imported.

    Attributes:
        path: Source file that failed to import.
    """

    def __init__(self, message: str = "", *, path: Optional[str] = None, **context: Any) -> None:
        self.path = path
        super().__init__(message, module="module_loader", path=path, **context)


class DuplicateHandlerError(InterlinkError):
    """Raised in strict mode when a registry key is already taken."""

    def __init__(
        self,
        message: str = "",
        *,
        kind: Optional[str] = None,
        key: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.kind = kind
        self.key = key
        super().__init__(message, module="registry", kind=kind, key=key, **context)


class CommandSyncError(InterlinkError):
    """The Discord API rejected a command sync request."""

    def __init__(self, message: str = "", *, status: Optional[int] = None, **context: Any) -> None:
        self.status = status
        super().__init__(message, module="command_sync", status=status, **context)
