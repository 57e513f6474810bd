"""Exception types shared across TableForge.

Construction and filter-chain errors surface to the caller; action
handler errors are reported and swallowed by the emitter.
"""

from __future__ import annotations

from typing import Any, Iterable


class TableForgeError(Exception):
    """Base class for all TableForge errors."""


class UnknownServiceError(TableForgeError, LookupError):
    """No factory is registered under the requested service name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No such service factory: {name}")


class MissingConfigurationError(TableForgeError):
    """Required configuration keys are absent.

    Raised by a factory before it attempts any I/O.
    """

    def __init__(self, keys: Iterable[str], dependent: str | None = None):
        self.keys = list(keys)
        self.dependent = dependent
        joined = ", ".join(self.keys)
        if dependent:
            message = f"{dependent} depends on undefined configuration: {joined}"
        else:
            message = f"Missing required configuration: {joined}"
        super().__init__(message)


class ServiceConstructionError(TableForgeError):
    """A service factory raised during construction.

    The original exception is kept on ``cause`` and ``__cause__``.
    """

    def __init__(self, name: str, cause: BaseException | None = None, message: str | None = None):
        self.name = name
        self.cause = cause
        if message is None:
            message = f"Failed to construct service '{name}': {cause}"
        super().__init__(message)


class CircularDependencyError(ServiceConstructionError):
    """A factory transitively requested a service that is still being built."""

    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__(
            chain[-1],
            message="Circular service dependency: " + " -> ".join(self.chain),
        )


class DatabaseConnectionError(TableForgeError, ConnectionError):
    """The database could not be reached.

    The message is deliberately generic; the driver error is only
    available on ``__cause__`` and in the log.
    """

    def __init__(self, message: str = "Database connection failed."):
        super().__init__(message)


class HandlerError(TableForgeError):
    """A hook handler raised while an event was being dispatched."""

    def __init__(self, event: str, handler: Any, cause: BaseException):
        self.event = event
        self.handler = handler
        self.cause = cause
        handler_name = getattr(handler, "__qualname__", None) or repr(handler)
        super().__init__(f"Handler {handler_name} failed for '{event}': {cause}")


class MissingRelationConfigError(TableForgeError):
    """A translation relation has no languages table configured."""

    def __init__(self, column: str | None):
        self.column = column
        super().__init__(f"Translations language table not defined for {column}")
