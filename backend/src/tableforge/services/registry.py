"""Lazy service registry.

Services are resolved by name on first use and cached for the life of
the process, except transient ones, which are built on every lookup.
Factories may ask the registry for other services, which is how the
dependency graph gets composed.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable

from tableforge.errors import (
    CircularDependencyError,
    DatabaseConnectionError,
    MissingConfigurationError,
    ServiceConstructionError,
    UnknownServiceError,
)

logger = logging.getLogger(__name__)


class ServiceName(str, Enum):
    """Every service the bootstrap knows how to build."""

    CONFIG = "config"
    LOG = "log"
    STATUS = "status"
    DATABASE = "database"
    DATABASE_REPLICA = "database_replica"
    SCHEMA = "schema"
    SESSION = "session"
    AUTH = "auth"
    ACL = "acl"
    FILESYSTEM = "filesystem"
    MAILER = "mailer"
    EXTENSIONS = "extensions"
    UIS = "uis"
    LIST_VIEWS = "list_views"
    CUSTOM_ENDPOINTS = "custom_endpoints"
    LANGUAGES = "languages"
    EMBED_MANAGER = "embed_manager"
    HOOK_EMITTER = "hook_emitter"


# Factory signature: (registry, arg) -> service
Factory = Callable[["ServiceRegistry", Any], Any]

# Errors that already describe the problem and are not wrapped
_PASSTHROUGH = (
    MissingConfigurationError,
    UnknownServiceError,
    ServiceConstructionError,
    DatabaseConnectionError,
)


def resolve_name(name: ServiceName | str) -> ServiceName:
    """Map a public name (enum or case-insensitive string) to a ServiceName.

    Raises:
        UnknownServiceError: If the string names no known service
    """
    if isinstance(name, ServiceName):
        return name
    key = str(name).lower()
    try:
        return ServiceName(key)
    except ValueError:
        raise UnknownServiceError(key) from None


class ServiceRegistry:
    """Maps service names to factories and caches singleton results.

    Example:
        registry = ServiceRegistry()
        registry.register(ServiceName.CONFIG, lambda reg, arg: AppConfig())
        config = registry.get("config")
    """

    def __init__(self) -> None:
        self._factories: dict[ServiceName, Factory] = {}
        self._transient: set[ServiceName] = set()
        self._cache: dict[ServiceName, Any] = {}
        # Guards the dicts above; construction takes the per-service lock
        self._lock = threading.Lock()
        self._service_locks: dict[ServiceName, threading.RLock] = {}
        self._local = threading.local()

    def register(self, name: ServiceName | str, factory: Factory, transient: bool = False) -> None:
        """Register (or replace) the factory for a service.

        A transient service is built on every ``get`` and never cached;
        use it for anything bound to the current request or user.

        Replacing a factory drops any cached instance built by the old one.
        """
        key = resolve_name(name)
        with self._lock:
            self._factories[key] = factory
            if transient:
                self._transient.add(key)
            else:
                self._transient.discard(key)
            self._cache.pop(key, None)

    def has(self, name: ServiceName | str) -> bool:
        try:
            return resolve_name(name) in self._factories
        except UnknownServiceError:
            return False

    def is_cached(self, name: ServiceName | str) -> bool:
        return resolve_name(name) in self._cache

    def is_transient(self, name: ServiceName | str) -> bool:
        return resolve_name(name) in self._transient

    def names(self) -> list[ServiceName]:
        """List registered service names in declaration order."""
        return [name for name in ServiceName if name in self._factories]

    def get(self, name: ServiceName | str, arg: Any = None, fresh: bool = False) -> Any:
        """Return the service registered under ``name``.

        Args:
            name: Service name (enum or case-insensitive string)
            arg: Optional argument handed to the factory
            fresh: Build a new instance, bypassing and not updating the cache.
                Transient services always behave as if this were set.

        Raises:
            UnknownServiceError: If no factory is registered under ``name``
            MissingConfigurationError: If the factory's required config is absent
            ServiceConstructionError: If the factory raised; nothing is cached
        """
        key = resolve_name(name)
        factory = self._factories.get(key)
        if factory is None:
            raise UnknownServiceError(key.value)

        if fresh or key in self._transient:
            return self._construct(key, factory, arg)

        if key in self._cache:
            return self._cache[key]

        # Only builders of the same service wait on each other
        with self._service_lock(key):
            if key not in self._cache:
                instance = self._construct(key, factory, arg)
                with self._lock:
                    self._cache[key] = instance
            return self._cache[key]

    def reset(self, name: ServiceName | str | None = None) -> None:
        """Drop cached instances (one service or all). Primarily for testing."""
        with self._lock:
            if name is None:
                self._cache.clear()
            else:
                self._cache.pop(resolve_name(name), None)

    def _service_lock(self, key: ServiceName) -> threading.RLock:
        with self._lock:
            lock = self._service_locks.get(key)
            if lock is None:
                lock = self._service_locks[key] = threading.RLock()
            return lock

    def _resolving(self) -> list[ServiceName]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = self._local.stack = []
        return stack

    def _construct(self, key: ServiceName, factory: Factory, arg: Any) -> Any:
        stack = self._resolving()
        if key in stack:
            chain = [n.value for n in stack[stack.index(key):]] + [key.value]
            raise CircularDependencyError(chain)

        stack.append(key)
        try:
            logger.debug("Constructing service '%s'", key.value)
            return factory(self, arg)
        except _PASSTHROUGH:
            raise
        except Exception as e:
            raise ServiceConstructionError(key.value, e) from e
        finally:
            stack.pop()
