"""Application bootstrap: the service factories and the request scope.

One ``Bootstrap`` is created at process start and handed to whatever
serves requests. Process-wide services (database, embed providers,
discovery results) are cached in its registry. Request-scoped services
(auth, acl and the hook emitter bound to them) are transient: built on
every lookup and never cached, usually through ``request_scope``.

Usage:
    bootstrap = Bootstrap(AppConfig.from_env(base_path))
    scope = bootstrap.request_scope(session)
    if scope.acl.can("articles", "view"):
        rows = scope.gateway("articles").select()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from tableforge.auth import AccessControlBuilder, AclSnapshot, AuthProvider, MemorySessionStorage, Session
from tableforge.config import DEFAULT_SESSION_PREFIX, DEFAULT_TABLES, AppConfig
from tableforge.embed import create_embed_manager
from tableforge.hooks import HookEmitter
from tableforge.hooks.builtin import HookDependencies, register_builtin_hooks
from tableforge.logs import configure_logging
from tableforge.persistence import (
    Database,
    DatabaseConfig,
    RelationalTableGateway,
    SchemaInspector,
    SettingsGateway,
    UsersGateway,
)
from tableforge.services.discovery import (
    LanguageManager,
    find_custom_endpoints,
    find_extensions,
    find_list_views,
    find_locale_files,
    find_uis,
)
from tableforge.services.mail import create_mailer
from tableforge.services.registry import ServiceName, ServiceRegistry
from tableforge.storage import Filesystem, create_adapter

logger = logging.getLogger(__name__)

# Settings read from the "files" collection for embed providers
EMBED_SETTINGS = ["thumbnail_size", "thumbnail_quality", "thumbnail_crop_enabled"]


# ----------------------------------------------------------------------
# Factories: (registry, arg) -> service
# ----------------------------------------------------------------------


def _config(reg: ServiceRegistry) -> AppConfig:
    return reg.get(ServiceName.CONFIG)


def _log(reg: ServiceRegistry, arg: Any) -> logging.Logger:
    config = _config(reg)
    path = config.get("logging.path")
    if path is None and config.application_path is not None:
        path = config.application_path / "logs"
    return configure_logging(config.get("logging.level", "INFO"), path)


def _status(reg: ServiceRegistry, arg: Any) -> dict[str, Any]:
    config = _config(reg)
    config.require("status_mapping", "status")
    return config["status_mapping"]


def _database(reg: ServiceRegistry, arg: Any) -> Database:
    db = Database(DatabaseConfig.from_config(_config(reg)))
    db.connect()
    return db


def _database_replica(reg: ServiceRegistry, arg: Any) -> Database:
    config = _config(reg)
    if not config.has("database.replica"):
        return reg.get(ServiceName.DATABASE)
    db = Database(DatabaseConfig.from_config(config, "database.replica"))
    db.connect()
    return db


def _schema(reg: ServiceRegistry, arg: Any) -> SchemaInspector:
    return SchemaInspector(reg.get(ServiceName.DATABASE))


def _session(reg: ServiceRegistry, arg: Any) -> Session:
    prefix = _config(reg).get("session.prefix", DEFAULT_SESSION_PREFIX)
    return Session(MemorySessionStorage(), prefix=prefix)


def _auth(reg: ServiceRegistry, session: Session | None) -> AuthProvider:
    config = _config(reg)
    session = session if session is not None else reg.get(ServiceName.SESSION)
    users = UsersGateway(reg.get(ServiceName.DATABASE), table=config.table("users"))
    return AuthProvider(users, session)


def _acl(reg: ServiceRegistry, session: Session | None) -> AclSnapshot:
    config = _config(reg)
    session = session if session is not None else reg.get(ServiceName.SESSION)
    builder = AccessControlBuilder({role: config.table(role) for role in DEFAULT_TABLES})
    return builder.build(reg.get(ServiceName.DATABASE), session)


def _filesystem(reg: ServiceRegistry, arg: Any) -> Filesystem:
    config = _config(reg)
    config.require("filesystem", "filesystem")
    return Filesystem(create_adapter(config.section("filesystem")))


def _mailer(reg: ServiceRegistry, arg: Any):
    return create_mailer(_config(reg).get("mail"))


def _application_path(reg: ServiceRegistry, dependent: str):
    config = _config(reg)
    config.require("application_path", dependent)
    return config.application_path


def _extensions(reg: ServiceRegistry, arg: Any) -> dict[str, str]:
    return find_extensions(_application_path(reg, "extensions"))


def _uis(reg: ServiceRegistry, arg: Any) -> list[str]:
    return find_uis(_application_path(reg, "uis"))


def _list_views(reg: ServiceRegistry, arg: Any) -> list[str]:
    return find_list_views(_application_path(reg, "list_views"))


def _custom_endpoints(reg: ServiceRegistry, arg: Any):
    return find_custom_endpoints(_application_path(reg, "custom_endpoints"))


def _languages(reg: ServiceRegistry, arg: Any) -> LanguageManager:
    return LanguageManager(find_locale_files(_application_path(reg, "languages")))


def _embed_manager(reg: ServiceRegistry, arg: Any):
    config = _config(reg)
    db = reg.get(ServiceName.DATABASE)
    settings_table = SettingsGateway(db, table=config.table("settings"))
    try:
        settings = settings_table.fetch_collection("files", EMBED_SETTINGS)
    except Exception as e:
        logger.warning("Could not load file settings for embed providers: %s", e)
        settings = {}
    return create_embed_manager(settings, config.get("embeds.providers") or [])


def _hook_emitter(reg: ServiceRegistry, auth: AuthProvider | None) -> HookEmitter:
    """Emitter with the builtin hooks.

    When ``auth`` is given the handlers act for that user; otherwise each
    handler call builds auth for the shared session.
    """
    if auth is not None:
        resolve_auth = lambda: auth  # noqa: E731
    else:
        resolve_auth = lambda: reg.get(ServiceName.AUTH)  # noqa: E731

    emitter = HookEmitter()
    deps = HookDependencies(
        config=_config(reg),
        auth=resolve_auth,
        database=lambda: reg.get(ServiceName.DATABASE),
        filesystem=lambda: reg.get(ServiceName.FILESYSTEM),
        embed_manager=lambda: reg.get(ServiceName.EMBED_MANAGER),
        schema=lambda: reg.get(ServiceName.SCHEMA),
    )
    register_builtin_hooks(emitter, deps)
    return emitter


FACTORIES = {
    ServiceName.LOG: _log,
    ServiceName.STATUS: _status,
    ServiceName.DATABASE: _database,
    ServiceName.DATABASE_REPLICA: _database_replica,
    ServiceName.SCHEMA: _schema,
    ServiceName.SESSION: _session,
    ServiceName.AUTH: _auth,
    ServiceName.ACL: _acl,
    ServiceName.FILESYSTEM: _filesystem,
    ServiceName.MAILER: _mailer,
    ServiceName.EXTENSIONS: _extensions,
    ServiceName.UIS: _uis,
    ServiceName.LIST_VIEWS: _list_views,
    ServiceName.CUSTOM_ENDPOINTS: _custom_endpoints,
    ServiceName.LANGUAGES: _languages,
    ServiceName.EMBED_MANAGER: _embed_manager,
    ServiceName.HOOK_EMITTER: _hook_emitter,
}

# Bound to whoever is logged in; rebuilt on every lookup
TRANSIENT = frozenset({ServiceName.AUTH, ServiceName.ACL, ServiceName.HOOK_EMITTER})


# ----------------------------------------------------------------------
# Context objects
# ----------------------------------------------------------------------


@dataclass
class RequestScope:
    """Services built for one request. Never shared between requests."""

    session: Session
    auth: AuthProvider
    acl: AclSnapshot
    emitter: HookEmitter
    db: Database

    def gateway(self, table: str) -> RelationalTableGateway:
        return RelationalTableGateway(table, self.db, self.emitter)


class Bootstrap:
    """The application context: configuration plus the service registry."""

    def __init__(self, config: AppConfig | None = None, registry: ServiceRegistry | None = None):
        self.config = config if config is not None else AppConfig()
        self.registry = registry if registry is not None else ServiceRegistry()

        config_ = self.config
        self.registry.register(ServiceName.CONFIG, lambda reg, arg: config_)
        for name, factory in FACTORIES.items():
            self.registry.register(name, factory, transient=name in TRANSIENT)

    def get(self, name: ServiceName | str, arg: Any = None, fresh: bool = False) -> Any:
        return self.registry.get(name, arg, fresh)

    def extension_exists(self, name: str) -> bool:
        return name in self.get(ServiceName.EXTENSIONS)

    def request_scope(self, session: Session | None = None) -> RequestScope:
        """Build the request-scoped services for ``session``."""
        if session is None:
            session = self.get(ServiceName.SESSION, fresh=True)
        auth = self.get(ServiceName.AUTH, session)
        acl = self.get(ServiceName.ACL, session)
        emitter = self.get(ServiceName.HOOK_EMITTER, auth)
        return RequestScope(
            session=session,
            auth=auth,
            acl=acl,
            emitter=emitter,
            db=self.get(ServiceName.DATABASE),
        )

    def close(self) -> None:
        """Release cached resources (process teardown)."""
        for name in (ServiceName.DATABASE_REPLICA, ServiceName.DATABASE):
            if self.registry.is_cached(name):
                self.registry.get(name).close()
        self.registry.reset()
