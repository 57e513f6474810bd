"""Framework-provided hook handlers.

These handlers implement the business rules that sit between the table
gateways and the database:

- file rows: upload data stripped on insert, URLs and embed HTML on select
- message rows: attachment ids expanded into file rows
- user rows: private fields redacted for other users, passwords hashed
- group rows: default privileges seeded for new groups
- one-to-many translations: re-keyed by language code

Collaborators are handed in through ``HookDependencies``. Each one is a
zero-argument callable so that expensive services (database, embed
providers) are only resolved when a handler needs them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from tableforge.auth.password import PasswordService
from tableforge.config import AppConfig
from tableforge.errors import HandlerError, MissingRelationConfigError
from tableforge.hooks.emitter import HookEmitter
from tableforge.hooks.events import APPLICATION_ERROR, LOAD_RELATIONAL_ONETOMANY, table_event
from tableforge.hooks.types import Payload, Priority
from tableforge.persistence.gateway import PrivilegesGateway, RelationalTableGateway

if TYPE_CHECKING:
    from tableforge.auth.provider import AuthProvider
    from tableforge.embed import EmbedManager
    from tableforge.persistence.database import Database
    from tableforge.persistence.schema import SchemaInspector
    from tableforge.storage import Filesystem

logger = logging.getLogger(__name__)

# Fields only the owning user may see on their own user row
PRIVATE_USER_FIELDS = (
    "password",
    "salt",
    "token",
    "access_token",
    "reset_token",
    "reset_expiration",
    "email_messages",
    "last_access",
    "last_page",
)

# Source formats whose thumbnails are rendered as JPEG
JPEG_THUMBNAIL_EXTENSIONS = ("tif", "tiff", "psd", "pdf")

THUMBNAIL_DIR = "thumbs"


def _unavailable(name: str) -> Callable[[], Any]:
    def resolve() -> Any:
        raise RuntimeError(f"Hook dependency '{name}' is not configured")

    return resolve


@dataclass
class HookDependencies:
    """Collaborators used by the builtin handlers.

    Attributes:
        config: Application configuration
        auth: Returns the current AuthProvider (or None when anonymous)
        database: Returns the Database
        filesystem: Returns the file storage
        embed_manager: Returns the EmbedManager
        schema: Returns the SchemaInspector
        password_service: Hashes user passwords on write
    """

    config: AppConfig
    auth: Callable[[], AuthProvider | None] = lambda: None
    database: Callable[[], Database] = field(default_factory=lambda: _unavailable("database"))
    filesystem: Callable[[], Filesystem] = field(default_factory=lambda: _unavailable("filesystem"))
    embed_manager: Callable[[], EmbedManager] = field(
        default_factory=lambda: _unavailable("embed_manager")
    )
    schema: Callable[[], SchemaInspector] = field(default_factory=lambda: _unavailable("schema"))
    password_service: PasswordService = field(default_factory=PasswordService)

    def current_user_id(self) -> Any:
        auth = self.auth()
        if auth is None or not auth.logged_in():
            return None
        return auth.get_user_info("id")


class RelationalPostProcessor:
    """The builtin filters and actions, bound to one set of dependencies."""

    def __init__(self, deps: HookDependencies):
        self.deps = deps
        self.emitter: HookEmitter | None = None
        config = deps.config
        self.files_table = config.table("files")
        self.messages_table = config.table("messages")
        self.users_table = config.table("users")
        self.groups_table = config.table("groups")
        self.privileges_table = config.table("privileges")

    def register(self, emitter: HookEmitter) -> None:
        self.emitter = emitter
        emitter.add_filter(table_event("insert", stage="before"), self.prepare_file_upload)
        emitter.add_filter(table_event("select"), self.expand_select_result)
        emitter.add_filter(table_event("select", self.users_table), self.redact_private_user_fields)
        emitter.add_filter(table_event("insert", self.users_table, "before"), self.hash_user_password)
        emitter.add_filter(table_event("update", self.users_table, "before"), self.hash_user_password)
        emitter.add_action(table_event("insert", self.groups_table), self.seed_group_privileges)
        emitter.add_filter(
            LOAD_RELATIONAL_ONETOMANY, self.index_translations, priority=Priority.HIGH
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def prepare_file_upload(self, payload: Payload) -> Payload:
        """Drop raw upload data and stamp the uploading user on new file rows."""
        if payload.table_name == self.files_table:
            payload.data.pop("data", None)
            payload.data["user"] = self.deps.current_user_id()
        return payload

    def hash_user_password(self, payload: Payload) -> Payload:
        """Replace a plaintext password with its salted hash."""
        data = payload.data
        if "password" in data:
            service = self.deps.password_service
            salt = service.random_salt()
            data["salt"] = salt
            # A null password is stored as the hash of the empty string
            data["password"] = service.hash(data["password"] or "", salt)
        return payload

    def seed_group_privileges(self, group: dict[str, Any]) -> None:
        """Give a new group view/edit access to the users table."""
        gateway = PrivilegesGateway(self.deps.database(), self.emitter, table=self.privileges_table)
        gateway.insert_privilege({
            "group_id": group["id"],
            "allow_view": 1,
            "allow_add": 0,
            "allow_edit": 1,
            "allow_delete": 0,
            "allow_alter": 0,
            "table_name": self.users_table,
            "read_field_blacklist": "token",
            "write_field_blacklist": "group,token",
        })

    # ------------------------------------------------------------------
    # Selects
    # ------------------------------------------------------------------

    def expand_select_result(self, payload: Payload) -> Payload:
        table = payload.select_state.get("table")
        if table == self.files_table:
            self.add_file_urls(payload.result)
        elif table == self.messages_table:
            self.expand_message_attachments(payload.result)
        return payload

    def add_file_urls(self, result) -> None:
        """Add ``url``, ``thumbnail_url`` and ``html`` to every file row."""
        config = self.deps.config
        config.require(["filesystem.root_url", "filesystem.root_thumb_url"], "file urls")
        file_url = config.get("filesystem.root_url")
        thumbnail_url = config.get("filesystem.root_thumb_url")
        files = self.deps.filesystem()
        embeds = self.deps.embed_manager()

        rows = result.to_list()
        for row in rows:
            name = str(row["name"])
            parts = name.split(".")
            extension = parts.pop()
            basename = ".".join(parts)

            row["url"] = f"{file_url}/{name}"
            if extension in JPEG_THUMBNAIL_EXTENSIONS:
                extension = "jpg"

            thumbnail_filename = f"{row['id']}.{extension}"
            if row.get("type") == "embed/vimeo":
                legacy_filename = f"{name}-vimeo-220-124-true.jpg"
            else:
                legacy_filename = f"{basename}-{extension}-160-160-true.jpg"

            # Current naming wins over the legacy one
            row["thumbnail_url"] = None
            if files.exists(f"{THUMBNAIL_DIR}/{legacy_filename}"):
                row["thumbnail_url"] = f"{thumbnail_url}/{legacy_filename}"
            if files.exists(f"{THUMBNAIL_DIR}/{thumbnail_filename}"):
                row["thumbnail_url"] = f"{thumbnail_url}/{thumbnail_filename}"

            provider = embeds.get_by_type(row.get("type"))
            row["html"] = provider.get_code(row) if provider else None

        result.initialize(rows)

    def expand_message_attachments(self, result) -> None:
        """Replace comma-separated attachment ids with the file rows they reference."""
        rows = result.to_list()
        file_ids: list[Any] = []
        for row in rows:
            if "attachment" not in row:
                continue
            ids = [part.strip() for part in str(row["attachment"] or "").split(",")]
            ids = [i for i in ids if i]
            row["attachment"] = {"data": {i: {} for i in ids}}
            file_ids.extend(int(i) if i.isdigit() else i for i in ids)

        if file_ids:
            gateway = RelationalTableGateway(self.files_table, self.deps.database(), self.emitter)
            entries = {
                str(entry["id"]): entry
                for entry in gateway.load_items({"filters": {"id": {"in": file_ids}}})
            }
            for row in rows:
                if row.get("attachment"):
                    data = row["attachment"]["data"]
                    for attachment_id in data:
                        data[attachment_id] = entries.get(attachment_id)

        result.initialize(rows)

    def redact_private_user_fields(self, payload: Payload) -> Payload:
        """Strip private fields from every user row except the current user's own."""
        user_id = self.deps.current_user_id()
        rows = []
        for row in payload.result:
            # Session ids may be strings while row ids are integers
            if user_id is not None and str(row.get("id")) == str(user_id):
                rows.append(row)
                continue
            rows.append({k: v for k, v in row.items() if k not in PRIVATE_USER_FIELDS})
        payload.result.initialize(rows)
        return payload

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def index_translations(self, payload: Payload) -> Payload:
        """Key one-to-many translation rows by language code.

        Only applies to columns whose UI is ``translation``. When the
        linking column holds a nested language record, its code becomes
        the index and the column is reduced to the record's primary key.

        Raises:
            MissingRelationConfigError: If ``languages_table`` is not set
        """
        column = payload.column
        if column.ui != "translation":
            return payload

        options = column.ui_options or {}
        code_column = options.get("languages_code_column", "id")
        languages_table = options.get("languages_table")
        link_column = options.get("left_column_name")

        if not languages_table:
            raise MissingRelationConfigError(link_column)

        primary_key = None
        indexed: dict[Any, dict[str, Any]] = {}
        for row in payload.data["data"]:
            row = dict(row)
            index = row[link_column]
            if isinstance(index, dict):
                if primary_key is None:
                    primary_key = self.deps.schema().primary_key(languages_table)
                language = index["data"]
                index = language[code_column]
                row[link_column] = language[primary_key]

            if index in indexed:
                logger.warning(
                    "Duplicate translation for language '%s' on %s, keeping the last row",
                    index,
                    link_column,
                )
            indexed[index] = row

        payload.data["data"] = indexed
        return payload


def log_application_error(error: BaseException) -> None:
    if isinstance(error, HandlerError):
        logger.error("Hook handler error in '%s': %s", error.event, error.cause)
    else:
        logger.error("Application error: %s", error, exc_info=error)


def register_builtin_hooks(emitter: HookEmitter, deps: HookDependencies) -> RelationalPostProcessor:
    """Register framework-provided hooks on ``emitter``.

    Called when the hook emitter service is built.
    """
    emitter.add_action(APPLICATION_ERROR, log_application_error)
    processor = RelationalPostProcessor(deps)
    processor.register(emitter)
    return processor
