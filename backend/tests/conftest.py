"""Shared fixtures: a file-backed SQLite database with the system tables."""

import pytest

from tableforge.config import AppConfig
from tableforge.persistence import Database, DatabaseConfig
from tableforge.services import Bootstrap, ServiceName

SYSTEM_SCHEMA = [
    """CREATE TABLE directus_tables (
        table_name TEXT PRIMARY KEY,
        user_create_column TEXT
    )""",
    """CREATE TABLE directus_users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT,
        "group" INTEGER,
        password TEXT,
        salt TEXT,
        token TEXT,
        access_token TEXT,
        reset_token TEXT,
        reset_expiration TEXT,
        email_messages INTEGER,
        last_access TEXT,
        last_page TEXT
    )""",
    """CREATE TABLE directus_groups (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT
    )""",
    """CREATE TABLE directus_privileges (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        group_id INTEGER,
        table_name TEXT,
        allow_view INTEGER,
        allow_add INTEGER,
        allow_edit INTEGER,
        allow_delete INTEGER,
        allow_alter INTEGER,
        read_field_blacklist TEXT,
        write_field_blacklist TEXT
    )""",
    """CREATE TABLE directus_files (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT,
        type TEXT,
        title TEXT,
        user INTEGER
    )""",
    """CREATE TABLE directus_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        subject TEXT,
        attachment TEXT
    )""",
    """CREATE TABLE directus_settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        collection TEXT,
        name TEXT,
        value TEXT
    )""",
    """CREATE TABLE languages (
        id INTEGER PRIMARY KEY,
        code TEXT
    )""",
]


def create_system_tables(db: Database) -> None:
    for statement in SYSTEM_SCHEMA:
        db.execute(statement)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'tableforge.db'}"


@pytest.fixture
def db(db_url):
    """Connected database with the system tables created."""
    database = Database(DatabaseConfig(url=db_url))
    database.connect()
    create_system_tables(database)
    yield database
    database.close()


@pytest.fixture
def app_config(tmp_path, db_url):
    """Configuration pointing at the test database and a temp storage root."""
    storage = tmp_path / "storage"
    (storage / "thumbs").mkdir(parents=True)
    return AppConfig({
        "application_path": str(tmp_path / "app"),
        "database": {"url": db_url},
        "filesystem": {
            "adapter": "local",
            "root": str(storage),
            "root_url": "/storage/uploads",
            "root_thumb_url": "/storage/uploads/thumbs",
        },
        "status_mapping": {"0": "deleted", "1": "active", "2": "draft"},
    })


@pytest.fixture
def bootstrap(app_config):
    """Bootstrap over the test configuration with the system tables created."""
    bootstrap = Bootstrap(app_config)
    create_system_tables(bootstrap.get(ServiceName.DATABASE))
    yield bootstrap
    bootstrap.close()
