"""Tests for the framework-provided hook handlers."""

import logging
from pathlib import Path

import pytest

from tableforge.auth import AuthProvider, MemorySessionStorage, PasswordService, Session
from tableforge.config import AppConfig
from tableforge.embed import create_embed_manager
from tableforge.errors import MissingConfigurationError, MissingRelationConfigError
from tableforge.hooks import APPLICATION_ERROR, HookEmitter, Payload
from tableforge.hooks.builtin import (
    PRIVATE_USER_FIELDS,
    HookDependencies,
    RelationalPostProcessor,
    register_builtin_hooks,
)
from tableforge.persistence import (
    RelationalTableGateway,
    ResultSet,
    SchemaInspector,
    TableGateway,
    UsersGateway,
)
from tableforge.persistence.schema import RelationColumn
from tableforge.storage import Filesystem, LocalAdapter


@pytest.fixture
def session():
    return Session(MemorySessionStorage())


@pytest.fixture
def auth(db, session):
    return AuthProvider(UsersGateway(db), session)


@pytest.fixture
def deps(app_config, db, auth):
    root = Path(app_config.get("filesystem.root"))
    return HookDependencies(
        config=app_config,
        auth=lambda: auth,
        database=lambda: db,
        filesystem=lambda: Filesystem(LocalAdapter(root)),
        embed_manager=create_embed_manager,
        schema=lambda: SchemaInspector(db),
        password_service=PasswordService(rounds=1000),
    )


@pytest.fixture
def emitter(deps):
    emitter = HookEmitter()
    register_builtin_hooks(emitter, deps)
    return emitter


def users(db, emitter):
    return TableGateway("directus_users", db, emitter)


# =============================================================================
# Registration
# =============================================================================


class TestRegistration:
    def test_registers_expected_events(self, emitter):
        for event in (
            "table.insert:before",
            "table.select",
            "table.directus_users.select",
            "table.insert.directus_users:before",
            "table.update.directus_users:before",
            "table.insert.directus_groups",
            "load.relational.onetomany",
            APPLICATION_ERROR,
        ):
            assert emitter.has_listeners(event), event

    def test_table_names_come_from_config(self, app_config):
        config = AppConfig({**app_config.to_dict(), "tables": {"users": "people"}})
        emitter = HookEmitter()
        RelationalPostProcessor(HookDependencies(config=config)).register(emitter)

        assert emitter.has_listeners("table.people.select")
        assert not emitter.has_listeners("table.directus_users.select")

    def test_application_error_is_logged(self, emitter, caplog):
        emitter.add_action("custom.event", lambda: 1 / 0)

        with caplog.at_level(logging.ERROR, logger="tableforge.hooks.builtin"):
            emitter.run("custom.event")

        assert "Hook handler error in 'custom.event'" in caplog.text


# =============================================================================
# Users
# =============================================================================


class TestPasswordHashing:
    def test_insert_hashes_password(self, db, emitter, deps):
        created = users(db, emitter).insert({"email": "a@example.com", "password": "secret"})

        row = db.select("directus_users", {"id": created["id"]})[0]
        assert row["password"] != "secret"
        assert row["salt"]
        assert deps.password_service.verify("secret", row["salt"], row["password"])

    def test_update_hashes_password(self, db, emitter, deps):
        created = users(db, emitter).insert({"email": "a@example.com", "password": "old"})
        users(db, emitter).update({"password": "new"}, {"id": created["id"]})

        row = db.select("directus_users", {"id": created["id"]})[0]
        assert deps.password_service.verify("new", row["salt"], row["password"])
        assert not deps.password_service.verify("old", row["salt"], row["password"])

    def test_update_without_password_leaves_hash(self, db, emitter):
        created = users(db, emitter).insert({"email": "a@example.com", "password": "pw"})
        before = db.select("directus_users", {"id": created["id"]})[0]

        users(db, emitter).update({"email": "b@example.com"}, {"id": created["id"]})

        after = db.select("directus_users", {"id": created["id"]})[0]
        assert after["password"] == before["password"]
        assert after["salt"] == before["salt"]

    @pytest.mark.parametrize("password", [None, ""])
    def test_update_with_empty_password(self, db, emitter, deps, password):
        created = users(db, emitter).insert({"email": "a@example.com", "password": "old"})

        users(db, emitter).update({"password": password}, {"id": created["id"]})

        row = db.select("directus_users", {"id": created["id"]})[0]
        assert deps.password_service.verify("", row["salt"], row["password"])
        assert not deps.password_service.verify("old", row["salt"], row["password"])

    def test_other_tables_untouched(self, db, emitter):
        db.execute("CREATE TABLE accounts (id INTEGER PRIMARY KEY, password TEXT)")
        TableGateway("accounts", db, emitter).insert({"id": 1, "password": "plain"})
        assert db.select("accounts")[0]["password"] == "plain"


class TestRedaction:
    @pytest.fixture
    def two_users(self, db):
        first = db.insert("directus_users", {"email": "one@example.com", "password": "h1", "salt": "s1", "token": "t1"})
        second = db.insert("directus_users", {"email": "two@example.com", "password": "h2", "salt": "s2", "token": "t2"})
        return first["id"], second["id"]

    def test_anonymous_sees_no_private_fields(self, db, emitter, two_users):
        rows = users(db, emitter).select().to_list()

        assert len(rows) == 2
        for row in rows:
            assert not set(PRIVATE_USER_FIELDS) & set(row)
            assert "email" in row

    def test_own_row_keeps_private_fields(self, db, emitter, auth, two_users):
        me, other = two_users
        auth.login(me)

        rows = {row["id"]: row for row in users(db, emitter).select()}

        assert rows[me]["token"] == "t1"
        assert rows[me]["password"] == "h1"
        assert "token" not in rows[other]
        assert "password" not in rows[other]

    def test_own_row_matches_string_session_id(self, db, emitter, auth, two_users):
        me, other = two_users
        auth.login(str(me))

        rows = {row["id"]: row for row in users(db, emitter).select()}

        assert rows[me]["token"] == "t1"
        assert "token" not in rows[other]

    def test_filter_applies_only_to_users_table(self, db, emitter):
        db.insert("directus_groups", {"name": "editors"})
        rows = TableGateway("directus_groups", db, emitter).select().to_list()
        assert rows[0]["name"] == "editors"


# =============================================================================
# Groups
# =============================================================================


class TestGroupPrivileges:
    def test_new_group_gets_users_privilege(self, db, emitter):
        group = TableGateway("directus_groups", db, emitter).insert({"name": "editors"})

        privileges = db.select("directus_privileges", {"group_id": group["id"]})
        assert len(privileges) == 1
        privilege = privileges[0]
        assert privilege["table_name"] == "directus_users"
        assert (privilege["allow_view"], privilege["allow_add"], privilege["allow_edit"]) == (1, 0, 1)
        assert (privilege["allow_delete"], privilege["allow_alter"]) == (0, 0)
        assert privilege["read_field_blacklist"] == "token"
        assert privilege["write_field_blacklist"] == "group,token"

    def test_seeding_failure_does_not_fail_insert(self, db, emitter):
        db.execute("DROP TABLE directus_privileges")

        group = TableGateway("directus_groups", db, emitter).insert({"name": "editors"})

        assert db.select("directus_groups", {"id": group["id"]})


# =============================================================================
# Files
# =============================================================================


class TestFileUpload:
    def test_strips_data_and_stamps_user(self, db, emitter, auth):
        user = db.insert("directus_users", {"email": "u@example.com"})
        auth.login(user["id"])

        payload = emitter.apply(
            "table.insert:before",
            Payload(table_name="directus_files", data={"name": "a.png", "data": "base64..."}),
        )

        assert "data" not in payload.data
        assert payload.data["user"] == user["id"]

    def test_anonymous_upload_has_no_user(self, emitter):
        payload = emitter.apply(
            "table.insert:before",
            Payload(table_name="directus_files", data={"name": "a.png", "data": "x"}),
        )
        assert payload.data["user"] is None

    def test_other_tables_keep_data(self, emitter):
        payload = emitter.apply(
            "table.insert:before",
            Payload(table_name="directus_messages", data={"data": "keep"}),
        )
        assert payload.data == {"data": "keep"}


class TestFileUrls:
    @pytest.fixture
    def thumbs(self, app_config):
        return Path(app_config.get("filesystem.root")) / "thumbs"

    def test_urls_and_current_thumbnail(self, db, emitter, thumbs):
        created = db.insert("directus_files", {"name": "scan.tif", "type": "image/tiff"})
        (thumbs / f"{created['id']}.jpg").write_bytes(b"")

        row = TableGateway("directus_files", db, emitter).select()[0]

        assert row["url"] == "/storage/uploads/scan.tif"
        assert row["thumbnail_url"] == f"/storage/uploads/thumbs/{created['id']}.jpg"
        assert row["html"] is None

    def test_legacy_thumbnail(self, db, emitter, thumbs):
        db.insert("directus_files", {"name": "clip.png", "type": "image/png"})
        (thumbs / "clip-png-160-160-true.jpg").write_bytes(b"")

        row = TableGateway("directus_files", db, emitter).select()[0]

        assert row["thumbnail_url"] == "/storage/uploads/thumbs/clip-png-160-160-true.jpg"

    def test_current_thumbnail_wins_over_legacy(self, db, emitter, thumbs):
        created = db.insert("directus_files", {"name": "clip.png", "type": "image/png"})
        (thumbs / "clip-png-160-160-true.jpg").write_bytes(b"")
        (thumbs / f"{created['id']}.png").write_bytes(b"")

        row = TableGateway("directus_files", db, emitter).select()[0]

        assert row["thumbnail_url"] == f"/storage/uploads/thumbs/{created['id']}.png"

    def test_missing_thumbnail_is_none(self, db, emitter):
        db.insert("directus_files", {"name": "doc.txt", "type": "text/plain"})
        row = TableGateway("directus_files", db, emitter).select()[0]
        assert row["thumbnail_url"] is None

    def test_vimeo_legacy_name_and_embed_html(self, db, emitter, thumbs):
        db.insert("directus_files", {"name": "76979871", "type": "embed/vimeo"})
        (thumbs / "76979871-vimeo-220-124-true.jpg").write_bytes(b"")

        row = TableGateway("directus_files", db, emitter).select()[0]

        assert row["thumbnail_url"] == "/storage/uploads/thumbs/76979871-vimeo-220-124-true.jpg"
        assert "player.vimeo.com/video/76979871" in row["html"]

    def test_requires_url_configuration(self, db, app_config):
        config = AppConfig({**app_config.to_dict(), "filesystem": {"root": "."}})
        emitter = HookEmitter()
        register_builtin_hooks(emitter, HookDependencies(config=config, database=lambda: db))
        db.insert("directus_files", {"name": "a.png"})

        with pytest.raises(MissingConfigurationError, match="filesystem.root_url"):
            TableGateway("directus_files", db, emitter).select()


# =============================================================================
# Messages
# =============================================================================


class TestMessageAttachments:
    def test_ids_expand_to_file_rows(self, db, emitter):
        first = db.insert("directus_files", {"name": "a.png", "type": "image/png"})
        second = db.insert("directus_files", {"name": "b.png", "type": "image/png"})
        db.insert("directus_messages", {"subject": "hi", "attachment": f"{first['id']}, {second['id']}"})

        message = TableGateway("directus_messages", db, emitter).select()[0]

        data = message["attachment"]["data"]
        assert list(data) == [str(first["id"]), str(second["id"])]
        assert data[str(first["id"])]["name"] == "a.png"
        # expanded rows went through the files select filters too
        assert data[str(second["id"])]["url"] == "/storage/uploads/b.png"

    def test_unknown_id_maps_to_none(self, db, emitter):
        db.insert("directus_messages", {"subject": "hi", "attachment": "999"})
        message = TableGateway("directus_messages", db, emitter).select()[0]
        assert message["attachment"] == {"data": {"999": None}}

    def test_empty_attachment(self, db, emitter):
        db.insert("directus_messages", {"subject": "hi", "attachment": ""})
        message = TableGateway("directus_messages", db, emitter).select()[0]
        assert message["attachment"] == {"data": {}}

    def test_rows_without_attachment_column_untouched(self, deps):
        processor = RelationalPostProcessor(deps)
        result = ResultSet([{"id": 1, "subject": "x"}])

        processor.expand_message_attachments(result)

        assert result.to_list() == [{"id": 1, "subject": "x"}]


# =============================================================================
# Translations
# =============================================================================


TRANSLATION_OPTIONS = {
    "languages_table": "languages",
    "left_column_name": "language",
    "languages_code_column": "code",
}


class TestTranslations:
    def load(self, db, emitter, column, rows):
        return RelationalTableGateway("article_translations", db, emitter).load_one_to_many(column, rows)

    def test_plain_ids_become_keys(self, db, emitter):
        column = RelationColumn("translations", "translation", TRANSLATION_OPTIONS)
        rows = [{"id": 1, "language": "en", "title": "Hello"}, {"id": 2, "language": "fr", "title": "Salut"}]

        data = self.load(db, emitter, column, rows)

        assert data == {"data": {"en": rows[0], "fr": rows[1]}}

    def test_nested_language_uses_code_and_primary_key(self, db, emitter):
        column = RelationColumn("translations", "translation", TRANSLATION_OPTIONS)
        rows = [{"id": 1, "language": {"data": {"id": 7, "code": "de"}}, "title": "Hallo"}]

        data = self.load(db, emitter, column, rows)

        assert data == {"data": {"de": {"id": 1, "language": 7, "title": "Hallo"}}}

    def test_duplicate_code_keeps_last(self, db, emitter, caplog):
        column = RelationColumn("translations", "translation", TRANSLATION_OPTIONS)
        rows = [{"id": 1, "language": "en"}, {"id": 2, "language": "en"}]

        with caplog.at_level(logging.WARNING, logger="tableforge.hooks.builtin"):
            data = self.load(db, emitter, column, rows)

        assert data == {"data": {"en": {"id": 2, "language": "en"}}}
        assert "Duplicate translation" in caplog.text

    def test_missing_languages_table_raises(self, db, emitter):
        column = RelationColumn("translations", "translation", {"left_column_name": "language"})

        with pytest.raises(MissingRelationConfigError, match="language"):
            self.load(db, emitter, column, [{"id": 1, "language": "en"}])

    def test_other_ui_is_untouched(self, db, emitter):
        column = RelationColumn("comments", "one_to_many", {})
        rows = [{"id": 1}]
        assert self.load(db, emitter, column, rows) == {"data": rows}
