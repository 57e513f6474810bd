"""Tests for TableForge CLI commands."""

import pytest
from click.testing import CliRunner

from tableforge.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, db_url):
    app = tmp_path / "app"
    (app / "customs" / "extensions" / "blog").mkdir(parents=True)
    path = tmp_path / "tableforge.yaml"
    path.write_text(
        f"application_path: {app}\n"
        "database:\n"
        f"  url: {db_url}\n"
    )
    return path


@pytest.fixture
def empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("{}\n")
    return path


class TestServices:
    def test_lists_every_service_as_lazy(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "services"])

        assert result.exit_code == 0
        assert "hook_emitter" in result.output
        assert "database" in result.output
        assert "lazy" in result.output

    def test_request_services_are_transient(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "services"])

        lines = {line.split()[0]: line.split()[1] for line in result.output.splitlines() if line.strip()}
        assert lines["acl"] == "transient"
        assert lines["auth"] == "transient"
        assert lines["hook_emitter"] == "transient"
        assert lines["database"] == "lazy"


class TestExtensions:
    def test_lists_extensions(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "extensions"])
        assert result.exit_code == 0
        assert "blog" in result.output
        assert "extensions/blog/main" in result.output

    def test_none_found(self, runner, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text(f"application_path: {tmp_path}\n")
        result = runner.invoke(cli, ["--config", str(path), "extensions"])
        assert result.exit_code == 0
        assert "No extensions found." in result.output

    def test_missing_application_path(self, runner, empty_config):
        result = runner.invoke(cli, ["--config", str(empty_config), "extensions"])
        assert result.exit_code == 1
        assert "application_path" in result.output


class TestCheckConfig:
    def test_valid(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "check-config"])
        assert result.exit_code == 0
        assert "Database: sqlite" in result.output
        assert "Configuration is valid." in result.output

    def test_connect(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "check-config", "--connect"])
        assert result.exit_code == 0
        assert "Connection OK" in result.output

    def test_connect_failure(self, runner, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text(f"database:\n  url: sqlite:///{tmp_path / 'no' / 'db.sqlite'}\n")
        result = runner.invoke(cli, ["--config", str(path), "check-config", "--connect"])
        assert result.exit_code == 1
        assert "Database connection failed." in result.output

    def test_missing_database_settings(self, runner, empty_config, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        result = runner.invoke(cli, ["--config", str(empty_config), "check-config"])
        assert result.exit_code == 1
        assert "Missing configuration: database.type" in result.output

    def test_defaults_to_environment(self, runner, config_file, monkeypatch):
        monkeypatch.setenv("TABLEFORGE_CONFIG", str(config_file))
        result = runner.invoke(cli, ["check-config"])
        assert result.exit_code == 0
        assert "Database: sqlite" in result.output
