"""
Tests for CLI commands.

These tests verify the command-line interface functionality including:
- add-origin / show-origin / list-contents output
- delete-origin in cascade, bulk and purge modes
- delete-content in session and bulk modes
- scenarios list / run
- config commands
"""

import json

import pytest

from click.testing import CliRunner
from sqlalchemy import text

from cascadelab.cli import cli
from cascadelab.database.repository import OriginRepository
from cascadelab.database.session import cleanup_database, init_database, session_scope


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_database_state():
    """Reset global database state before and after each test."""
    cleanup_database()
    yield
    cleanup_database()


@pytest.fixture
def populated_test_db(temp_db):
    """Create a database with two origins: one with two contents, one empty."""
    init_database(str(temp_db))

    with session_scope() as session:
        repo = OriginRepository(session)
        repo.create_origin("Origin 1", ["Content 1", "Content 2"])
        repo.create_origin("Empty origin")

    return temp_db


def _count(table: str) -> int:
    with session_scope() as session:
        return session.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()


class TestCreateAndShow:
    """Test commands that create and display records."""

    def test_init_db(self, cli_runner, temp_db):
        result = cli_runner.invoke(cli, ["--db", str(temp_db), "init-db"])

        assert result.exit_code == 0
        assert "Database ready" in result.output
        assert temp_db.exists()

    def test_add_origin_with_contents(self, cli_runner, temp_db):
        result = cli_runner.invoke(
            cli, ["--db", str(temp_db), "add-origin", "Docs", "-c", "a", "-c", "b"]
        )

        assert result.exit_code == 0
        assert "Created origin 1 (Docs)" in result.output
        assert _count("CONTENT") == 2

    def test_show_origin(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "show-origin", "1"]
        )

        assert result.exit_code == 0
        assert "Origin 1: Origin 1" in result.output
        assert "Content (2):" in result.output
        assert "Content 2" in result.output

    def test_show_origin_json(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "show-origin", "1", "--json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["name"] == "Origin 1"
        assert sorted(c["name"] for c in data["content"]) == ["Content 1", "Content 2"]
        assert {c["origin_id"] for c in data["content"]} == {1}

    def test_show_missing_origin(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "show-origin", "99"]
        )

        assert result.exit_code == 1
        assert "Origin 99 not found" in result.output

    def test_list_contents(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(cli, ["--db", str(populated_test_db), "list-contents"])

        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines[0].split() == ["ID", "ORIGIN", "NAME"]
        assert len(lines) == 3

    def test_list_contents_json_filtered(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli,
            ["--db", str(populated_test_db), "list-contents", "--origin", "2", "--json"],
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout) == []


class TestDeleteOriginCommand:
    """Test delete-origin in its three modes."""

    def test_delete_cascades_to_content(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "delete-origin", "1"]
        )

        assert result.exit_code == 0
        assert "Deleted origin 1 and 2 content record(s)" in result.output
        assert _count("ORIGIN") == 1
        assert _count("CONTENT") == 0

    def test_bulk_delete_with_content_fails(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "delete-origin", "1", "--bulk"]
        )

        assert result.exit_code == 1
        assert "Cannot delete ORIGIN row 1" in result.output
        assert _count("ORIGIN") == 2
        assert _count("CONTENT") == 2

    def test_bulk_delete_without_content(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "delete-origin", "2", "--bulk"]
        )

        assert result.exit_code == 0
        assert "Deleted 1 origin row(s) by statement" in result.output
        assert _count("ORIGIN") == 1

    def test_purge(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "delete-origin", "1", "--purge"]
        )

        assert result.exit_code == 0
        assert "Purged 1 origin row(s) and 2 content row(s)" in result.output
        assert _count("CONTENT") == 0

    def test_bulk_and_purge_exclusive(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli,
            ["--db", str(populated_test_db), "delete-origin", "1", "--bulk", "--purge"],
        )

        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    @pytest.mark.parametrize("extra", [[], ["--bulk"], ["--purge"]])
    def test_delete_missing_origin(self, cli_runner, populated_test_db, extra):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "delete-origin", "99", *extra]
        )

        assert result.exit_code == 1
        assert "Origin 99 not found" in result.output
        assert "✓" not in result.output
        assert _count("ORIGIN") == 2


class TestDeleteContentCommand:
    """Test delete-content; the origin always survives."""

    @pytest.mark.parametrize("extra", [[], ["--bulk"]])
    def test_delete_content_keeps_origin(self, cli_runner, populated_test_db, extra):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "delete-content", "1", *extra]
        )

        assert result.exit_code == 0
        assert "Deleted content 1" in result.output
        assert _count("CONTENT") == 1
        assert _count("ORIGIN") == 2

    @pytest.mark.parametrize("extra", [[], ["--bulk"]])
    def test_delete_missing_content(self, cli_runner, populated_test_db, extra):
        result = cli_runner.invoke(
            cli, ["--db", str(populated_test_db), "delete-content", "99", *extra]
        )

        assert result.exit_code == 1
        assert "Content 99 not found" in result.output


class TestScenarioCommands:
    """Test scenarios list / run."""

    def test_list(self, cli_runner):
        result = cli_runner.invoke(cli, ["scenarios", "list"])

        assert result.exit_code == 0
        assert "graph-delete" in result.output
        assert "bulk-origin-delete" in result.output

    def test_run_all(self, cli_runner, temp_db):
        result = cli_runner.invoke(cli, ["--db", str(temp_db), "scenarios", "run"])

        assert result.exit_code == 0, result.output
        assert "0 failed" in result.output
        assert _count("ORIGIN") == 0

    def test_run_selected_json(self, cli_runner, temp_db):
        result = cli_runner.invoke(
            cli,
            ["--db", str(temp_db), "scenarios", "run", "bulk-origin-delete", "--json"],
        )

        assert result.exit_code == 0
        (entry,) = json.loads(result.stdout)
        assert entry["name"] == "bulk-origin-delete"
        assert entry["passed"] is True
        assert entry["observations"]["error"] == "ConstraintViolationError"

    def test_run_unknown(self, cli_runner, temp_db):
        result = cli_runner.invoke(
            cli, ["--db", str(temp_db), "scenarios", "run", "no-such-scenario"]
        )

        assert result.exit_code == 2
        assert "no-such-scenario" in result.output


class TestConfigCommands:
    """Test config show / set-db / unset-db."""

    def test_set_and_unset_db(self, cli_runner, isolated_config, tmp_path):
        db_path = str(tmp_path / "configured.db")

        result = cli_runner.invoke(cli, ["config", "set-db", db_path])
        assert result.exit_code == 0
        assert isolated_config.exists()

        result = cli_runner.invoke(cli, ["config", "show"])
        assert f"Database: {db_path}" in result.output

        result = cli_runner.invoke(cli, ["config", "unset-db"])
        assert result.exit_code == 0
        assert not isolated_config.exists()

    def test_configured_db_used_without_flag(self, cli_runner, tmp_path):
        db_path = tmp_path / "configured.db"
        cli_runner.invoke(cli, ["config", "set-db", str(db_path)])

        result = cli_runner.invoke(cli, ["add-origin", "From config"])

        assert result.exit_code == 0
        assert db_path.exists()
