"""Tests for the admin CLI."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from src.login_broker.cli import app
from src.login_broker.core.services.database import DbSessionService
from src.login_broker.entities import (
    LocalUser,
    ProvisioningLink,
    ProvisioningLinkRepository,
    UserRepository,
)
from src.login_broker.runtime.config.config_data import DatabaseConfig

runner = CliRunner()


class TestCli:
    @pytest.fixture
    def db_config(self, tmp_path) -> DatabaseConfig:
        return DatabaseConfig(url=f"sqlite:///{tmp_path / 'cli.db'}")

    @pytest.fixture
    def cli_db(self, db_config):
        """Point every CLI command at a file database in tmp_path."""

        def _factory():
            return DbSessionService(db_config)

        with (
            patch("src.login_broker.cli.user_commands.DbSessionService", _factory),
            patch("src.login_broker.cli.db_commands.DbSessionService", _factory),
        ):
            yield _factory

    @pytest.fixture
    def seeded_user(self, cli_db) -> LocalUser:
        runner.invoke(app, ["db", "init"])
        user = LocalUser(username="alice")
        service = cli_db()
        with service.session_scope() as session:
            UserRepository(session).create(user)
            session.flush()
            ProvisioningLinkRepository(session).create(
                ProvisioningLink(provider="github", external_subject_id="42", user_id=user.id)
            )
        service.close()
        return user

    def test_db_init(self, cli_db):
        result = runner.invoke(app, ["db", "init"])

        assert result.exit_code == 0
        assert "Database initialized" in result.output

    def test_users_list_empty(self, cli_db):
        runner.invoke(app, ["db", "init"])

        result = runner.invoke(app, ["users", "list"])

        assert result.exit_code == 0
        assert "No users found" in result.output

    def test_users_list(self, seeded_user):
        result = runner.invoke(app, ["users", "list"])

        assert result.exit_code == 0
        assert "alice" in result.output
        assert "Found 1 users" in result.output

    def test_users_links(self, seeded_user):
        result = runner.invoke(app, ["users", "links", seeded_user.id])

        assert result.exit_code == 0
        assert "github" in result.output
        assert "42" in result.output

    def test_users_links_unknown_user(self, cli_db):
        runner.invoke(app, ["db", "init"])

        result = runner.invoke(app, ["users", "links", "missing"])

        assert result.exit_code == 1
        assert "not found" in result.output
