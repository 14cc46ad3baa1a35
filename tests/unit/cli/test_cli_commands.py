"""Tests for the jellybridge CLI."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from src.jellybridge.cli import app
from src.jellybridge.entities.local_user import LocalUser, LocalUserRepository

runner = CliRunner()


@pytest.fixture
def cli_deps(app_dependencies):
    with patch("src.jellybridge.cli._deps.get_dependencies", return_value=app_dependencies):
        yield app_dependencies


def seed_user(deps, downstream, **fields) -> LocalUser:
    account = downstream.add_account("jane")
    session = deps.database_service.get_session()
    try:
        return LocalUserRepository(session).upsert(
            LocalUser(
                id=account.id,
                downstream_user_id=account.id,
                downstream_username="jane",
                external_provider_name="oidc",
                external_subject_id="sub-1",
                email="jane@example.com",
                **fields,
            )
        )
    finally:
        session.close()


class TestRolesCommands:
    def test_preview_admin(self):
        result = runner.invoke(app, ["roles", "preview", "Admins", "family"])
        assert result.exit_code == 0
        assert "Role: admin" in result.output
        assert "IsAdministrator" in result.output

    def test_preview_without_groups(self):
        result = runner.invoke(app, ["roles", "preview"])
        assert result.exit_code == 0
        assert "Role: user" in result.output


class TestSweepCommands:
    def test_run(self, cli_deps, downstream):
        seed_user(cli_deps, downstream, expires_at=datetime.now(UTC) - timedelta(days=1))

        result = runner.invoke(app, ["sweep", "run", "--window", "3"])

        assert result.exit_code == 0, result.output
        assert "3 day window" in result.output
        assert len(downstream.calls_to("set_policy")) == 1

    def test_failures_exit_non_zero(self, cli_deps, downstream):
        user = seed_user(cli_deps, downstream, expires_at=datetime.now(UTC) - timedelta(days=1))
        downstream.remove_account(user.downstream_user_id)

        result = runner.invoke(app, ["sweep", "run"])

        assert result.exit_code == 1


class TestCredentialsCommands:
    def test_status_lists_pending(self, cli_deps, downstream):
        seed_user(cli_deps, downstream)
        result = runner.invoke(app, ["credentials", "status"])
        assert result.exit_code == 0
        assert "jane@example.com" in result.output

    def test_status_nothing_pending(self, cli_deps):
        result = runner.invoke(app, ["credentials", "status"])
        assert result.exit_code == 0
        assert "All IdP users have a shadow password" in result.output

    def test_migrate_requires_confirm(self, cli_deps, downstream):
        seed_user(cli_deps, downstream)
        result = runner.invoke(app, ["credentials", "migrate"])
        assert result.exit_code == 2
        assert downstream.calls_to("update_password") == []

    def test_migrate(self, cli_deps, downstream):
        user = seed_user(cli_deps, downstream)
        result = runner.invoke(app, ["credentials", "migrate", "--confirm"])
        assert result.exit_code == 0, result.output
        assert "1 succeeded, 0 failed" in result.output
        assert downstream.calls_to("update_password")[0]["user_id"] == user.downstream_user_id


class TestDbCommands:
    def test_init(self):
        with patch("src.jellybridge.cli.db_commands.init_db") as init_db:
            result = runner.invoke(app, ["db", "init"])
        assert result.exit_code == 0
        init_db.assert_called_once_with()
