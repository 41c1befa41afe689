"""Unit tests for the existence and state predicates.

The executor is replaced by a mock, so these tests pin how each
predicate reads exit status and stdout.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pgprov.core.executor import CommandExecutor, CommandResult
from pgprov.services.predicates import Predicates, run_as_user, sys_user_exists
from pgprov.services.targets import (
    ConnectionSpec,
    DatabaseTarget,
    ExtensionTarget,
    RoleTarget,
)


def _result(return_code: int = 0, stdout: str = "") -> CommandResult:
    return CommandResult(command=[], return_code=return_code, stdout=stdout, stderr="")


@pytest.fixture
def executor() -> MagicMock:
    return MagicMock(spec=CommandExecutor)


@pytest.fixture
def predicates(executor: MagicMock, no_os_users) -> Predicates:
    return Predicates(executor)


class TestDatabaseExists:
    """Tests for database_exists."""

    def test_exit_zero_means_exists(self, predicates, executor):
        executor.run_command.return_value = _result(0)
        assert predicates.database_exists(DatabaseTarget(name="app")) is True

    def test_exit_nonzero_means_missing(self, predicates, executor):
        executor.run_command.return_value = _result(1)
        assert predicates.database_exists(DatabaseTarget(name="app")) is False

    def test_only_exit_status_counts(self, predicates, executor):
        """Output is not inspected; grep's exit status decides."""
        executor.run_command.return_value = _result(0, stdout="")
        assert predicates.database_exists(DatabaseTarget(name="app")) is True

    def test_command_pipes_through_grep(self, predicates, executor):
        executor.run_command.return_value = _result(0)
        predicates.database_exists(DatabaseTarget(name="app"))

        command = executor.run_command.call_args.args[0]
        assert command == (
            'psql -c "SELECT datname FROM pg_database WHERE datname=\'app\'" '
            "-U postgres -p 5432 -d app | grep app"
        )

    def test_never_raises_on_failure(self, predicates, executor):
        executor.run_command.return_value = _result(2)
        predicates.database_exists(DatabaseTarget(name="app"))
        assert executor.run_command.call_args.kwargs["check"] is False


class TestUserExists:
    """Tests for user_exists."""

    def test_exit_zero_means_exists(self, predicates, executor):
        executor.run_command.return_value = _result(0)
        assert predicates.user_exists(RoleTarget(name="app_user")) is True

    def test_exit_nonzero_means_missing(self, predicates, executor):
        executor.run_command.return_value = _result(1)
        assert predicates.user_exists(RoleTarget(name="app_user")) is False

    def test_query_escapes_name(self, predicates, executor):
        executor.run_command.return_value = _result(1)
        predicates.user_exists(RoleTarget(name="o'brien"))

        command = executor.run_command.call_args.args[0]
        assert "rolname='o''brien'" in command
        assert command.endswith("| grep 'o'\"'\"'brien'")


class TestExtensionInstalled:
    """Tests for extension_installed."""

    @pytest.fixture
    def target(self) -> ExtensionTarget:
        return ExtensionTarget(name="pgcrypto", database="app")

    def test_installed_line(self, predicates, executor, target):
        executor.run_command.return_value = _result(0, stdout="installed\n")
        assert predicates.extension_installed(target) is True

    def test_installed_among_other_lines(self, predicates, executor, target):
        executor.run_command.return_value = _result(0, stdout="notice\ninstalled\n")
        assert predicates.extension_installed(target) is True

    @pytest.mark.parametrize("stdout", ["", "\n", "not installed\n", "installed_x\n", "INSTALLED\n"])
    def test_anything_else_is_not_installed(self, predicates, executor, target, stdout):
        executor.run_command.return_value = _result(0, stdout=stdout)
        assert predicates.extension_installed(target) is False

    def test_exit_status_is_ignored(self, predicates, executor, target):
        executor.run_command.return_value = _result(1, stdout="installed\n")
        assert predicates.extension_installed(target) is True

    def test_uses_concise_output(self, predicates, executor, target):
        executor.run_command.return_value = _result(0)
        predicates.extension_installed(target)

        command = executor.run_command.call_args.args[0]
        assert command.startswith("psql -At -c ")
        assert command.endswith("-d app")


class TestNeedsRestart:
    """Tests for needs_restart."""

    def test_zero_pending(self, predicates, executor):
        executor.run_command.return_value = _result(0, stdout="0\n")
        assert predicates.needs_restart(ConnectionSpec()) is False

    def test_pending_settings(self, predicates, executor):
        executor.run_command.return_value = _result(0, stdout="2\n")
        assert predicates.needs_restart(ConnectionSpec()) is True

    def test_failed_query_means_restart(self, predicates, executor):
        executor.run_command.return_value = _result(2, stdout="")
        assert predicates.needs_restart(ConnectionSpec()) is True

    def test_unparsable_output_means_restart(self, predicates, executor):
        executor.run_command.return_value = _result(0, stdout="oops")
        assert predicates.needs_restart(ConnectionSpec()) is True

    def test_database_option(self, predicates, executor):
        executor.run_command.return_value = _result(0, stdout="0")
        predicates.needs_restart(ConnectionSpec(), "app")
        assert executor.run_command.call_args.args[0].endswith("-d app")


class TestReplica:
    """Tests for replica detection."""

    def test_marker_present(self, predicates, executor):
        executor.file_exists.return_value = True
        assert predicates.is_replica("/var/lib/postgresql/9.6/main") is True
        executor.file_exists.assert_called_once_with(
            Path("/var/lib/postgresql/9.6/main/recovery.conf")
        )

    def test_marker_absent(self, predicates, executor):
        executor.file_exists.return_value = False
        assert predicates.is_replica("/var/lib/postgresql/9.6/main") is False

    def test_remote_connection_is_never_local_replica(self, predicates, executor):
        executor.file_exists.return_value = True
        spec = ConnectionSpec(host="db.example.com")
        assert predicates.is_local_replica(spec, "/data") is False

    def test_local_replica(self, predicates, executor):
        executor.file_exists.return_value = True
        assert predicates.is_local_replica(ConnectionSpec(), "/data") is True


class TestQueryExecution:
    """Tests for how predicates invoke the executor."""

    def test_runs_as_connecting_os_user(self, executor):
        executor.run_command.return_value = _result(0)
        with patch("pgprov.services.predicates.sys_user_exists", return_value=True):
            Predicates(executor).database_exists(DatabaseTarget(name="app"))
        assert executor.run_command.call_args.args[1] == "postgres"

    def test_masks_commands_carrying_a_password(self, predicates, executor):
        executor.run_command.return_value = _result(0)
        remote = ConnectionSpec(host="db.example.com", password="pw")
        predicates.database_exists(DatabaseTarget(name="app", connection=remote))
        assert executor.run_command.call_args.kwargs["sensitive"] is True

    def test_run_as_user_falls_back_to_current_user(self):
        with patch("pgprov.services.predicates.sys_user_exists", return_value=False):
            assert run_as_user(ConnectionSpec(user="app_user")) is None

    def test_sys_user_exists_for_root(self):
        assert sys_user_exists("root") is True

    def test_sys_user_exists_for_unknown(self):
        assert sys_user_exists("no_such_user_pgprov_test") is False
