"""Tests for converging a whole configuration file."""

from typing import Generator
from unittest.mock import MagicMock, patch

import pytest
import yaml

from pgprov.commands.apply import Applier
from pgprov.core.audit import AuditLogger
from pgprov.core.config import AppConfig, MachineConfig, get_example_config
from pgprov.core.context import ExecutionContext
from pgprov.core.executor import CommandExecutor


@pytest.fixture
def fresh_server(result_factory) -> MagicMock:
    """Executor for an empty server: every existence check comes back negative."""
    mock = MagicMock(spec=CommandExecutor)
    mock.run_command.return_value = result_factory(return_code=1)
    mock.file_exists.return_value = False
    return mock


@pytest.fixture
def quiet_audit() -> Generator[None, None, None]:
    with patch("pgprov.resources.base.get_audit_logger", return_value=MagicMock(spec=AuditLogger)):
        yield


def _apply(machine: MachineConfig, executor: MagicMock) -> tuple[Applier, list[str]]:
    ctx = ExecutionContext(_config=AppConfig(config=machine))
    applier = Applier(ctx, executor)
    applier.run(machine)
    return applier, [c.args[0] for c in executor.run_command.call_args_list]


def _index(lines: list[str], *needles: str) -> int:
    for i, line in enumerate(lines):
        if all(needle in line for needle in needles):
            return i
    raise AssertionError(f"no command contains {needles}")


@pytest.mark.usefixtures("no_os_users", "quiet_audit")
class TestApplier:
    """Tests for Applier ordering."""

    def test_example_config_creates_owner_before_database(self, fresh_server):
        machine = MachineConfig(**yaml.safe_load(get_example_config()))

        _, lines = _apply(machine, fresh_server)

        create_role = _index(lines, "CREATE ROLE app_user")
        createdb = _index(lines, "createdb", "-O app_user")
        assert create_role < createdb

    def test_example_config_applies_role_settings(self):
        machine = MachineConfig(**yaml.safe_load(get_example_config()))
        app_user = next(role for role in machine.roles if role.name == "app_user")

        assert "update" in app_user.actions

    def test_grant_and_drop_run_after_databases(self, fresh_server, result_factory):
        fresh_server.run_command.return_value = result_factory(return_code=0, stdout="installed\n")
        machine = MachineConfig(
            databases=[{"name": "app"}],
            roles=[
                {"name": "app_user", "database": "app", "privileges": ["CONNECT"],
                 "actions": ["grant", "create"]},
                {"name": "old_user", "actions": ["drop"]},
            ],
        )

        applier, _ = _apply(machine, fresh_server)

        order = [(row[0], row[1], row[2]) for row in applier.rows]
        assert order == [
            ("role", "app_user", "create"),
            ("database", "app", "create"),
            ("role", "app_user", "grant"),
            ("role", "old_user", "drop"),
        ]
