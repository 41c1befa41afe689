"""Shared fixtures for unit and integration tests."""

from typing import Callable, Generator
from unittest.mock import MagicMock, patch

import pytest

from pgprov.core.audit import AuditLogger
from pgprov.core.config import AppConfig, MachineConfig
from pgprov.core.context import ExecutionContext
from pgprov.core.executor import CommandExecutor, CommandResult


def make_result(return_code: int = 0, stdout: str = "", stderr: str = "") -> CommandResult:
    """Build a CommandResult as the executor would return it."""
    return CommandResult(
        command=["/bin/sh", "-c", "..."],
        return_code=return_code,
        stdout=stdout,
        stderr=stderr,
    )


@pytest.fixture
def ctx() -> ExecutionContext:
    """Context with default configuration (no config file is read)."""
    return ExecutionContext(_config=AppConfig(config=MachineConfig()))


@pytest.fixture
def dry_ctx() -> ExecutionContext:
    return ExecutionContext(dry_run=True, _config=AppConfig(config=MachineConfig()))


@pytest.fixture
def executor() -> MagicMock:
    """Executor double; every command succeeds with empty output."""
    mock = MagicMock(spec=CommandExecutor)
    mock.run_command.return_value = make_result()
    mock.file_exists.return_value = False
    return mock


@pytest.fixture
def audit() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def no_os_users() -> Generator[None, None, None]:
    """Pretend no postgres OS account exists, so commands run as the current user."""
    with patch("pgprov.services.predicates.sys_user_exists", return_value=False), \
            patch("pgprov.resources.base.sys_user_exists", return_value=False):
        yield


@pytest.fixture
def result_factory() -> Callable[..., CommandResult]:
    return make_result
