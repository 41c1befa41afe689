"""Existence and state checks that gate every mutating action.

Each check runs one fresh command through the executor; nothing is
cached between calls. Checks never raise on a failed command: a
non-zero exit is read as "condition false" (or, for needs_restart, as
"restart needed").

Note that database_exists and user_exists look only at the exit status
of ``psql ... | grep <name>``. That is grep's status, so it reports a
matching line somewhere in the output (a substring match), not a
strict row lookup. extension_installed reads stdout instead.
"""

import pwd
import re
from pathlib import Path
from typing import Optional, Union

from pgprov.core.executor import CommandExecutor, CommandResult
from pgprov.core.validation import quote_literal
from pgprov.services.commands import build_psql_invocation
from pgprov.services.connection import is_local, uses_password
from pgprov.services.targets import (
    ConnectionSpec,
    DatabaseTarget,
    ExtensionTarget,
    RoleTarget,
)


RECOVERY_MARKER = "recovery.conf"

_INSTALLED_LINE = re.compile(r"^installed$", re.MULTILINE)


def sys_user_exists(user: str) -> bool:
    """Check if an OS account exists on this machine."""
    try:
        pwd.getpwnam(user)
    except KeyError:
        return False
    return True


def run_as_user(conn: ConnectionSpec) -> Optional[str]:
    """OS user a query for this connection should run as.

    Queries run as the connecting role's OS account when one exists
    (needed for peer authentication), otherwise as the current user.
    """
    user = conn.effective_user
    return user if sys_user_exists(user) else None


class Predicates:
    """Idempotency checks over the command executor."""

    def __init__(self, executor: CommandExecutor) -> None:
        self.executor = executor

    def _query(self, conn: ConnectionSpec, command_line: str) -> CommandResult:
        return self.executor.run_command(
            command_line,
            run_as_user(conn),
            check=False,
            sensitive=uses_password(conn),
        )

    def database_exists(self, target: DatabaseTarget) -> bool:
        """Check if the target database exists (exit-status based)."""
        sql = f"SELECT datname FROM pg_database WHERE datname={quote_literal(target.name)}"
        command = build_psql_invocation(target, sql, target.name)
        return self._query(target.connection, command).return_code == 0

    def user_exists(self, role: RoleTarget) -> bool:
        """Check if the role exists (exit-status based)."""
        sql = f"SELECT rolname FROM pg_roles WHERE rolname={quote_literal(role.name)}"
        command = build_psql_invocation(role, sql, role.name)
        return self._query(role.connection, command).return_code == 0

    def extension_installed(self, target: ExtensionTarget) -> bool:
        """Check if the extension is installed in the target database.

        True only when the query prints a line that is exactly
        ``installed``; empty or any other output means not installed.
        """
        sql = f"SELECT 'installed' FROM pg_extension WHERE extname={quote_literal(target.name)}"
        command = build_psql_invocation(target, sql, concise=True)
        result = self._query(target.connection, command)
        return bool(_INSTALLED_LINE.search(result.stdout))

    def needs_restart(self, connection: ConnectionSpec, database: Optional[str] = None) -> bool:
        """Check if any setting is waiting for a server restart.

        Returns True when the query fails, prints something that is not
        a number, or counts at least one pending setting.
        """
        sql = "SELECT count(*) FROM pg_settings WHERE pending_restart='t'"
        command = build_psql_invocation(connection, sql, concise=True, database=database)
        result = self._query(connection, command)
        if not result.success:
            return True

        try:
            pending = int(result.stdout.strip())
        except ValueError:
            return True
        return pending > 0

    def is_replica(self, data_directory: Union[str, Path]) -> bool:
        """Check for the recovery.conf marker of a standby server."""
        return self.executor.file_exists(Path(data_directory) / RECOVERY_MARKER)

    def is_local_replica(self, connection: ConnectionSpec, data_directory: Union[str, Path]) -> bool:
        """Check if the connection targets a standby on this machine."""
        return is_local(connection) and self.is_replica(data_directory)
