"""Command execution boundary.

Provides:
- Shell command execution with output capture
- User switching (sudo -u) for running as the postgres OS user
- Sensitive command masking
- Dry-run mode support
- Filesystem checks used by the existence predicates

Nothing else in pgprov starts a process or touches the database.
"""

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from pgprov.core.context import ExecutionContext
from pgprov.core.exceptions import ExecutionError


SHELL = "/bin/sh"


@dataclass
class CommandResult:
    """Result of a command execution."""
    command: list[str]
    return_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        """Check if command succeeded."""
        return self.return_code == 0


class CommandExecutor:
    """Safe command execution with dry-run support and output capture.

    Features:
    - Dry-run mode shows what would happen
    - Output capture for processing
    - User switching (sudo -u)
    - Sensitive command masking
    """

    def __init__(self, ctx: ExecutionContext) -> None:
        """Initialize executor with context.

        Args:
            ctx: Execution context with flags
        """
        self.ctx = ctx

    def run(
        self,
        command: list[str],
        *,
        description: Optional[str] = None,
        check: bool = True,
        as_user: Optional[str] = None,
        sensitive: bool = False,
        display: Optional[str] = None,
    ) -> CommandResult:
        """Execute a command given as an argument list.

        Args:
            command: Command as list of strings
            description: Human-readable description for logging
            check: Raise exception on non-zero exit
            as_user: Run as different user (via sudo -u)
            sensitive: Don't log the actual command
            display: Text shown instead of the joined argument list

        Returns:
            CommandResult with output

        Raises:
            ExecutionError: If command fails and check=True
        """
        if as_user:
            command = ["sudo", "-u", as_user] + command

        if description:
            self.ctx.console.step(description)

        if sensitive:
            cmd_display = "<sensitive command>"
        else:
            cmd_display = display or shlex.join(command)
        self.ctx.console.debug(f"Running: {cmd_display}")

        if self.ctx.dry_run:
            self.ctx.console.dry_run_msg(f"Run: {cmd_display}")
            return CommandResult(
                command=command,
                return_code=0,
                stdout="",
                stderr="",
            )

        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
        )

        cmd_result = CommandResult(
            command=command,
            return_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )

        if check and result.returncode != 0:
            raise ExecutionError(
                f"Command failed: {description or cmd_display}",
                command=cmd_display,
                return_code=result.returncode,
                stderr=result.stderr.strip() or None,
            )

        return cmd_result

    def run_command(
        self,
        command_line: str,
        as_user: Optional[str] = None,
        *,
        description: Optional[str] = None,
        check: bool = False,
        sensitive: bool = False,
    ) -> CommandResult:
        """Execute a shell command line, e.g. a psql pipeline.

        Command lines come from the builders in pgprov.services.commands
        and may carry environment assignments and pipes, so they run
        through ``sh -c``.

        Args:
            command_line: Full shell command line
            as_user: OS user to run as
            description: Human-readable description for logging
            check: Raise exception on non-zero exit
            sensitive: Mask the command line in output

        Returns:
            CommandResult with exit status and output
        """
        return self.run(
            [SHELL, "-c", command_line],
            description=description,
            check=check,
            as_user=as_user,
            sensitive=sensitive,
            display=command_line,
        )

    def systemctl(
        self,
        action: str,
        service: str,
        *,
        description: Optional[str] = None,
        check: bool = True,
    ) -> CommandResult:
        """Execute systemctl command.

        Args:
            action: systemctl action (start, stop, restart, reload, status)
            service: Service name
            description: Human-readable description
            check: Raise exception on error
        """
        desc = description or f"{action.title()} {service}"
        return self.run(
            ["systemctl", action, service],
            description=desc,
            check=check,
        )

    def file_exists(self, path: Union[str, os.PathLike]) -> bool:
        """Check if a file exists."""
        return Path(path).exists()

    def symlink(
        self,
        link: Union[str, os.PathLike],
        target: Union[str, os.PathLike],
        *,
        description: Optional[str] = None,
    ) -> bool:
        """Point ``link`` at ``target``, replacing a stale link.

        A regular file already at ``link`` (e.g. one installed by a
        package) is left alone.

        Returns:
            True if the link was created or changed

        Raises:
            ExecutionError: If the link cannot be written
        """
        link_path = Path(link)
        if link_path.is_symlink() and os.readlink(link_path) == str(target):
            return False

        if link_path.exists() and not link_path.is_symlink():
            self.ctx.console.warn(f"{link_path} exists and is not a symlink, leaving it in place")
            return False

        self.ctx.console.step(description or f"Link {link_path} -> {target}")
        if self.ctx.dry_run:
            self.ctx.console.dry_run_msg(f"Link {link_path} -> {target}")
            return True

        try:
            if link_path.is_symlink():
                link_path.unlink()
            link_path.parent.mkdir(parents=True, exist_ok=True)
            link_path.symlink_to(target)
        except OSError as e:
            raise ExecutionError(
                f"Cannot link {link_path} -> {target}",
                hint="Check permissions on the extension directory or run with sudo",
                details=[str(e)],
            ) from e
        return True
