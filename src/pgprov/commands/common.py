"""Options and helpers shared by all command groups."""

from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml

from pgprov.core.audit import configure_audit_logger
from pgprov.core.config import DEFAULT_CONFIG_PATH, DEFAULT_LOG_DIR, ConnectionConfig
from pgprov.core.context import ExecutionContext, create_context
from pgprov.core.credentials import CredentialManager
from pgprov.core.exceptions import PgProvError, ValidationError
from pgprov.core.output import console
from pgprov.resources.base import ActionOutcome
from pgprov.services.targets import ConnectionSpec


# Global options
DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="Preview changes without executing."),
]

YesOption = Annotated[
    bool,
    typer.Option("--yes", "-y", help="Skip confirmation prompts."),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase output verbosity. Can be repeated (-v, -vv).",
    ),
]

QuietOption = Annotated[
    bool,
    typer.Option("--quiet", "-q", help="Suppress non-essential output."),
]

NoColorOption = Annotated[
    bool,
    typer.Option("--no-color", help="Disable colored output."),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help=f"Path to configuration file. Default: {DEFAULT_CONFIG_PATH}",
        dir_okay=False,
    ),
]

# Connection options (override the config file's `connection` section)
HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-h", help="Server host. Local socket when unset."),
]

PortOption = Annotated[
    Optional[int],
    typer.Option("--port", "-p", help="Server port (default 5432)."),
]

UserOption = Annotated[
    Optional[str],
    typer.Option("--user", "-U", help="Connecting role (default postgres)."),
]

PasswordOption = Annotated[
    Optional[str],
    typer.Option(
        "--password",
        help="Connection password. Prefer PGPROV_PASSWORD.",
        envvar="PGPROV_PASSWORD",
        show_envvar=False,
    ),
]

GeneratePasswordOption = Annotated[
    bool,
    typer.Option(
        "--generate-password",
        help=(
            "Generate the connection password (stored under /root/.pgprov/credentials and reused). "
            "pgprov does not set it on the server; assign it to the connecting role first."
        ),
    ),
]

PeerOption = Annotated[
    bool,
    typer.Option("--peer", help="Use peer authentication over the local socket."),
]


def get_context(
    dry_run: bool = False,
    yes: bool = False,
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    config: Optional[Path] = None,
) -> ExecutionContext:
    """Create the execution context and point the audit log at the log dir."""
    ctx = create_context(
        dry_run=dry_run,
        yes=yes,
        verbose=verbose,
        quiet=quiet,
        no_color=no_color,
        config=config,
    )
    configure_audit_logger(log_path=DEFAULT_LOG_DIR / "audit.log")
    return ctx


def resolve_connection(
    ctx: ExecutionContext,
    *,
    host: Optional[str] = None,
    port: Optional[int] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
    generate_password: bool = False,
    peer: bool = False,
    base: Optional[ConnectionConfig] = None,
) -> ConnectionSpec:
    """Build the connection spec for a command.

    The config file's connection is the base; any option given on the
    command line wins. A generated password is reused from the
    credential store when one was stored before.
    """
    overrides: dict[str, Any] = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if user is not None:
        overrides["user"] = user
    if password is not None:
        overrides["password"] = password
    if generate_password:
        overrides["password_generate"] = True
    if peer:
        overrides["peer"] = True

    conn = ctx.config.connection.merged(base).merged(ConnectionConfig(**overrides))
    return ensure_password(ctx, conn.to_spec())


def ensure_password(ctx: ExecutionContext, spec: ConnectionSpec) -> ConnectionSpec:
    """Fill in a generated password, reusing a stored one."""
    creds = CredentialManager(ctx.config.credentials_dir)
    resolved, generated = creds.ensure_connection_password(spec, dry_run=ctx.dry_run)
    if generated:
        ctx.console.info(f"Generated connection password, stored in {creds.get_password_path(spec)}")
    return resolved


def parse_assignments(values: Optional[list[str]], option: str = "--set") -> dict[str, Any]:
    """Parse ``key=value`` options; values are read as YAML scalars.

    Raises:
        ValidationError: If an item has no ``=``
    """
    result: dict[str, Any] = {}
    for item in values or []:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise ValidationError(
                f"Invalid {option} value: '{item}'",
                hint=f"Use {option} name=value",
            )
        result[key.strip()] = yaml.safe_load(raw) if raw.strip() else ""
    return result


def report(outcome: ActionOutcome, subject: str) -> None:
    """Print the result of a resource action."""
    if outcome is ActionOutcome.APPLIED:
        console.success(subject)
    elif outcome is ActionOutcome.REPLICA:
        console.info(f"{subject}: skipped on replica")


def handle_error(error: PgProvError) -> None:
    """Print a PgProvError with its details and hint, then exit with its code."""
    console.error(error.message)

    for detail in error.details:
        console.print(f"  [dim]{detail}[/dim]")

    if error.hint:
        console.hint(error.hint)

    raise typer.Exit(error.exit_code)
