"""Extension commands.

Commands:
- pgprov extension create
- pgprov extension drop
- pgprov extension status
"""

from typing import Optional

import typer

from pgprov.commands.common import (
    ConfigOption,
    DryRunOption,
    GeneratePasswordOption,
    HostOption,
    NoColorOption,
    PasswordOption,
    PeerOption,
    PortOption,
    QuietOption,
    UserOption,
    VerboseOption,
    get_context,
    handle_error,
    report,
    resolve_connection,
)
from pgprov.core import CommandExecutor, ExecutionContext, PgProvError, console
from pgprov.core.validation import validate_name
from pgprov.resources import ExtensionResource
from pgprov.services.predicates import Predicates
from pgprov.services.targets import DEFAULT_EXTENSION_VERSION, ConnectionSpec, ExtensionTarget


app = typer.Typer(
    name="extension",
    help="Extension management.",
    no_args_is_help=True,
)


def _get_services(ctx: ExecutionContext) -> tuple[CommandExecutor, ExtensionResource]:
    """Create service instances."""
    executor = CommandExecutor(ctx)
    resource = ExtensionResource(ctx, executor, platform=ctx.config.platform)
    return executor, resource


def _build_target(
    name: str,
    database: str,
    conn: ConnectionSpec,
    old_version: Optional[str] = None,
    source_directory: Optional[str] = None,
    version: str = DEFAULT_EXTENSION_VERSION,
) -> ExtensionTarget:
    validate_name(name, "extension")
    validate_name(database, "database")
    return ExtensionTarget(
        name=name,
        database=database,
        old_version=old_version,
        source_directory=source_directory,
        version=version,
        connection=conn,
    )


@app.command("create")
def create_extension(
    name: str = typer.Argument(..., help="Extension name"),
    database: str = typer.Option(..., "--database", "-d", help="Database to install into"),
    old_version: Optional[str] = typer.Option(
        None, "--old-version",
        help="Upgrade from this unpackaged version (CREATE EXTENSION ... FROM)",
    ),
    source_directory: Optional[str] = typer.Option(
        None, "--source-directory",
        help="Directory holding <name><version>.sql and <name>.control",
    ),
    version: str = typer.Option(
        DEFAULT_EXTENSION_VERSION, "--version",
        help="Script file suffix used with --source-directory",
    ),
    host: HostOption = None,
    port: PortOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    generate_password: GeneratePasswordOption = False,
    peer: PeerOption = False,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Install an extension unless it is already installed.

    Examples:

        pgprov extension create pgcrypto -d app

        pgprov extension create myext -d app --source-directory /opt/myext
    """
    ctx = get_context(dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )
        target = _build_target(name, database, conn, old_version, source_directory, version)
        _, resource = _get_services(ctx)
        for outcome in resource.create(target):
            report(outcome, f"Extension '{name}' installed in '{database}'")
    except PgProvError as e:
        handle_error(e)


@app.command("drop")
def drop_extension(
    name: str = typer.Argument(..., help="Extension name"),
    database: str = typer.Option(..., "--database", "-d", help="Database to remove it from"),
    host: HostOption = None,
    port: PortOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    generate_password: GeneratePasswordOption = False,
    peer: PeerOption = False,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Drop an extension if it is installed."""
    ctx = get_context(dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )
        target = _build_target(name, database, conn)
        _, resource = _get_services(ctx)
        report(resource.drop(target), f"Extension '{name}' dropped from '{database}'")
    except PgProvError as e:
        handle_error(e)


@app.command("status")
def extension_status(
    name: str = typer.Argument(..., help="Extension name"),
    database: str = typer.Option(..., "--database", "-d", help="Database to check"),
    host: HostOption = None,
    port: PortOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    peer: PeerOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Check whether an extension is installed (exit status 0 if it is, 1 if not)."""
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        conn = resolve_connection(ctx, host=host, port=port, user=user, password=password, peer=peer)
        target = _build_target(name, database, conn)
        executor, _ = _get_services(ctx)
        installed = Predicates(executor).extension_installed(target)
    except PgProvError as e:
        handle_error(e)
        return

    if installed:
        console.info(f"Extension '{name}' is installed in '{database}'")
        return
    console.info(f"Extension '{name}' is not installed in '{database}'")
    raise typer.Exit(1)
