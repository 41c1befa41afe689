"""Server commands.

Commands:
- pgprov server paths
- pgprov server settings
- pgprov server needs-restart
- pgprov server restart
"""

from dataclasses import replace
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
    parse_assignments,
    report,
    resolve_connection,
)
from pgprov.core import CommandExecutor, ExecutionContext, PgProvError, console
from pgprov.core.validation import validate_setting_name
from pgprov.resources import ServerConfResource
from pgprov.services.platform import conf_dir, data_dir, extension_share_dir, service_name
from pgprov.services.predicates import Predicates
from pgprov.services.targets import ConnectionSpec, ServerConfTarget


app = typer.Typer(
    name="server",
    help="Server paths, settings and restarts.",
    no_args_is_help=True,
)

PgVersionOption = typer.Option(
    None, "--pg-version",
    help="PostgreSQL major version (default: platform.version from the config)",
)


def _get_services(ctx: ExecutionContext) -> tuple[CommandExecutor, ServerConfResource]:
    """Create service instances."""
    executor = CommandExecutor(ctx)
    resource = ServerConfResource(ctx, executor, platform=ctx.config.platform)
    return executor, resource


def _build_target(
    ctx: ExecutionContext,
    conn: ConnectionSpec,
    pg_version: Optional[str] = None,
    settings: Optional[list[str]] = None,
    database: Optional[str] = None,
) -> ServerConfTarget:
    """Server target from the config's `server` section plus CLI overrides."""
    section = ctx.config.config.server
    version = pg_version or ctx.config.platform.version
    additional = parse_assignments(settings)
    for key in additional:
        validate_setting_name(key)

    if section is None:
        return ServerConfTarget(
            version=version,
            additional_config=additional,
            database=database,
            connection=conn,
        )

    target = section.to_target(version, conn)
    merged = {**target.additional_config, **additional}
    return ServerConfTarget(
        version=target.version,
        data_directory=target.data_directory,
        hba_file=target.hba_file,
        ident_file=target.ident_file,
        external_pid_file=target.external_pid_file,
        stats_temp_directory=target.stats_temp_directory,
        additional_config=merged,
        database=database or target.database,
        connection=conn,
    )


@app.command("paths")
def show_paths(
    pg_version: Optional[str] = PgVersionOption,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Show the platform's data, config and extension directories."""
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        platform = ctx.config.platform
        if pg_version:
            platform = replace(platform, version=pg_version)

        console.table(
            f"PostgreSQL {platform.version} on {platform.family.value}",
            ["Item", "Value"],
            [
                ["Data directory", str(data_dir(platform))],
                ["Config directory", str(conf_dir(platform))],
                ["Service", service_name(platform)],
                ["Extension directory", str(extension_share_dir(platform))],
            ],
        )
    except PgProvError as e:
        handle_error(e)


@app.command("settings")
def show_settings(
    pg_version: Optional[str] = PgVersionOption,
    settings: Optional[list[str]] = typer.Option(
        None, "--set",
        help="Additional setting name=value (repeatable)",
    ),
    port: PortOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Show the settings postgresql.conf should contain.

    Example:

        pgprov server settings --set max_connections=200 --set port=5433
    """
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        conn = resolve_connection(ctx, port=port)
        target = _build_target(ctx, conn, pg_version, settings)
        _, resource = _get_services(ctx)
        known, custom = resource.settings(target)
    except PgProvError as e:
        handle_error(e)
        return

    console.summary("Server settings", known)
    if custom:
        console.summary("Additional settings", custom)


@app.command("needs-restart")
def needs_restart(
    database: Optional[str] = typer.Option(None, "--database", "-d", help="Database to query"),
    host: HostOption = None,
    port: PortOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    peer: PeerOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Check for settings pending a restart (exit status 0 if a restart is needed, 1 if not)."""
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        conn = resolve_connection(ctx, host=host, port=port, user=user, password=password, peer=peer)
        executor = CommandExecutor(ctx)
        pending = Predicates(executor).needs_restart(conn, database)
    except PgProvError as e:
        handle_error(e)
        return

    if pending:
        console.info("Settings are pending a restart")
        return
    console.info("No settings pending a restart")
    raise typer.Exit(1)


@app.command("restart")
def restart_server(
    pg_version: Optional[str] = PgVersionOption,
    database: Optional[str] = typer.Option(None, "--database", "-d", help="Database to query"),
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
    """Restart the server if any setting is pending a restart."""
    ctx = get_context(dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )
        target = _build_target(ctx, conn, pg_version, database=database)
        _, resource = _get_services(ctx)
        report(resource.restart_if_needed(target), f"Restarted {resource.service_name(target)}")
    except PgProvError as e:
        handle_error(e)
