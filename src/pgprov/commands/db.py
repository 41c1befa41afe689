"""Database commands.

Commands:
- pgprov db create
- pgprov db drop
- pgprov db exists
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
    YesOption,
    get_context,
    handle_error,
    report,
    resolve_connection,
)
from pgprov.core import CommandExecutor, ExecutionContext, PgProvError, console
from pgprov.core.validation import validate_name
from pgprov.resources import DatabaseResource
from pgprov.services.predicates import Predicates
from pgprov.services.targets import DEFAULT_TEMPLATE, DatabaseTarget


app = typer.Typer(
    name="db",
    help="Database management.",
    no_args_is_help=True,
)


def _get_services(ctx: ExecutionContext) -> tuple[CommandExecutor, DatabaseResource]:
    """Create service instances."""
    executor = CommandExecutor(ctx)
    resource = DatabaseResource(ctx, executor, platform=ctx.config.platform)
    return executor, resource


@app.command("create")
def create_database(
    name: str = typer.Argument(..., help="Database name"),
    template: str = typer.Option(
        DEFAULT_TEMPLATE, "--template", "-T",
        help="Template database (empty string to omit)",
    ),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-E", help="Character encoding"),
    locale: Optional[str] = typer.Option(None, "--locale", "-l", help="Locale"),
    owner: Optional[str] = typer.Option(None, "--owner", "-O", help="Owning role"),
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
    """Create a database unless it already exists.

    Examples:

        pgprov db create myapp --owner myapp_user

        pgprov db create myapp -E UTF8 -T template0 --dry-run
    """
    ctx = get_context(dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        validate_name(name, "database")
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )
        target = DatabaseTarget(
            name=name,
            template=template,
            encoding=encoding,
            locale=locale,
            owner=owner,
            connection=conn,
        )
        _, resource = _get_services(ctx)
        report(resource.create(target), f"Database '{name}' created")
    except PgProvError as e:
        handle_error(e)


@app.command("drop")
def drop_database(
    name: str = typer.Argument(..., help="Database name"),
    host: HostOption = None,
    port: PortOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    generate_password: GeneratePasswordOption = False,
    peer: PeerOption = False,
    dry_run: DryRunOption = False,
    yes: YesOption = False,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Drop a database if it exists.

    Example:

        pgprov db drop old_app --yes
    """
    ctx = get_context(dry_run=dry_run, yes=yes, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        validate_name(name, "database")
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )

        if ctx.should_confirm:
            if not console.confirm(f"Drop database '{name}'? All data will be lost."):
                console.warn("Operation cancelled")
                raise typer.Exit(0)

        _, resource = _get_services(ctx)
        report(resource.drop(DatabaseTarget(name=name, connection=conn)), f"Database '{name}' dropped")
    except PgProvError as e:
        handle_error(e)


@app.command("exists")
def database_exists(
    name: str = typer.Argument(..., help="Database name"),
    host: HostOption = None,
    port: PortOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    peer: PeerOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Check whether a database exists (exit status 0 if it does, 1 if not)."""
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        validate_name(name, "database")
        conn = resolve_connection(ctx, host=host, port=port, user=user, password=password, peer=peer)
        executor, _ = _get_services(ctx)
        found = Predicates(executor).database_exists(DatabaseTarget(name=name, connection=conn))
    except PgProvError as e:
        handle_error(e)
        return

    if found:
        console.info(f"Database '{name}' exists")
        return
    console.info(f"Database '{name}' does not exist")
    raise typer.Exit(1)
