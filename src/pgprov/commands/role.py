"""Role commands.

Commands:
- pgprov role create
- pgprov role update
- pgprov role drop
- pgprov role grant
- pgprov role exists
"""

from typing import Any, Optional

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
    parse_assignments,
    report,
    resolve_connection,
)
from pgprov.core import CommandExecutor, ExecutionContext, PgProvError, console
from pgprov.core.validation import validate_name, validate_privileges, validate_setting_name
from pgprov.resources import RoleResource
from pgprov.services.predicates import Predicates
from pgprov.services.targets import ConnectionSpec, RoleTarget


app = typer.Typer(
    name="role",
    help="Role (user) management.",
    no_args_is_help=True,
)


def _get_services(ctx: ExecutionContext) -> tuple[CommandExecutor, RoleResource]:
    """Create service instances."""
    executor = CommandExecutor(ctx)
    resource = RoleResource(ctx, executor, platform=ctx.config.platform)
    return executor, resource


def _build_role(
    name: str,
    conn: ConnectionSpec,
    *,
    flags: Optional[dict[str, bool]] = None,
    role_password: Optional[str] = None,
    encrypted_password: Optional[str] = None,
    valid_until: Optional[str] = None,
    settings: Optional[list[str]] = None,
    database: Optional[str] = None,
    privileges: Optional[list[str]] = None,
) -> RoleTarget:
    validate_name(name, "role")
    attributes: dict[str, Any] = parse_assignments(settings)
    for key in attributes:
        validate_setting_name(key)
    if database:
        validate_name(database, "database")

    return RoleTarget(
        name=name,
        password=role_password,
        encrypted_password=encrypted_password,
        valid_until=valid_until,
        attributes=attributes,
        database=database,
        privileges=tuple(validate_privileges(privileges)) if privileges else (),
        connection=conn,
        **(flags or {}),
    )


@app.command("create")
def create_role(
    name: str = typer.Argument(..., help="Role name"),
    superuser: bool = typer.Option(False, "--superuser/--no-superuser", help="SUPERUSER"),
    createdb: bool = typer.Option(False, "--createdb/--no-createdb", help="CREATEDB"),
    createrole: bool = typer.Option(False, "--createrole/--no-createrole", help="CREATEROLE"),
    inherit: bool = typer.Option(True, "--inherit/--no-inherit", help="INHERIT"),
    replication: bool = typer.Option(False, "--replication/--no-replication", help="REPLICATION"),
    login: bool = typer.Option(True, "--login/--no-login", help="LOGIN"),
    role_password: Optional[str] = typer.Option(
        None, "--role-password",
        help="Password for the new role",
        envvar="PGPROV_ROLE_PASSWORD",
        show_envvar=False,
    ),
    encrypted_password: Optional[str] = typer.Option(
        None, "--encrypted-password",
        help="Pre-hashed password (used instead of --role-password)",
    ),
    valid_until: Optional[str] = typer.Option(None, "--valid-until", help="Password expiry timestamp"),
    settings: Optional[list[str]] = typer.Option(
        None, "--set",
        help="Per-role setting name=value (repeatable). Applied by 'role update'.",
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
    """Create a role unless it already exists.

    Examples:

        pgprov role create app_user --createdb --role-password s3cret

        pgprov role create readonly --no-login --dry-run
    """
    ctx = get_context(dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )
        role = _build_role(
            name, conn,
            flags={
                "superuser": superuser,
                "createdb": createdb,
                "createrole": createrole,
                "inherit": inherit,
                "replication": replication,
                "login": login,
            },
            role_password=role_password,
            encrypted_password=encrypted_password,
            valid_until=valid_until,
            settings=settings,
        )
        _, resource = _get_services(ctx)
        report(resource.create(role), f"Role '{name}' created")
    except PgProvError as e:
        handle_error(e)


@app.command("update")
def update_role(
    name: str = typer.Argument(..., help="Role name"),
    superuser: bool = typer.Option(False, "--superuser/--no-superuser", help="SUPERUSER"),
    createdb: bool = typer.Option(False, "--createdb/--no-createdb", help="CREATEDB"),
    createrole: bool = typer.Option(False, "--createrole/--no-createrole", help="CREATEROLE"),
    inherit: bool = typer.Option(True, "--inherit/--no-inherit", help="INHERIT"),
    replication: bool = typer.Option(False, "--replication/--no-replication", help="REPLICATION"),
    login: bool = typer.Option(True, "--login/--no-login", help="LOGIN"),
    role_password: Optional[str] = typer.Option(
        None, "--role-password",
        help="New password for the role",
        envvar="PGPROV_ROLE_PASSWORD",
        show_envvar=False,
    ),
    encrypted_password: Optional[str] = typer.Option(None, "--encrypted-password", help="Pre-hashed password"),
    valid_until: Optional[str] = typer.Option(None, "--valid-until", help="Password expiry timestamp"),
    settings: Optional[list[str]] = typer.Option(
        None, "--set",
        help="Per-role setting name=value (repeatable). When given, only the settings are applied.",
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
    """Update an existing role.

    Without --set the role's flags and password are altered. With --set,
    one ALTER ROLE ... SET is run per setting instead.

    Examples:

        pgprov role update app_user --createdb

        pgprov role update app_user --set search_path=app --set work_mem=64MB
    """
    ctx = get_context(dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )
        role = _build_role(
            name, conn,
            flags={
                "superuser": superuser,
                "createdb": createdb,
                "createrole": createrole,
                "inherit": inherit,
                "replication": replication,
                "login": login,
            },
            role_password=role_password,
            encrypted_password=encrypted_password,
            valid_until=valid_until,
            settings=settings,
        )
        _, resource = _get_services(ctx)
        for outcome in resource.update(role):
            report(outcome, f"Role '{name}' updated")
    except PgProvError as e:
        handle_error(e)


@app.command("drop")
def drop_role(
    name: str = typer.Argument(..., help="Role name"),
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
    """Drop a role if it exists."""
    ctx = get_context(dry_run=dry_run, yes=yes, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )
        role = _build_role(name, conn)

        if ctx.should_confirm:
            if not console.confirm(f"Drop role '{name}'?"):
                console.warn("Operation cancelled")
                raise typer.Exit(0)

        _, resource = _get_services(ctx)
        report(resource.drop(role), f"Role '{name}' dropped")
    except PgProvError as e:
        handle_error(e)


@app.command("grant")
def grant_role(
    name: str = typer.Argument(..., help="Role name"),
    database: str = typer.Option(..., "--database", "-d", help="Database to grant on"),
    privileges: list[str] = typer.Option(
        ..., "--privilege",
        help="Database privilege, e.g. CONNECT, CREATE, TEMPORARY, ALL (repeatable)",
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
    """Grant database privileges to a role.

    Runs only when both the role and the database exist.

    Example:

        pgprov role grant app_user -d app --privilege CONNECT --privilege CREATE
    """
    ctx = get_context(dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        conn = resolve_connection(
            ctx, host=host, port=port, user=user, password=password,
            generate_password=generate_password, peer=peer,
        )
        role = _build_role(name, conn, database=database, privileges=privileges)
        _, resource = _get_services(ctx)
        report(resource.grant(role), f"Granted {', '.join(role.privileges)} on '{database}' to '{name}'")
    except PgProvError as e:
        handle_error(e)


@app.command("exists")
def role_exists(
    name: str = typer.Argument(..., help="Role name"),
    host: HostOption = None,
    port: PortOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    peer: PeerOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Check whether a role exists (exit status 0 if it does, 1 if not)."""
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        conn = resolve_connection(ctx, host=host, port=port, user=user, password=password, peer=peer)
        role = _build_role(name, conn)
        executor, _ = _get_services(ctx)
        found = Predicates(executor).user_exists(role)
    except PgProvError as e:
        handle_error(e)
        return

    if found:
        console.info(f"Role '{name}' exists")
        return
    console.info(f"Role '{name}' does not exist")
    raise typer.Exit(1)
