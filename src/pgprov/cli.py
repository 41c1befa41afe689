"""Main CLI entry point using Typer.

This module defines the root CLI application and the config and apply
commands. Resource command groups are registered from submodules.
"""

from typing import Annotated

import typer
from rich.console import Console

from pgprov import __version__
from pgprov.commands import db_app, extension_app, role_app, server_app
from pgprov.commands.common import (
    ConfigOption,
    DryRunOption,
    NoColorOption,
    QuietOption,
    VerboseOption,
    get_context,
    handle_error,
)
from pgprov.core.config import AppConfig, MachineConfig, get_example_config, init_config
from pgprov.core.exceptions import PgProvError


# Create the main Typer app
app = typer.Typer(
    name="pgprov",
    help="pgprov - Idempotent PostgreSQL provisioning.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)

config_app = typer.Typer(
    name="config",
    help="Configuration management.",
    no_args_is_help=True,
)

# Register command groups
app.add_typer(db_app, name="db")
app.add_typer(role_app, name="role")
app.add_typer(extension_app, name="extension")
app.add_typer(server_app, name="server")
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console = Console()
        console.print(f"pgprov version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """pgprov - Idempotent PostgreSQL provisioning.

    Creates, updates and drops databases, roles and extensions, and
    restarts the server when settings are pending a restart. Every action
    checks current state first and does nothing when there is nothing to do.

    [bold]Features:[/bold]
    - Check-then-act: re-running is always safe
    - Replicas are detected and left alone
    - Dry-run mode to preview commands
    - Audit logging of all actions

    [bold]Examples:[/bold]
        pgprov db create myapp --owner app_user
        pgprov role create app_user --role-password s3cret
        pgprov extension create pgcrypto -d myapp
        pgprov apply --dry-run
        pgprov config show
    """
    pass


# ============================================================================
# Config commands
# ============================================================================

@config_app.command("show")
def config_show(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Show current configuration.

    Displays the loaded configuration from the config file.
    Passwords are redacted.
    """
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        app_config = ctx.config

        ctx.console.print()
        ctx.console.print(f"[bold]Configuration file:[/bold] {ctx.config_path}")
        ctx.console.print(f"[bold]File exists:[/bold] {ctx.config_path.exists()}")
        ctx.console.print()

        ctx.console.yaml(app_config.config.to_yaml(), title="Configuration")

        ctx.console.summary("Secrets (from environment)", {
            "PGPROV_PASSWORD": "Set" if app_config.secrets.pgprov_password else "Not set",
        })

    except PgProvError as e:
        handle_error(e)


@config_app.command("init")
def config_init(
    config: ConfigOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file."),
    ] = False,
    no_color: NoColorOption = False,
) -> None:
    """Initialize a new configuration file.

    Creates a configuration file with an example of every section.
    """
    ctx = get_context(no_color=no_color, config=config)
    config_path = ctx.config_path

    try:
        init_config(config_path, force=force)
        ctx.console.success(f"Configuration file created: {config_path}")
        ctx.console.info("Edit the file to declare databases, roles and extensions.")
        ctx.console.hint("Set the connection password via PGPROV_PASSWORD")

    except PgProvError as e:
        handle_error(e)


@config_app.command("validate")
def config_validate(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Validate configuration file.

    Checks that the configuration file exists, is valid YAML,
    and all values pass validation.
    """
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        machine = MachineConfig.load(ctx.config_path)
        app_config = AppConfig(config_path=ctx.config_path, config=machine)
        ctx.console.success(f"Configuration is valid: {ctx.config_path}")

        if ctx.is_verbose:
            ctx.console.yaml(app_config.config.to_yaml())

        warnings = []

        for role in machine.roles:
            if "grant" in role.actions and not (role.database and role.privileges):
                warnings.append(f"Role '{role.name}' has a grant action but no database or privileges")
            if role.attributes and "create" in role.actions and "update" not in role.actions:
                warnings.append(f"Role '{role.name}' attributes are only applied by the update action")

        if machine.connection.password and machine.connection.password_generate:
            warnings.append("connection.password is ignored when password_generate is set")

        if app_config.is_production and machine.connection.password:
            warnings.append("Plain-text connection.password in a production config, prefer PGPROV_PASSWORD")

        if warnings:
            ctx.console.print()
            for warning in warnings:
                ctx.console.warn(warning)

    except PgProvError as e:
        handle_error(e)


@config_app.command("example")
def config_example(no_color: NoColorOption = False) -> None:
    """Print example configuration file.

    Outputs a complete example configuration with comments.
    Useful as a starting point for creating your own config.
    """
    ctx = get_context(no_color=no_color)
    ctx.console.print(get_example_config())


# ============================================================================
# Apply command
# ============================================================================

@app.command("apply")
def apply_cmd(
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Converge everything declared in the configuration file.

    Roles are created and updated first, then databases are handled,
    then grants and role drops run, then extensions, and last the server
    is restarted if settings are pending a restart.

    [bold]Examples:[/bold]

        # Preview the commands
        pgprov apply --dry-run

        # Apply a specific file
        pgprov apply -c ./config.yaml
    """
    from pgprov.commands.apply import run_apply

    ctx = get_context(dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config)

    try:
        applier = run_apply(ctx)
    except PgProvError as e:
        handle_error(e)
        return

    if not applier.rows:
        ctx.console.info("Nothing declared in the configuration file")
        return

    ctx.console.table("Apply results", ["Kind", "Name", "Action", "Outcome"], applier.rows)
    ctx.console.info(f"{applier.changed} change(s) applied")


# Entry point
if __name__ == "__main__":
    app()
