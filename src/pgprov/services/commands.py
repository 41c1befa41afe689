"""Command-line builders for psql, createdb and dropdb.

Every function here is pure: it turns a target into a shell command
line (or a SQL statement) and never executes anything. Identifiers go
through quote_ident, literals through quote_literal, and shell words
through shlex.quote, so names taken from configuration cannot break out
of the statement or the command line.
"""

import posixpath
import shlex
from typing import Any, Iterable, Optional, Union

from pgprov.core.validation import (
    quote_ident,
    quote_literal,
    shell_double_quote,
    validate_privileges,
    validate_setting_name,
)
from pgprov.services.connection import build_client_invocation
from pgprov.services.targets import (
    ConnectionSpec,
    DatabaseTarget,
    ExtensionTarget,
    RoleTarget,
    ServerConfTarget,
)


PSQL = "psql"
CREATEDB = "createdb"
DROPDB = "dropdb"

Target = Union[DatabaseTarget, RoleTarget, ExtensionTarget, ServerConfTarget]


def _connection_of(target: Union[Target, ConnectionSpec]) -> ConnectionSpec:
    if isinstance(target, ConnectionSpec):
        return target
    return target.connection


def target_database(target: Union[Target, ConnectionSpec]) -> Optional[str]:
    """Database a target's psql commands connect to, if any."""
    if isinstance(target, DatabaseTarget):
        return target.name
    if isinstance(target, ConnectionSpec):
        return None
    return target.database


def _auth_flags(conn: ConnectionSpec) -> str:
    return f"-U {shlex.quote(conn.effective_user)} -p {conn.effective_port}"


def build_psql_invocation(
    target: Union[Target, ConnectionSpec],
    sql: str,
    grep_filter: Optional[str] = None,
    concise: bool = False,
    *,
    database: Optional[str] = None,
) -> str:
    """Build a psql command line running one SQL statement.

    Args:
        target: Target (or bare connection) supplying connection parameters
        sql: Statement passed with -c
        grep_filter: Pipe the output through ``grep <filter>``
        concise: Add -At (unaligned, tuples only)
        database: Database for -d; defaults to the target's database

    Returns:
        ``<prefix> [-At] -c "<sql>" -U <user> -p <port> [-d <db>] [| grep <f>]``
    """
    conn = _connection_of(target)
    db = database if database is not None else target_database(target)

    cmd = build_client_invocation(PSQL, conn)
    if concise:
        cmd += " -At"
    cmd += f' -c "{shell_double_quote(sql)}"'
    cmd += f" {_auth_flags(conn)}"
    if db:
        cmd += f" -d {shlex.quote(db)}"
    if grep_filter:
        cmd += f" | grep {shlex.quote(grep_filter)}"
    return cmd


# =========================================================================
# Databases
# =========================================================================

def build_create_database_invocation(target: DatabaseTarget) -> str:
    """Build the createdb command for a database target.

    ``-T`` is left out only when the template is the empty string.
    """
    cmd = build_client_invocation(CREATEDB, target.connection)
    cmd += f" {_auth_flags(target.connection)}"
    if target.encoding:
        cmd += f" -E {shlex.quote(target.encoding)}"
    if target.locale:
        cmd += f" -l {shlex.quote(target.locale)}"
    if target.template != "":
        cmd += f" -T {shlex.quote(target.template)}"
    if target.owner:
        cmd += f" -O {shlex.quote(target.owner)}"
    cmd += f" {shlex.quote(target.name)}"
    return cmd


def build_drop_database_invocation(target: DatabaseTarget) -> str:
    """Build the dropdb command for a database target."""
    cmd = build_client_invocation(DROPDB, target.connection)
    cmd += f" {_auth_flags(target.connection)}"
    cmd += f" {shlex.quote(target.name)}"
    return cmd


# =========================================================================
# Roles
# =========================================================================

def role_clause(role: RoleTarget) -> str:
    """Render ``<name> WITH <flags> [PASSWORD ...] [VALID UNTIL ...]``.

    Flags always appear in the order superuser, createdb, createrole,
    inherit, replication, login. An encrypted password takes precedence
    over a plain one.
    """
    parts = [quote_ident(role.name), "WITH"]
    for flag, enabled in role.flags:
        parts.append(flag.upper() if enabled else f"NO{flag.upper()}")

    if role.encrypted_password:
        parts.append(f"ENCRYPTED PASSWORD {quote_literal(role.encrypted_password)}")
    elif role.password:
        parts.append(f"PASSWORD {quote_literal(role.password)}")

    if role.valid_until:
        parts.append(f"VALID UNTIL {quote_literal(role.valid_until)}")

    return " ".join(parts)


def build_create_role_invocation(role: RoleTarget) -> str:
    return build_psql_invocation(role, f"CREATE ROLE {role_clause(role)}")


def build_alter_role_invocation(role: RoleTarget) -> str:
    return build_psql_invocation(role, f"ALTER ROLE {role_clause(role)}")


def setting_value(value: Any) -> str:
    """Render a role setting value: booleans bare, everything else quoted."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return quote_literal(str(value))


def build_alter_role_setting_invocation(role: RoleTarget, attr: str, value: Any) -> str:
    """Build ``ALTER ROLE <name> SET <attr> = <value>``."""
    validate_setting_name(attr)
    sql = f"ALTER ROLE {quote_ident(role.name)} SET {attr} = {setting_value(value)}"
    return build_psql_invocation(role, sql)


def build_drop_role_invocation(role: RoleTarget) -> str:
    return build_psql_invocation(role, f"DROP ROLE IF EXISTS {quote_ident(role.name)}")


def grant_statement(role: RoleTarget, privileges: Iterable[str]) -> str:
    """Render ``GRANT <privs> ON DATABASE "<db>" TO "<user>"``."""
    privs = validate_privileges(privileges)
    return (
        f"GRANT {', '.join(privs)} ON DATABASE {quote_ident(role.database or '', force=True)} "
        f"TO {quote_ident(role.name, force=True)}"
    )


def build_grant_invocation(role: RoleTarget, privileges: Optional[Iterable[str]] = None) -> str:
    """Build the psql command granting database privileges to a role."""
    privs = role.privileges if privileges is None else privileges
    return build_psql_invocation(role, grant_statement(role, privs))


# =========================================================================
# Extensions
# =========================================================================

def create_extension_statement(target: ExtensionTarget) -> str:
    """Render ``CREATE EXTENSION IF NOT EXISTS <name>[ FROM "<old>"]``."""
    sql = f"CREATE EXTENSION IF NOT EXISTS {quote_ident(target.name)}"
    if target.old_version:
        sql += f" FROM {quote_ident(target.old_version, force=True)}"
    return sql


def build_create_extension_invocation(target: ExtensionTarget) -> str:
    return build_psql_invocation(target, create_extension_statement(target))


def build_drop_extension_invocation(target: ExtensionTarget) -> str:
    sql = f"DROP EXTENSION IF EXISTS {quote_ident(target.name, force=True)}"
    return build_psql_invocation(target, sql)


def extension_script_path(target: ExtensionTarget) -> str:
    """Path of the install script, ``<source_directory>/<name><version>.sql``."""
    return posixpath.join(target.source_directory or "", f"{target.name}{target.version}.sql")


def extension_control_path(target: ExtensionTarget) -> str:
    """Path of the control file shipped next to the install script."""
    return posixpath.join(target.source_directory or "", f"{target.name}.control")


def build_load_extension_invocation(target: ExtensionTarget) -> str:
    """Build the psql command that runs an extension's install script."""
    cmd = build_client_invocation(PSQL, target.connection)
    cmd += f" -f {shlex.quote(extension_script_path(target))}"
    cmd += f" {_auth_flags(target.connection)}"
    cmd += f" -d {shlex.quote(target.database)}"
    return cmd
