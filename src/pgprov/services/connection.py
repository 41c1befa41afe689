"""Connection parameter resolution for the PostgreSQL client tools.

Decides whether psql/createdb/dropdb connect over TCP or the local
socket, and whether a password has to travel with the command.
"""

import secrets
import shlex
from dataclasses import replace
from typing import Optional

from pgprov.core.output import console
from pgprov.services.targets import ConnectionSpec


LOCAL_HOSTS: frozenset[Optional[str]] = frozenset({None, "localhost", "127.0.0.1"})
DEFAULT_TCP_HOST = "localhost"


def is_local(spec: ConnectionSpec) -> bool:
    """Check if the connection targets this machine."""
    return spec.host in LOCAL_HOSTS


def uses_tcp(spec: ConnectionSpec) -> bool:
    """Check if the client should connect over TCP.

    Peer authentication always uses the local socket. Otherwise TCP is
    chosen only for a remote host reached as the default postgres user;
    a remote host with a named user stays on the socket.
    """
    if spec.peer:
        return False

    return not is_local(spec) and spec.user in (None, "postgres")


def uses_password(spec: ConnectionSpec) -> bool:
    """Check if PGPASSWORD has to be passed to the client."""
    return spec.password is not None and uses_tcp(spec)


def build_client_invocation(executable: str, spec: ConnectionSpec) -> str:
    """Build the command prefix for a PostgreSQL client tool.

    Args:
        executable: Client binary, e.g. ``psql`` or ``createdb``
        spec: Connection parameters

    Returns:
        ``[PGPASSWORD=<pw> ]<executable>[ -h <host>]``; callers append
        their own flags.
    """
    if not uses_tcp(spec):
        return executable

    parts = []
    if uses_password(spec):
        parts.append(f"PGPASSWORD={shlex.quote(spec.password)}")
    parts.append(executable)
    parts.append(f"-h {shlex.quote(spec.host or DEFAULT_TCP_HOST)}")
    return " ".join(parts)


def resolve_password(spec: ConnectionSpec) -> Optional[str]:
    """Return the effective password for this invocation.

    With ``password_generate`` set, a fresh random hex string is returned
    on every call. Nothing is stored here; callers that need a stable
    password must persist it (see CredentialManager).
    """
    if spec.password_generate:
        generated = secrets.token_hex(16)
        console.debug("Generated a new connection password")
        return generated
    return spec.password


def with_resolved_password(spec: ConnectionSpec, password: Optional[str] = None) -> ConnectionSpec:
    """Return a copy of the connection carrying its effective password.

    Args:
        spec: Connection parameters
        password: Already-resolved password; resolved from the connection if None
    """
    effective = password if password is not None else resolve_password(spec)
    return replace(spec, password=effective, password_generate=False)
