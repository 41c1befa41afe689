"""Target objects describing the desired state of PostgreSQL objects.

Targets are built once per invocation from configuration or CLI options
and are never mutated afterwards; every check-then-act cycle reads a
fresh value from the database instead of caching.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional


DEFAULT_PORT = 5432
DEFAULT_USER = "postgres"
DEFAULT_TEMPLATE = "template1"
DEFAULT_EXTENSION_VERSION = "--1.0"

# Role flags in the order they are rendered into SQL
ROLE_FLAGS: tuple[str, ...] = (
    "superuser",
    "createdb",
    "createrole",
    "inherit",
    "replication",
    "login",
)


def _frozen(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ConnectionSpec:
    """How client tools reach the server.

    ``user`` and ``port`` may be None; command builders then fall back
    to ``postgres`` and 5432.
    """
    host: Optional[str] = None
    port: Optional[int] = DEFAULT_PORT
    user: Optional[str] = DEFAULT_USER
    password: Optional[str] = None
    password_generate: bool = False
    peer: bool = False

    @property
    def effective_user(self) -> str:
        return self.user or DEFAULT_USER

    @property
    def effective_port(self) -> int:
        return self.port or DEFAULT_PORT


@dataclass(frozen=True)
class DatabaseTarget:
    """A database that should exist (or not)."""
    name: str
    template: str = DEFAULT_TEMPLATE
    encoding: Optional[str] = None
    locale: Optional[str] = None
    owner: Optional[str] = None
    connection: ConnectionSpec = field(default_factory=ConnectionSpec)


@dataclass(frozen=True)
class RoleTarget:
    """A login or group role with its attributes.

    ``database`` and ``privileges`` are only used by the grant action.
    ``attributes`` holds per-role run-time settings applied with
    ``ALTER ROLE ... SET``.
    """
    name: str
    superuser: bool = False
    createdb: bool = False
    createrole: bool = False
    inherit: bool = True
    replication: bool = False
    login: bool = True
    password: Optional[str] = None
    encrypted_password: Optional[str] = None
    valid_until: Optional[str] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)
    database: Optional[str] = None
    privileges: tuple[str, ...] = ()
    connection: ConnectionSpec = field(default_factory=ConnectionSpec)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _frozen(self.attributes))
        object.__setattr__(self, "privileges", tuple(self.privileges))

    @property
    def flags(self) -> tuple[tuple[str, bool], ...]:
        """The six boolean role flags, in rendering order."""
        return tuple((flag, bool(getattr(self, flag))) for flag in ROLE_FLAGS)


@dataclass(frozen=True)
class ExtensionTarget:
    """An extension installed into one database."""
    name: str
    database: str
    old_version: Optional[str] = None
    source_directory: Optional[str] = None
    version: str = DEFAULT_EXTENSION_VERSION
    connection: ConnectionSpec = field(default_factory=ConnectionSpec)


@dataclass(frozen=True)
class ServerConfTarget:
    """Server-level settings; unset paths are derived from the platform."""
    version: str = "9.6"
    data_directory: Optional[str] = None
    hba_file: Optional[str] = None
    ident_file: Optional[str] = None
    external_pid_file: Optional[str] = None
    stats_temp_directory: Optional[str] = None
    additional_config: Mapping[str, Any] = field(default_factory=dict)
    database: Optional[str] = None
    connection: ConnectionSpec = field(default_factory=ConnectionSpec)

    def __post_init__(self) -> None:
        object.__setattr__(self, "additional_config", _frozen(self.additional_config))
