"""Platform-dependent PostgreSQL paths and service names.

The node's platform is passed in explicitly as a PlatformContext rather
than read from the environment. Every function covers all PlatformFamily
members and raises for anything else, so a path is never None.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional

from pgprov.core.exceptions import ConfigurationError


class PlatformFamily(Enum):
    """Operating system families with a known PostgreSQL layout."""
    RHEL = "rhel"
    FEDORA = "fedora"
    AMAZON = "amazon"
    DEBIAN = "debian"

    @classmethod
    def parse(cls, value: str) -> "PlatformFamily":
        """Parse a family name such as ``debian``.

        Raises:
            ConfigurationError: If the family is not supported
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unsupported platform family: '{value}'",
                hint=f"Use one of: {', '.join(f.value for f in cls)}",
            ) from None


# Families that keep configuration inside the data directory
_PGSQL_FAMILIES = frozenset({PlatformFamily.RHEL, PlatformFamily.FEDORA, PlatformFamily.AMAZON})


@dataclass(frozen=True)
class PlatformContext:
    """Facts about the node that paths and service names depend on."""
    family: PlatformFamily
    version: str
    virtualization: Optional[str] = None

    @property
    def in_docker(self) -> bool:
        return self.virtualization == "docker"

    @property
    def compact_version(self) -> str:
        """Version without dots, e.g. ``96`` for 9.6."""
        return self.version.replace(".", "")


def _unsupported(ctx: PlatformContext) -> ConfigurationError:
    return ConfigurationError(f"Unsupported platform family: {ctx.family!r}")


def data_dir(ctx: PlatformContext) -> PurePosixPath:
    """Default data directory for the platform."""
    if ctx.family in (PlatformFamily.RHEL, PlatformFamily.FEDORA):
        return PurePosixPath(f"/var/lib/pgsql/{ctx.version}/data")
    if ctx.family is PlatformFamily.AMAZON:
        if ctx.in_docker:
            return PurePosixPath(f"/var/lib/pgsql{ctx.compact_version}/data")
        return PurePosixPath(f"/var/lib/pgsql/{ctx.version}/data")
    if ctx.family is PlatformFamily.DEBIAN:
        return PurePosixPath(f"/var/lib/postgresql/{ctx.version}/main")
    raise _unsupported(ctx)


def conf_dir(ctx: PlatformContext) -> PurePosixPath:
    """Directory holding postgresql.conf, pg_hba.conf and pg_ident.conf."""
    if ctx.family in _PGSQL_FAMILIES:
        return data_dir(ctx)
    if ctx.family is PlatformFamily.DEBIAN:
        return PurePosixPath(f"/etc/postgresql/{ctx.version}/main")
    raise _unsupported(ctx)


def service_name(ctx: PlatformContext) -> str:
    """systemd unit name of the server."""
    if ctx.family in (PlatformFamily.RHEL, PlatformFamily.FEDORA):
        return f"postgresql-{ctx.version}"
    if ctx.family is PlatformFamily.AMAZON:
        if ctx.in_docker:
            return f"postgresql{ctx.compact_version}"
        return f"postgresql-{ctx.version}"
    if ctx.family is PlatformFamily.DEBIAN:
        return "postgresql"
    raise _unsupported(ctx)


def extension_share_dir(ctx: PlatformContext) -> PurePosixPath:
    """Directory the server loads extension control files from."""
    if ctx.family in _PGSQL_FAMILIES:
        return PurePosixPath(f"/usr/pgsql-{ctx.version}/share/extension")
    if ctx.family is PlatformFamily.DEBIAN:
        return PurePosixPath(f"/usr/share/postgresql/{ctx.version}/extension")
    raise _unsupported(ctx)
