"""
pgprov - Idempotent PostgreSQL provisioning CLI.

Converges databases, roles, extensions and server restart state by
driving psql, createdb and dropdb, guarded by existence checks.
"""

__version__ = "1.0.0"
__author__ = "pgprov maintainers"
