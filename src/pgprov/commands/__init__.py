"""CLI command groups."""

from pgprov.commands.db import app as db_app
from pgprov.commands.role import app as role_app
from pgprov.commands.extension import app as extension_app
from pgprov.commands.server import app as server_app

__all__ = ["db_app", "role_app", "extension_app", "server_app"]
