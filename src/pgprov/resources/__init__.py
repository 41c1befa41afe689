"""Idempotent resources built on the existence checks."""

from pgprov.resources.base import ActionOutcome, Resource
from pgprov.resources.database import DatabaseResource
from pgprov.resources.role import RoleResource
from pgprov.resources.extension import ExtensionResource
from pgprov.resources.server_conf import ServerConfResource

__all__ = [
    "ActionOutcome",
    "Resource",
    "DatabaseResource",
    "RoleResource",
    "ExtensionResource",
    "ServerConfResource",
]
