"""Database resource: createdb / dropdb guarded by database_exists."""

from pgprov.core.audit import AuditEventType
from pgprov.resources.base import ActionOutcome, Resource
from pgprov.services.commands import (
    build_create_database_invocation,
    build_drop_database_invocation,
)
from pgprov.services.connection import uses_password
from pgprov.services.targets import DatabaseTarget


class DatabaseResource(Resource):
    """Converges a single database."""

    target_type = "database"

    def create(self, target: DatabaseTarget) -> ActionOutcome:
        """Create the database unless it already exists."""
        return self._converge(
            event_type=AuditEventType.DATABASE_CREATE,
            name=target.name,
            connection=target.connection,
            command=build_create_database_invocation(target),
            description=f"Create database '{target.name}'",
            should_run=lambda: not self.predicates.database_exists(target),
            skip_message=f"Database '{target.name}' already exists",
            sensitive=uses_password(target.connection),
        )

    def drop(self, target: DatabaseTarget) -> ActionOutcome:
        """Drop the database if it exists."""
        return self._converge(
            event_type=AuditEventType.DATABASE_DROP,
            name=target.name,
            connection=target.connection,
            command=build_drop_database_invocation(target),
            description=f"Drop database '{target.name}'",
            should_run=lambda: self.predicates.database_exists(target),
            skip_message=f"Database '{target.name}' does not exist",
            sensitive=uses_password(target.connection),
        )
