"""Role resource: CREATE/ALTER/DROP ROLE and database grants."""

from pgprov.core.audit import AuditEventType
from pgprov.core.exceptions import PostgresError
from pgprov.resources.base import ActionOutcome, Resource
from pgprov.services.commands import (
    build_alter_role_invocation,
    build_alter_role_setting_invocation,
    build_create_role_invocation,
    build_drop_role_invocation,
    build_grant_invocation,
)
from pgprov.services.connection import uses_password
from pgprov.services.targets import DatabaseTarget, RoleTarget


class RoleResource(Resource):
    """Converges a single role."""

    target_type = "role"

    def create(self, role: RoleTarget) -> ActionOutcome:
        """Create the role unless it exists.

        Role settings in ``attributes`` are not applied on create; use
        update for those.
        """
        if role.attributes:
            self.ctx.console.warn(
                f"Role '{role.name}': attributes are ignored by create, use update"
            )

        return self._converge(
            event_type=AuditEventType.ROLE_CREATE,
            name=role.name,
            connection=role.connection,
            command=build_create_role_invocation(role),
            description=f"Create role '{role.name}'",
            should_run=lambda: not self.predicates.user_exists(role),
            skip_message=f"Role '{role.name}' already exists",
            sensitive=True,
        )

    def update(self, role: RoleTarget) -> list[ActionOutcome]:
        """Bring an existing role in line with the target.

        Without attributes the full role clause is re-applied with ALTER
        ROLE. With attributes, each one is set with its own
        ``ALTER ROLE ... SET`` and the clause is left alone.

        Returns:
            One outcome per command considered
        """
        if not role.attributes:
            return [self._converge(
                event_type=AuditEventType.ROLE_UPDATE,
                name=role.name,
                connection=role.connection,
                command=build_alter_role_invocation(role),
                description=f"Update role '{role.name}'",
                should_run=lambda: self.predicates.user_exists(role),
                skip_message=f"Role '{role.name}' does not exist",
                sensitive=True,
            )]

        outcomes = []
        for attr, value in role.attributes.items():
            outcomes.append(self._converge(
                event_type=AuditEventType.ROLE_UPDATE,
                name=role.name,
                connection=role.connection,
                command=build_alter_role_setting_invocation(role, attr, value),
                description=f"Set {attr} for role '{role.name}'",
                should_run=lambda: self.predicates.user_exists(role),
                skip_message=f"Role '{role.name}' does not exist",
                sensitive=True,
            ))
        return outcomes

    def drop(self, role: RoleTarget) -> ActionOutcome:
        """Drop the role if it exists."""
        return self._converge(
            event_type=AuditEventType.ROLE_DROP,
            name=role.name,
            connection=role.connection,
            command=build_drop_role_invocation(role),
            description=f"Drop role '{role.name}'",
            should_run=lambda: self.predicates.user_exists(role),
            skip_message=f"Role '{role.name}' does not exist",
            sensitive=uses_password(role.connection),
        )

    def grant(self, role: RoleTarget) -> ActionOutcome:
        """Grant the role's privileges on its database.

        Runs only when both the role and the database exist.

        Raises:
            PostgresError: If the role has no database or no privileges
        """
        if not role.database or not role.privileges:
            raise PostgresError(
                f"Cannot grant for role '{role.name}': database and privileges are required",
                hint="Set --database and at least one --privilege",
            )

        database = DatabaseTarget(name=role.database, connection=role.connection)

        def should_run() -> bool:
            return self.predicates.user_exists(role) and self.predicates.database_exists(database)

        return self._converge(
            event_type=AuditEventType.ROLE_GRANT,
            name=role.name,
            connection=role.connection,
            command=build_grant_invocation(role),
            description=f"Grant {', '.join(role.privileges)} on '{role.database}' to '{role.name}'",
            should_run=should_run,
            skip_message=f"Role '{role.name}' or database '{role.database}' does not exist",
            sensitive=uses_password(role.connection),
        )
