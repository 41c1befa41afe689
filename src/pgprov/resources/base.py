"""Shared check-then-act machinery for resources.

A resource action is: bail out on a local replica, evaluate its guard
predicate, and run one mutating command when the guard allows it. The
check and the act are separate commands, so a concurrent change in
between is tolerated and converges on the next run.
"""

from enum import Enum
from typing import Callable, Optional

from pgprov.core.audit import AuditEventType, AuditLogger, AuditResult, get_audit_logger
from pgprov.core.context import ExecutionContext
from pgprov.core.exceptions import ExecutionError
from pgprov.core.executor import CommandExecutor
from pgprov.services.platform import PlatformContext, data_dir
from pgprov.services.predicates import Predicates, sys_user_exists
from pgprov.services.targets import ConnectionSpec


SERVER_OS_USER = "postgres"


class ActionOutcome(Enum):
    """What a resource action ended up doing."""
    APPLIED = "applied"
    SKIPPED = "skipped"
    REPLICA = "replica"
    DRY_RUN = "dry_run"

    @property
    def changed(self) -> bool:
        return self is ActionOutcome.APPLIED


class Resource:
    """Base class for database, role, extension and server resources."""

    target_type = "resource"

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        *,
        platform: Optional[PlatformContext] = None,
        predicates: Optional[Predicates] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        """Initialize resource.

        Args:
            ctx: Execution context
            executor: Command executor
            platform: Node platform; without it the replica check is skipped
            predicates: Existence checks (built from the executor if None)
            audit: Audit logger (global logger if None)
        """
        self.ctx = ctx
        self.executor = executor
        self.platform = platform
        self.predicates = predicates or Predicates(executor)
        self.audit = audit or get_audit_logger()

    def _on_replica(self, connection: ConnectionSpec) -> bool:
        if self.platform is None:
            return False
        return self.predicates.is_local_replica(connection, data_dir(self.platform))

    def _converge(
        self,
        *,
        event_type: AuditEventType,
        name: str,
        connection: ConnectionSpec,
        command: str,
        description: str,
        should_run: Callable[[], bool],
        skip_message: str,
        sensitive: bool = False,
    ) -> ActionOutcome:
        """Run ``command`` unless on a replica or ``should_run`` says no.

        Raises:
            ExecutionError: If the mutating command fails
        """
        if self.ctx.dry_run:
            self._run(command, description, sensitive)
            self.audit.record(event_type, AuditResult.DRY_RUN, self.target_type, name)
            return ActionOutcome.DRY_RUN

        if self._on_replica(connection):
            self.ctx.console.skip(f"{description}: server is a replica")
            self.audit.record(
                event_type, AuditResult.SKIPPED, self.target_type, name,
                message="replica",
            )
            return ActionOutcome.REPLICA

        if not should_run():
            self.ctx.console.skip(skip_message)
            self.audit.record(event_type, AuditResult.SKIPPED, self.target_type, name)
            return ActionOutcome.SKIPPED

        try:
            self._run(command, description, sensitive)
        except ExecutionError as e:
            self.audit.record(
                event_type, AuditResult.FAILURE, self.target_type, name,
                error=str(e),
            )
            raise

        self.audit.record(event_type, AuditResult.SUCCESS, self.target_type, name)
        return ActionOutcome.APPLIED

    def _run(self, command: str, description: str, sensitive: bool) -> None:
        as_user = SERVER_OS_USER if sys_user_exists(SERVER_OS_USER) else None
        self.executor.run_command(
            command,
            as_user,
            description=description,
            check=True,
            sensitive=sensitive,
        )
