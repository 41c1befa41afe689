"""Converge every resource declared in the configuration file.

Order: role create and update, databases, role grant and drop,
extensions, then the server restart check. A role is created before any
database that names it as owner; grants run after the databases they name.
Each entry's `conn` overrides the top-level `connection` section.
"""

from typing import Optional

from pgprov.commands.common import ensure_password
from pgprov.core import CommandExecutor, ExecutionContext, MachineConfig
from pgprov.core.config import ConnectionConfig
from pgprov.resources import (
    ActionOutcome,
    DatabaseResource,
    ExtensionResource,
    RoleResource,
    ServerConfResource,
)
from pgprov.services.targets import ConnectionSpec


class Applier:
    """Runs the actions of one configuration file and tallies outcomes."""

    def __init__(self, ctx: ExecutionContext, executor: CommandExecutor) -> None:
        self.ctx = ctx
        platform = ctx.config.platform
        self.databases = DatabaseResource(ctx, executor, platform=platform)
        self.roles = RoleResource(ctx, executor, platform=platform)
        self.extensions = ExtensionResource(ctx, executor, platform=platform)
        self.server = ServerConfResource(ctx, executor, platform=platform)
        self.rows: list[list[str]] = []
        self.outcomes: list[ActionOutcome] = []

    def _conn(self, override: Optional[ConnectionConfig]) -> ConnectionSpec:
        return ensure_password(self.ctx, self.ctx.config.connection_for(override))

    def _record(self, kind: str, name: str, action: str, outcome: ActionOutcome) -> None:
        self.rows.append([kind, name, action, outcome.value])
        self.outcomes.append(outcome)

    def _roles(self, machine: MachineConfig, actions: tuple[str, ...]) -> None:
        for entry in machine.roles:
            role = entry.to_target(self._conn(entry.conn))
            for action in entry.actions:
                if action not in actions:
                    continue
                if action == "update":
                    for outcome in self.roles.update(role):
                        self._record("role", entry.name, action, outcome)
                    continue
                outcome = getattr(self.roles, action)(role)
                self._record("role", entry.name, action, outcome)

    def run(self, machine: MachineConfig) -> None:
        self._roles(machine, ("create", "update"))

        for db in machine.databases:
            target = db.to_target(self._conn(db.conn))
            if db.action == "drop":
                outcome = self.databases.drop(target)
            else:
                outcome = self.databases.create(target)
            self._record("database", db.name, db.action, outcome)

        self._roles(machine, ("grant", "drop"))

        for ext in machine.extensions:
            target = ext.to_target(self._conn(ext.conn))
            label = f"{ext.database}/{ext.name}"
            if ext.action == "drop":
                self._record("extension", label, "drop", self.extensions.drop(target))
            else:
                for outcome in self.extensions.create(target):
                    self._record("extension", label, "create", outcome)

        if machine.server is not None and machine.server.restart_if_needed:
            target = machine.server.to_target(self.ctx.config.platform.version, self._conn(None))
            outcome = self.server.restart_if_needed(target)
            self._record("server", self.server.service_name(target), "restart", outcome)

    @property
    def changed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.changed)


def run_apply(ctx: ExecutionContext) -> Applier:
    """Apply the configuration file at ctx.config_path.

    Raises:
        ConfigurationError: If the file is missing or invalid
        ExecutionError: If a mutating command fails
    """
    machine = MachineConfig.load(ctx.config_path)
    applier = Applier(ctx, CommandExecutor(ctx))
    applier.run(machine)
    return applier
