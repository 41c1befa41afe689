"""Extension resource: CREATE/DROP EXTENSION guarded by extension_installed."""

from pathlib import PurePosixPath

from pgprov.core.audit import AuditEventType
from pgprov.resources.base import ActionOutcome, Resource
from pgprov.services.commands import (
    build_create_extension_invocation,
    build_drop_extension_invocation,
    build_load_extension_invocation,
    extension_control_path,
)
from pgprov.services.connection import uses_password
from pgprov.services.platform import extension_share_dir
from pgprov.services.targets import ExtensionTarget


class ExtensionResource(Resource):
    """Converges one extension in one database."""

    target_type = "extension"

    def create(self, target: ExtensionTarget) -> list[ActionOutcome]:
        """Install the extension unless it is already installed.

        With ``source_directory`` set, the install script from that
        directory is run first and its control file is linked into the
        server's extension directory.

        Returns:
            Outcomes of the load step (if any) and the CREATE step
        """
        name = f"{target.database}/{target.name}"
        sensitive = uses_password(target.connection)
        outcomes = []

        if target.source_directory:
            outcomes.append(self._converge(
                event_type=AuditEventType.EXTENSION_CREATE,
                name=name,
                connection=target.connection,
                command=build_load_extension_invocation(target),
                description=f"Load extension '{target.name}' from {target.source_directory}",
                should_run=lambda: not self.predicates.extension_installed(target),
                skip_message=f"Extension '{target.name}' already installed in '{target.database}'",
                sensitive=sensitive,
            ))
            self._link_control_file(target)

        outcomes.append(self._converge(
            event_type=AuditEventType.EXTENSION_CREATE,
            name=name,
            connection=target.connection,
            command=build_create_extension_invocation(target),
            description=f"Create extension '{target.name}' in '{target.database}'",
            should_run=lambda: not self.predicates.extension_installed(target),
            skip_message=f"Extension '{target.name}' already installed in '{target.database}'",
            sensitive=sensitive,
        ))
        return outcomes

    def drop(self, target: ExtensionTarget) -> ActionOutcome:
        """Drop the extension if it is installed."""
        return self._converge(
            event_type=AuditEventType.EXTENSION_DROP,
            name=f"{target.database}/{target.name}",
            connection=target.connection,
            command=build_drop_extension_invocation(target),
            description=f"Drop extension '{target.name}' from '{target.database}'",
            should_run=lambda: self.predicates.extension_installed(target),
            skip_message=f"Extension '{target.name}' not installed in '{target.database}'",
            sensitive=uses_password(target.connection),
        )

    def _link_control_file(self, target: ExtensionTarget) -> None:
        if self.platform is None:
            self.ctx.console.warn(
                f"Platform unknown, not linking control file for '{target.name}'"
            )
            return

        link = extension_share_dir(self.platform) / f"{target.name}.control"
        self.executor.symlink(
            link,
            PurePosixPath(extension_control_path(target)),
            description=f"Link control file for '{target.name}'",
        )
