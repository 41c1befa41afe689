"""Server configuration resource: effective settings and restart handling.

Rendering postgresql.conf itself is left to the caller; this resource
works out which settings the file should carry and restarts the
server when PostgreSQL reports settings pending a restart.
"""

from dataclasses import replace
from typing import Any

from pgprov.core.audit import AuditEventType, AuditResult
from pgprov.core.exceptions import ConfigurationError, ExecutionError
from pgprov.resources.base import ActionOutcome, Resource
from pgprov.services.platform import PlatformContext, conf_dir, data_dir, service_name
from pgprov.services.targets import ServerConfTarget


# Settings with a dedicated slot in postgresql.conf
KNOWN_SETTINGS: tuple[str, ...] = (
    "data_directory",
    "hba_file",
    "ident_file",
    "external_pid_file",
    "stats_temp_directory",
    "port",
)


class ServerConfResource(Resource):
    """Server-level settings of one PostgreSQL installation."""

    target_type = "server"

    def _platform_for(self, target: ServerConfTarget) -> PlatformContext:
        if self.platform is None:
            raise ConfigurationError(
                "Platform is required for server settings",
                hint="Set platform.family and platform.version in the config file",
            )
        return replace(self.platform, version=target.version)

    def service_name(self, target: ServerConfTarget) -> str:
        return service_name(self._platform_for(target))

    def settings(self, target: ServerConfTarget) -> tuple[dict[str, Any], dict[str, Any]]:
        """Compute the settings postgresql.conf should contain.

        Entries of ``additional_config`` replace a known setting of the
        same name; all others are returned separately as custom settings.

        Returns:
            Tuple of (known settings, custom settings)
        """
        platform = self._platform_for(target)
        config_dir = conf_dir(platform)

        known: dict[str, Any] = {
            "data_directory": target.data_directory or str(data_dir(platform)),
            "hba_file": target.hba_file or str(config_dir / "pg_hba.conf"),
            "ident_file": target.ident_file or str(config_dir / "pg_ident.conf"),
            "external_pid_file": (
                target.external_pid_file or f"/var/run/postgresql/{target.version}-main.pid"
            ),
            "stats_temp_directory": (
                target.stats_temp_directory
                or f"/var/run/postgresql/{target.version}-main.pg_stat_tmp"
            ),
            "port": target.connection.effective_port,
        }
        custom: dict[str, Any] = {}

        for key, value in target.additional_config.items():
            if key in known:
                known[key] = value
            else:
                custom[key] = value

        return known, custom

    def restart_if_needed(self, target: ServerConfTarget) -> ActionOutcome:
        """Restart the server when settings are pending a restart.

        Raises:
            ExecutionError: If the restart fails
        """
        service = self.service_name(target)

        if self.ctx.dry_run:
            self.executor.systemctl("restart", service)
            self.audit.record(AuditEventType.SERVER_RESTART, AuditResult.DRY_RUN, self.target_type, service)
            return ActionOutcome.DRY_RUN

        if not self.predicates.needs_restart(target.connection, target.database):
            self.ctx.console.skip(f"No settings pending restart for '{service}'")
            self.audit.record(AuditEventType.SERVER_RESTART, AuditResult.SKIPPED, self.target_type, service)
            return ActionOutcome.SKIPPED

        try:
            self.executor.systemctl("restart", service, description=f"Restart {service}")
        except ExecutionError as e:
            self.audit.record(
                AuditEventType.SERVER_RESTART, AuditResult.FAILURE, self.target_type, service,
                error=str(e),
            )
            raise

        self.audit.record(AuditEventType.SERVER_RESTART, AuditResult.SUCCESS, self.target_type, service)
        return ActionOutcome.APPLIED
