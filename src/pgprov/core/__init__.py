"""Core framework components for pgprov."""

from pgprov.core.exceptions import (
    PgProvError,
    ConfigurationError,
    ValidationError,
    ExecutionError,
    PostgresError,
    CredentialError,
)

from pgprov.core.output import console, Console, Verbosity
from pgprov.core.config import AppConfig, MachineConfig
from pgprov.core.context import ExecutionContext, create_context
from pgprov.core.executor import CommandExecutor, CommandResult
from pgprov.core.audit import AuditLogger, AuditEventType, AuditResult, get_audit_logger

__all__ = [
    # Exceptions
    "PgProvError",
    "ConfigurationError",
    "ValidationError",
    "ExecutionError",
    "PostgresError",
    "CredentialError",
    # Output
    "console",
    "Console",
    "Verbosity",
    # Config
    "AppConfig",
    "MachineConfig",
    # Context
    "ExecutionContext",
    "create_context",
    # Executor
    "CommandExecutor",
    "CommandResult",
    # Audit
    "AuditLogger",
    "AuditEventType",
    "AuditResult",
    "get_audit_logger",
]
