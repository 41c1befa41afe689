"""Custom exceptions for pgprov.

All exceptions provide:
- Clear error messages
- Optional hints for resolution
- Optional details for debugging
- Exit codes for proper shell integration
"""

from typing import Optional


class PgProvError(Exception):
    """Base exception for all pgprov errors.

    Attributes:
        message: Human-readable error description
        hint: Suggested action to resolve the error
        details: Additional context for debugging
        exit_code: Shell exit code (1-127)
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or []

    def __str__(self) -> str:
        return self.message


class ConfigurationError(PgProvError):
    """Configuration file or settings errors.

    Raised when:
    - Config file not found or unreadable
    - Invalid YAML syntax
    - Unknown platform family
    - Invalid configuration values
    """
    exit_code = 2


class ValidationError(PgProvError):
    """Input validation errors.

    Raised when:
    - Empty or oversized object names
    - Invalid port numbers
    - Privilege lists that are empty or malformed
    """
    exit_code = 3


class ExecutionError(PgProvError):
    """Command execution failures.

    Raised when a mutating command returns a non-zero exit code.
    Existence checks never raise this; they read the exit code instead.
    """
    exit_code = 5

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        return_code: Optional[int] = None,
        stderr: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        if not details:
            details = []
        if return_code is not None:
            details.append(f"Exit code: {return_code}")
        if stderr:
            details.append(f"Error output: {stderr}")
        super().__init__(message, hint=hint, details=details)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class PostgresError(PgProvError):
    """PostgreSQL-specific errors.

    Raised when:
    - A resource is missing required properties for an action
    - A database/role/extension operation cannot proceed
    """
    exit_code = 10


class CredentialError(PgProvError):
    """Credential management errors.

    Raised when:
    - Password file has wrong permissions
    - Cannot write credential file
    """
    exit_code = 14
