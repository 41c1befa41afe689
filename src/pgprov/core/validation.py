"""Input validation and quoting utilities.

Provides:
- Object name validation (databases, roles, extensions)
- Identifier and literal quoting for generated SQL
- Escaping of SQL embedded in a double-quoted shell word
- Port, privilege and setting-name validation

Validators return the validated value or raise ValidationError.
"""

import re
from typing import Iterable

from pgprov.core.exceptions import ValidationError


# PostgreSQL reserved key words (PG 16 docs, "reserved" column)
PG_RESERVED_WORDS: frozenset[str] = frozenset({
    "all", "analyse", "analyze", "and", "any", "array", "as", "asc",
    "asymmetric", "authorization", "binary", "both", "case", "cast",
    "check", "collate", "collation", "column", "concurrently",
    "constraint", "create", "cross", "current_catalog", "current_date",
    "current_role", "current_schema", "current_time", "current_timestamp",
    "current_user", "default", "deferrable", "desc", "distinct", "do",
    "else", "end", "except", "false", "fetch", "for", "foreign", "freeze",
    "from", "full", "grant", "group", "having", "ilike", "in", "initially",
    "inner", "intersect", "into", "is", "isnull", "join", "lateral",
    "leading", "left", "like", "limit", "localtime", "localtimestamp",
    "natural", "not", "notnull", "null", "offset", "on", "only", "or",
    "order", "outer", "overlaps", "placing", "primary", "references",
    "returning", "right", "select", "session_user", "similar", "some",
    "symmetric", "system_user", "table", "tablesample", "then", "to",
    "trailing", "true", "union", "unique", "user", "using", "variadic",
    "verbose", "when", "where", "window", "with",
})

# Names that never need double quotes
BARE_IDENTIFIER_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")

# Run-time parameter names (ALTER ROLE ... SET <name>)
SETTING_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

# Privileges accepted by GRANT ... ON DATABASE
DATABASE_PRIVILEGES: frozenset[str] = frozenset({
    "CREATE", "CONNECT", "TEMPORARY", "TEMP", "ALL", "ALL PRIVILEGES",
})

MAX_IDENTIFIER_LENGTH = 63


def validate_name(value: str, object_type: str = "object") -> str:
    """Validate a PostgreSQL object name.

    Names are quoted on the way into SQL, so anything printable is
    accepted as long as it fits in an identifier.

    Raises:
        ValidationError: If the name is empty, too long or has control characters
    """
    if not value:
        raise ValidationError(
            f"{object_type.title()} name cannot be empty",
            hint="Provide a valid name",
        )

    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(
            f"{object_type.title()} name exceeds maximum length "
            f"({len(value)} > {MAX_IDENTIFIER_LENGTH})",
            hint=f"Use a name with {MAX_IDENTIFIER_LENGTH} or fewer characters",
            details=[f"Provided: {value[:50]}..."],
        )

    if any(ord(ch) < 32 for ch in value):
        raise ValidationError(
            f"{object_type.title()} name contains control characters",
            details=[f"Provided: {value!r}"],
        )

    return value


def validate_port(value: int) -> int:
    """Validate a port number.

    Raises:
        ValidationError: If port is out of valid range
    """
    if not 1 <= value <= 65535:
        raise ValidationError(
            f"Invalid port number: {value}",
            hint="Port must be between 1 and 65535",
        )
    return value


def validate_setting_name(value: str) -> str:
    """Validate a run-time parameter name such as ``search_path``."""
    if not SETTING_NAME_PATTERN.match(value):
        raise ValidationError(
            f"Invalid setting name: '{value}'",
            hint="Use a parameter name like search_path or app.tenant",
        )
    return value


def validate_privileges(privileges: Iterable[str]) -> list[str]:
    """Validate and normalize database privileges.

    Returns:
        Upper-cased privileges in the given order

    Raises:
        ValidationError: If the list is empty or holds an unknown privilege
    """
    normalized = [" ".join(p.split()).upper() for p in privileges]
    if not normalized:
        raise ValidationError(
            "At least one privilege is required",
            hint=f"Use one of: {', '.join(sorted(DATABASE_PRIVILEGES))}",
        )

    unknown = [p for p in normalized if p not in DATABASE_PRIVILEGES]
    if unknown:
        raise ValidationError(
            f"Unknown database privilege: {', '.join(unknown)}",
            hint=f"Use one of: {', '.join(sorted(DATABASE_PRIVILEGES))}",
        )
    return normalized


def quote_ident(name: str, *, force: bool = False) -> str:
    """Quote an identifier the way PostgreSQL's quote_ident() does.

    Lower-case names that are not reserved words come back unchanged;
    everything else is double-quoted with embedded quotes doubled.

    Args:
        name: Identifier to quote
        force: Always double-quote

    Returns:
        Identifier safe to splice into SQL
    """
    if not force and BARE_IDENTIFIER_PATTERN.match(name) and name not in PG_RESERVED_WORDS:
        return name
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Quote a string literal, doubling embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


def shell_double_quote(text: str) -> str:
    """Escape text for use inside a double-quoted shell word.

    Backslash, double quote, dollar and backtick keep their literal
    meaning; the surrounding quotes are not added.
    """
    return re.sub(r'([\\"$`])', r"\\\1", text)
