"""Configuration management using Pydantic.

Provides:
- Typed configuration models with validation
- YAML file loading with defaults
- Environment variable overrides for secrets
- Declarative database, role and extension lists for `pgprov apply`
"""

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from pgprov.core.exceptions import ConfigurationError
from pgprov.core.validation import validate_name, validate_port, validate_privileges
from pgprov.services.platform import PlatformContext, PlatformFamily
from pgprov.services.targets import (
    ConnectionSpec,
    DatabaseTarget,
    ExtensionTarget,
    RoleTarget,
    ServerConfTarget,
)


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/pgprov/config.yaml")
DEFAULT_CREDENTIALS_DIR = Path("/root/.pgprov/credentials")
DEFAULT_LOG_DIR = Path("/var/log/pgprov")


def _check_name(v: str, kind: str) -> str:
    # pydantic reports ValueError; ValidationError is not a ValueError
    try:
        return validate_name(v, kind)
    except Exception as e:
        raise ValueError(str(e)) from e


class PlatformConfig(BaseModel):
    """Node platform used to derive paths and service names."""

    family: str = "debian"
    version: str = "16"
    virtualization: Optional[str] = None

    @field_validator("family")
    @classmethod
    def validate_family(cls, v: str) -> str:
        valid = {f.value for f in PlatformFamily}
        if v.strip().lower() not in valid:
            raise ValueError(f"Platform family must be one of: {sorted(valid)}")
        return v.strip().lower()

    def to_context(self) -> PlatformContext:
        return PlatformContext(
            family=PlatformFamily.parse(self.family),
            version=self.version,
            virtualization=self.virtualization,
        )


class ConnectionConfig(BaseModel):
    """Client connection preferences (the `conn` hash of a resource)."""

    host: Optional[str] = None
    port: Optional[int] = 5432
    user: Optional[str] = "postgres"
    password: Optional[str] = None
    password_generate: bool = False
    peer: bool = False

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        try:
            return validate_port(v)
        except Exception as e:
            raise ValueError(str(e)) from e

    def merged(self, override: Optional["ConnectionConfig"]) -> "ConnectionConfig":
        """Apply the fields explicitly set on ``override``."""
        if override is None:
            return self
        return self.model_copy(update=override.model_dump(exclude_unset=True))

    def to_spec(self) -> ConnectionSpec:
        return ConnectionSpec(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            password_generate=self.password_generate,
            peer=self.peer,
        )


class DatabaseConfig(BaseModel):
    """A database entry of the configuration file."""

    name: str
    template: str = "template1"
    encoding: Optional[str] = None
    locale: Optional[str] = None
    owner: Optional[str] = None
    action: Literal["create", "drop"] = "create"
    conn: Optional[ConnectionConfig] = None

    @field_validator("name")
    @classmethod
    def validate_db_name(cls, v: str) -> str:
        return _check_name(v, "database")

    def to_target(self, connection: ConnectionSpec) -> DatabaseTarget:
        return DatabaseTarget(
            name=self.name,
            template=self.template,
            encoding=self.encoding,
            locale=self.locale,
            owner=self.owner,
            connection=connection,
        )


class RoleConfig(BaseModel):
    """A role entry of the configuration file."""

    name: str
    superuser: bool = False
    createdb: bool = False
    createrole: bool = False
    inherit: bool = True
    replication: bool = False
    login: bool = True
    password: Optional[str] = None
    encrypted_password: Optional[str] = None
    valid_until: Optional[str] = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    database: Optional[str] = None
    privileges: list[str] = Field(default_factory=list)
    actions: list[Literal["create", "update", "drop", "grant"]] = Field(
        default_factory=lambda: ["create"]
    )
    conn: Optional[ConnectionConfig] = None

    @field_validator("name")
    @classmethod
    def validate_role_name(cls, v: str) -> str:
        return _check_name(v, "role")

    @field_validator("privileges")
    @classmethod
    def validate_role_privileges(cls, v: list[str]) -> list[str]:
        if not v:
            return v
        try:
            return validate_privileges(v)
        except Exception as e:
            raise ValueError(str(e)) from e

    def to_target(self, connection: ConnectionSpec) -> RoleTarget:
        return RoleTarget(
            name=self.name,
            superuser=self.superuser,
            createdb=self.createdb,
            createrole=self.createrole,
            inherit=self.inherit,
            replication=self.replication,
            login=self.login,
            password=self.password,
            encrypted_password=self.encrypted_password,
            valid_until=self.valid_until,
            attributes=self.attributes,
            database=self.database,
            privileges=tuple(self.privileges),
            connection=connection,
        )


class ExtensionConfig(BaseModel):
    """An extension entry of the configuration file."""

    name: str
    database: str
    old_version: Optional[str] = None
    source_directory: Optional[str] = None
    version: str = "--1.0"
    action: Literal["create", "drop"] = "create"
    conn: Optional[ConnectionConfig] = None

    @field_validator("name")
    @classmethod
    def validate_extension_name(cls, v: str) -> str:
        return _check_name(v, "extension")

    def to_target(self, connection: ConnectionSpec) -> ExtensionTarget:
        return ExtensionTarget(
            name=self.name,
            database=self.database,
            old_version=self.old_version,
            source_directory=self.source_directory,
            version=self.version,
            connection=connection,
        )


class ServerConfConfig(BaseModel):
    """Server settings section; paths default from the platform."""

    data_directory: Optional[str] = None
    hba_file: Optional[str] = None
    ident_file: Optional[str] = None
    external_pid_file: Optional[str] = None
    stats_temp_directory: Optional[str] = None
    additional_config: dict[str, Any] = Field(default_factory=dict)
    database: Optional[str] = None
    restart_if_needed: bool = True

    def to_target(self, version: str, connection: ConnectionSpec) -> ServerConfTarget:
        return ServerConfTarget(
            version=version,
            data_directory=self.data_directory,
            hba_file=self.hba_file,
            ident_file=self.ident_file,
            external_pid_file=self.external_pid_file,
            stats_temp_directory=self.stats_temp_directory,
            additional_config=self.additional_config,
            database=self.database,
            connection=connection,
        )


class MachineConfig(BaseModel):
    """Root configuration model for a single machine.

    This is the main configuration loaded from /etc/pgprov/config.yaml.
    Secrets are NOT required in this file - they can come from
    environment variables.
    """

    environment: str = "development"

    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)

    databases: list[DatabaseConfig] = Field(default_factory=list)
    roles: list[RoleConfig] = Field(default_factory=list)
    extensions: list[ExtensionConfig] = Field(default_factory=list)
    server: Optional[ServerConfConfig] = None

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = {"development", "staging", "production"}
        if v not in valid_envs:
            raise ValueError(f"Environment must be one of: {sorted(valid_envs)}")
        return v

    @classmethod
    def load(cls, path: Path) -> "MachineConfig":
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: If file not found or invalid
        """
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                hint="Create it with: pgprov config init",
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {path}",
                details=[str(e)],
            ) from e
        except PermissionError:
            raise ConfigurationError(
                f"Cannot read configuration file: {path}",
                hint="Check file permissions or run with sudo",
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {path}",
            )

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigurationError(
                f"Invalid configuration: {path}",
                details=[str(e)],
            ) from e

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> "MachineConfig":
        """Load configuration, falling back to defaults if file doesn't exist."""
        if path is None:
            path = DEFAULT_CONFIG_PATH

        if path.exists():
            return cls.load(path)
        return cls()

    def to_yaml(self) -> str:
        """Convert configuration to YAML string (passwords redacted)."""
        data = self.model_dump(exclude_none=True)
        _redact(data)
        return yaml.dump(data, default_flow_style=False, sort_keys=False)


def _redact(data: Any) -> None:
    if isinstance(data, dict):
        for key in list(data):
            if "password" in key and isinstance(data[key], str):
                data[key] = "***REDACTED***"
            else:
                _redact(data[key])
    elif isinstance(data, list):
        for item in data:
            _redact(item)


class SecretsConfig(BaseSettings):
    """Secrets loaded from environment variables.

    These are NEVER written to config files.
    """

    pgprov_password: Optional[str] = Field(None, alias="PGPROV_PASSWORD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


class AppConfig:
    """Application configuration combining config file and secrets.

    This is the main interface for accessing configuration throughout the app.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[MachineConfig] = None,
    ) -> None:
        """Initialize application configuration.

        Args:
            config_path: Path to config file (uses default if None)
            config: Pre-loaded config (skips file loading if provided)
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = config or MachineConfig.load_or_default(self.config_path)
        self._secrets = SecretsConfig()

    @property
    def config(self) -> MachineConfig:
        return self._config

    @property
    def secrets(self) -> SecretsConfig:
        return self._secrets

    @property
    def platform(self) -> PlatformContext:
        """Shortcut to the platform context."""
        return self._config.platform.to_context()

    @property
    def connection(self) -> ConnectionConfig:
        """Base connection with the PGPROV_PASSWORD override applied."""
        conn = self._config.connection
        if self._secrets.pgprov_password:
            conn = conn.model_copy(update={"password": self._secrets.pgprov_password})
        return conn

    def connection_for(self, override: Optional[ConnectionConfig] = None) -> ConnectionSpec:
        """Connection spec for one resource entry."""
        return self.connection.merged(override).to_spec()

    @property
    def is_production(self) -> bool:
        return self._config.environment == "production"

    @property
    def credentials_dir(self) -> Path:
        return DEFAULT_CREDENTIALS_DIR


def get_example_config() -> str:
    """Generate example configuration file content."""
    return """# pgprov configuration
# Single configuration file per machine
# The connection password may come from PGPROV_PASSWORD instead of this file

environment: development  # development, staging, production

# Node platform (paths and service names are derived from it)
platform:
  family: debian      # rhel, fedora, amazon, debian
  version: "16"
  # virtualization: docker

# Default client connection, overridable per entry with `conn:`
connection:
  # host: db.internal
  port: 5432
  user: postgres
  # password_generate: true   # stored locally, not set on the server role
  # peer: true

databases:
  - name: app
    owner: app_user
    encoding: UTF8
    # template: template1   # "" to omit -T

roles:
  - name: app_user
    login: true
    createdb: false
    database: app
    privileges: [CONNECT, CREATE]
    actions: [create, update, grant]   # create and update run before databases, grant after
    attributes:
      search_path: app

extensions:
  - name: pgcrypto
    database: app

server:
  additional_config:
    max_connections: 200
  restart_if_needed: true
"""


def init_config(path: Path, force: bool = False) -> None:
    """Initialize a new configuration file.

    Raises:
        ConfigurationError: If file exists and force is False
    """
    if path.exists() and not force:
        raise ConfigurationError(
            f"Configuration file already exists: {path}",
            hint="Use --force to overwrite",
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(get_example_config())
    os.chmod(path, 0o600)
