"""Unit tests for configuration loading."""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from pgprov.core.config import (
    AppConfig,
    ConnectionConfig,
    MachineConfig,
    get_example_config,
    init_config,
)
from pgprov.core.exceptions import ConfigurationError
from pgprov.services.platform import PlatformFamily


def _write(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


class TestMachineConfigLoad:
    """Tests for MachineConfig.load."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc:
            MachineConfig.load(tmp_path / "missing.yaml")
        assert "not found" in str(exc.value)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("databases: [unclosed\n")
        with pytest.raises(ConfigurationError) as exc:
            MachineConfig.load(path)
        assert "Invalid YAML" in str(exc.value)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            MachineConfig.load(path)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        config = MachineConfig.load(path)
        assert config.environment == "development"
        assert config.databases == []

    def test_invalid_values(self, tmp_path):
        path = _write(tmp_path / "config.yaml", {"environment": "qa"})
        with pytest.raises(ConfigurationError) as exc:
            MachineConfig.load(path)
        assert exc.value.details

    def test_unknown_platform_family(self, tmp_path):
        path = _write(tmp_path / "config.yaml", {"platform": {"family": "suse"}})
        with pytest.raises(ConfigurationError):
            MachineConfig.load(path)

    def test_unknown_privilege(self, tmp_path):
        path = _write(tmp_path / "config.yaml", {
            "roles": [{"name": "app_user", "privileges": ["SELECT"]}],
        })
        with pytest.raises(ConfigurationError):
            MachineConfig.load(path)

    def test_full_example_loads(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(get_example_config())
        config = MachineConfig.load(path)

        assert config.platform.family == "debian"
        assert [d.name for d in config.databases] == ["app"]
        assert config.roles[0].privileges == ["CONNECT", "CREATE"]
        assert config.roles[0].actions == ["create", "update", "grant"]
        assert config.extensions[0].name == "pgcrypto"
        assert config.server is not None
        assert config.server.additional_config == {"max_connections": 200}


class TestEntryDefaults:
    """Tests for per-entry defaults and conversions."""

    def test_database_defaults(self):
        config = MachineConfig(databases=[{"name": "app"}])
        target = config.databases[0].to_target(ConnectionConfig().to_spec())
        assert target.template == "template1"
        assert target.connection.user == "postgres"

    def test_role_defaults(self):
        config = MachineConfig(roles=[{"name": "app_user"}])
        role = config.roles[0]
        assert role.actions == ["create"]
        assert role.inherit is True
        assert role.login is True

    def test_role_target_privileges_are_tuple(self):
        config = MachineConfig(roles=[{"name": "r", "database": "app", "privileges": ["connect"]}])
        target = config.roles[0].to_target(ConnectionConfig().to_spec())
        assert target.privileges == ("CONNECT",)

    def test_extension_default_version(self):
        config = MachineConfig(extensions=[{"name": "myext", "database": "app"}])
        assert config.extensions[0].version == "--1.0"


class TestConnectionMerge:
    """Tests for combining the base connection with per-entry overrides."""

    def test_override_only_set_fields(self):
        base = ConnectionConfig(host="db.example.com", port=5433)
        merged = base.merged(ConnectionConfig(user="admin"))
        assert merged.host == "db.example.com"
        assert merged.port == 5433
        assert merged.user == "admin"

    def test_none_override(self):
        base = ConnectionConfig(host="db.example.com")
        assert base.merged(None) is base

    def test_invalid_port(self):
        with pytest.raises(ValueError):
            ConnectionConfig(port=70000)


class TestAppConfig:
    """Tests for AppConfig."""

    def test_platform_context(self):
        app_config = AppConfig(config=MachineConfig(platform={"family": "rhel", "version": "15"}))
        assert app_config.platform.family is PlatformFamily.RHEL
        assert app_config.platform.version == "15"

    def test_env_password_applies_to_connection(self):
        with patch.dict("os.environ", {"PGPROV_PASSWORD": "from-env"}):
            app_config = AppConfig(config=MachineConfig())
        assert app_config.connection.password == "from-env"
        assert app_config.connection_for().password == "from-env"

    def test_entry_override_beats_env_password(self):
        with patch.dict("os.environ", {"PGPROV_PASSWORD": "from-env"}):
            app_config = AppConfig(config=MachineConfig())
        spec = app_config.connection_for(ConnectionConfig(password="entry"))
        assert spec.password == "entry"

    def test_missing_file_uses_defaults(self, tmp_path):
        app_config = AppConfig(config_path=tmp_path / "none.yaml")
        assert app_config.config.environment == "development"


class TestToYaml:
    """Tests for configuration display."""

    def test_passwords_are_redacted(self):
        config = MachineConfig(
            connection={"password": "top-secret"},
            roles=[{"name": "app_user", "password": "role-secret"}],
        )
        text = config.to_yaml()
        assert "top-secret" not in text
        assert "role-secret" not in text
        assert "***REDACTED***" in text


class TestInitConfig:
    """Tests for init_config."""

    def test_creates_file(self, tmp_path):
        path = tmp_path / "etc" / "config.yaml"
        init_config(path)
        assert path.exists()
        assert path.stat().st_mode & 0o777 == 0o600

    def test_refuses_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("environment: production\n")
        with pytest.raises(ConfigurationError):
            init_config(path)

    def test_force_overwrites(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("environment: production\n")
        init_config(path, force=True)
        assert "databases:" in path.read_text()
