"""Unit tests for platform paths and service names."""

from pathlib import PurePosixPath

import pytest

from pgprov.core.exceptions import ConfigurationError
from pgprov.services.platform import (
    PlatformContext,
    PlatformFamily,
    conf_dir,
    data_dir,
    extension_share_dir,
    service_name,
)


def _ctx(family: str, version: str = "9.6", virtualization=None) -> PlatformContext:
    return PlatformContext(PlatformFamily.parse(family), version, virtualization)


class TestPlatformFamily:
    """Tests for family parsing."""

    @pytest.mark.parametrize("value", ["debian", "DEBIAN", " rhel ", "fedora", "amazon"])
    def test_parse_known(self, value):
        assert PlatformFamily.parse(value).value == value.strip().lower()

    def test_parse_unknown(self):
        with pytest.raises(ConfigurationError) as exc:
            PlatformFamily.parse("suse")
        assert "suse" in str(exc.value)


class TestDataDir:
    """Tests for the default data directory."""

    def test_debian(self):
        assert data_dir(_ctx("debian")) == PurePosixPath("/var/lib/postgresql/9.6/main")

    def test_rhel(self):
        assert data_dir(_ctx("rhel")) == PurePosixPath("/var/lib/pgsql/9.6/data")

    def test_fedora(self):
        assert str(data_dir(_ctx("fedora", "16"))) == "/var/lib/pgsql/16/data"

    def test_amazon(self):
        assert str(data_dir(_ctx("amazon"))) == "/var/lib/pgsql/9.6/data"

    def test_amazon_docker(self):
        assert str(data_dir(_ctx("amazon", "9.6", "docker"))) == "/var/lib/pgsql96/data"

    def test_every_family_has_a_path(self):
        for family in PlatformFamily:
            assert data_dir(PlatformContext(family, "15")) is not None


class TestConfDir:
    """Tests for the configuration directory."""

    def test_debian_uses_etc(self):
        assert str(conf_dir(_ctx("debian"))) == "/etc/postgresql/9.6/main"

    @pytest.mark.parametrize("family", ["rhel", "fedora", "amazon"])
    def test_pgsql_families_use_data_dir(self, family):
        ctx = _ctx(family)
        assert conf_dir(ctx) == data_dir(ctx)


class TestServiceName:
    """Tests for systemd unit names."""

    def test_debian(self):
        assert service_name(_ctx("debian")) == "postgresql"

    def test_rhel(self):
        assert service_name(_ctx("rhel")) == "postgresql-9.6"

    def test_amazon_docker(self):
        assert service_name(_ctx("amazon", "9.6", "docker")) == "postgresql96"


class TestExtensionShareDir:
    """Tests for the extension control file directory."""

    def test_debian(self):
        assert str(extension_share_dir(_ctx("debian", "16"))) == "/usr/share/postgresql/16/extension"

    def test_rhel(self):
        assert str(extension_share_dir(_ctx("rhel", "16"))) == "/usr/pgsql-16/share/extension"


class TestPlatformContext:
    """Tests for derived context properties."""

    def test_compact_version(self):
        assert _ctx("debian", "9.6").compact_version == "96"

    def test_in_docker(self):
        assert _ctx("debian", "16", "docker").in_docker is True
        assert _ctx("debian", "16", "kvm").in_docker is False
