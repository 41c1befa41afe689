"""Unit tests for connection resolution."""

import re

import pytest

from pgprov.services.connection import (
    build_client_invocation,
    is_local,
    resolve_password,
    uses_password,
    uses_tcp,
    with_resolved_password,
)
from pgprov.services.targets import ConnectionSpec


LOCAL_HOSTS = [None, "localhost", "127.0.0.1"]


class TestIsLocal:
    """Tests for local host detection."""

    @pytest.mark.parametrize("host", LOCAL_HOSTS)
    def test_local_hosts(self, host):
        assert is_local(ConnectionSpec(host=host)) is True

    def test_remote_host(self):
        assert is_local(ConnectionSpec(host="db.example.com")) is False

    def test_ipv6_loopback_is_not_local(self):
        """Only the three listed forms count as local."""
        assert is_local(ConnectionSpec(host="::1")) is False


class TestUsesTcp:
    """Tests for the TCP decision, including its inherited quirks."""

    @pytest.mark.parametrize("host", LOCAL_HOSTS + ["db.example.com"])
    @pytest.mark.parametrize("user", [None, "postgres", "app_user"])
    def test_peer_never_uses_tcp(self, host, user):
        """Peer auth always stays on the socket regardless of host and user."""
        spec = ConnectionSpec(host=host, user=user, password="pw", peer=True)
        assert uses_tcp(spec) is False

    def test_remote_default_user_uses_tcp(self):
        assert uses_tcp(ConnectionSpec(host="db.example.com", user="postgres")) is True

    def test_remote_unset_user_uses_tcp(self):
        assert uses_tcp(ConnectionSpec(host="db.example.com", user=None)) is True

    def test_remote_named_user_stays_on_socket(self):
        """A remote host with a non-postgres user does not use TCP."""
        assert uses_tcp(ConnectionSpec(host="db.example.com", user="app_user")) is False

    @pytest.mark.parametrize("host", LOCAL_HOSTS)
    def test_local_host_never_uses_tcp(self, host):
        assert uses_tcp(ConnectionSpec(host=host, user="postgres")) is False
        assert uses_tcp(ConnectionSpec(host=host, user="app_user")) is False


class TestUsesPassword:
    """Tests for the PGPASSWORD decision."""

    @pytest.mark.parametrize("host", LOCAL_HOSTS)
    def test_local_never_uses_password(self, host):
        """A password on a local connection is ignored."""
        assert uses_password(ConnectionSpec(host=host, password="secret")) is False

    def test_remote_with_password(self):
        assert uses_password(ConnectionSpec(host="db.example.com", password="secret")) is True

    def test_remote_without_password(self):
        assert uses_password(ConnectionSpec(host="db.example.com")) is False

    def test_peer_with_password(self):
        spec = ConnectionSpec(host="db.example.com", password="secret", peer=True)
        assert uses_password(spec) is False


class TestBuildClientInvocation:
    """Tests for the client command prefix."""

    def test_local_is_bare_executable(self):
        assert build_client_invocation("psql", ConnectionSpec()) == "psql"

    def test_remote_without_password(self):
        spec = ConnectionSpec(host="db.example.com")
        assert build_client_invocation("createdb", spec) == "createdb -h db.example.com"

    def test_remote_with_password(self):
        spec = ConnectionSpec(host="db.example.com", password="secret")
        assert build_client_invocation("psql", spec) == "PGPASSWORD=secret psql -h db.example.com"

    def test_password_is_shell_quoted(self):
        spec = ConnectionSpec(host="db.example.com", password="it's $HOME")
        assert build_client_invocation("psql", spec) == (
            "PGPASSWORD='it'\"'\"'s $HOME' psql -h db.example.com"
        )

    def test_peer_ignores_host(self):
        spec = ConnectionSpec(host="db.example.com", password="secret", peer=True)
        assert build_client_invocation("dropdb", spec) == "dropdb"


class TestResolvePassword:
    """Tests for password resolution."""

    def test_returns_configured_password(self):
        assert resolve_password(ConnectionSpec(password="secret")) == "secret"

    def test_returns_none_without_password(self):
        assert resolve_password(ConnectionSpec()) is None

    def test_generated_passwords_are_hex_and_distinct(self):
        spec = ConnectionSpec(password_generate=True)
        first = resolve_password(spec)
        second = resolve_password(spec)

        assert first and second
        assert re.fullmatch(r"[0-9a-f]+", first)
        assert re.fullmatch(r"[0-9a-f]+", second)
        assert first != second

    def test_generate_overrides_configured_password(self):
        spec = ConnectionSpec(password="secret", password_generate=True)
        assert resolve_password(spec) != "secret"

    def test_with_resolved_password_freezes_value(self):
        spec = ConnectionSpec(password_generate=True)
        resolved = with_resolved_password(spec)

        assert resolved.password
        assert resolved.password_generate is False
        assert resolve_password(resolved) == resolved.password

    def test_with_resolved_password_uses_given_value(self):
        spec = ConnectionSpec(password_generate=True)
        assert with_resolved_password(spec, "stored").password == "stored"
