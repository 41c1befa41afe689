"""Tests for the command execution boundary."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pgprov.core.exceptions import ExecutionError
from pgprov.core.executor import CommandExecutor


class TestRunCommand:
    """Tests for shell command lines."""

    @patch("pgprov.core.executor.subprocess.run")
    def test_runs_through_sh(self, mock_run, ctx):
        mock_run.return_value = MagicMock(returncode=0, stdout="1\n", stderr="")

        result = CommandExecutor(ctx).run_command("psql -c 'SELECT 1' | grep 1", "postgres")

        assert mock_run.call_args.args[0] == [
            "sudo", "-u", "postgres", "/bin/sh", "-c", "psql -c 'SELECT 1' | grep 1",
        ]
        assert result.success
        assert result.stdout == "1\n"

    @patch("pgprov.core.executor.subprocess.run")
    def test_failure_reported_without_check(self, mock_run, ctx):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="")

        result = CommandExecutor(ctx).run_command("false")

        assert not result.success

    @patch("pgprov.core.executor.subprocess.run")
    def test_failure_raises_with_check(self, mock_run, ctx):
        mock_run.return_value = MagicMock(returncode=2, stdout="", stderr="boom\n")

        with pytest.raises(ExecutionError) as exc_info:
            CommandExecutor(ctx).run_command("createdb app", check=True, description="Create app")

        assert exc_info.value.return_code == 2
        assert exc_info.value.stderr == "boom"

    @patch("pgprov.core.executor.subprocess.run")
    def test_dry_run_does_not_execute(self, mock_run, dry_ctx):
        result = CommandExecutor(dry_ctx).run_command("dropdb app", check=True)

        mock_run.assert_not_called()
        assert result.success


class TestSymlink:
    """Tests for linking extension control files."""

    @pytest.fixture
    def dirs(self, tmp_path: Path) -> tuple[Path, Path]:
        share = tmp_path / "share"
        source = tmp_path / "src"
        share.mkdir()
        source.mkdir()
        (source / "foo.control").write_text("comment = 'foo'\n")
        return share, source

    def test_creates_link(self, ctx, dirs):
        share, source = dirs

        assert CommandExecutor(ctx).symlink(share / "foo.control", source / "foo.control")
        assert os.readlink(share / "foo.control") == str(source / "foo.control")

    def test_existing_link_unchanged(self, ctx, dirs):
        share, source = dirs
        (share / "foo.control").symlink_to(source / "foo.control")

        assert not CommandExecutor(ctx).symlink(share / "foo.control", source / "foo.control")

    def test_stale_link_replaced(self, ctx, dirs):
        share, source = dirs
        (share / "foo.control").symlink_to(source / "old.control")

        assert CommandExecutor(ctx).symlink(share / "foo.control", source / "foo.control")
        assert os.readlink(share / "foo.control") == str(source / "foo.control")

    def test_regular_file_left_in_place(self, ctx, dirs):
        share, source = dirs
        packaged = share / "foo.control"
        packaged.write_text("comment = 'packaged'\n")

        assert not CommandExecutor(ctx).symlink(packaged, source / "foo.control")
        assert not packaged.is_symlink()
        assert packaged.read_text() == "comment = 'packaged'\n"

    def test_dry_run_does_not_link(self, dry_ctx, dirs):
        share, source = dirs

        assert CommandExecutor(dry_ctx).symlink(share / "foo.control", source / "foo.control")
        assert not (share / "foo.control").is_symlink()

    def test_os_error_becomes_execution_error(self, ctx, dirs):
        share, source = dirs

        with patch.object(Path, "symlink_to", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(ExecutionError) as exc_info:
                CommandExecutor(ctx).symlink(share / "foo.control", source / "foo.control")

        assert "Cannot link" in exc_info.value.message
        assert any("Permission denied" in detail for detail in exc_info.value.details)
