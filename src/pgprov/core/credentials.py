"""Storage for generated connection passwords.

A connection with ``password_generate`` gets a new random password every
time one is resolved. To stop a converging run from rotating the
password on each pass, the first generated value is written here and
reused afterwards.

Provides:
- Atomic writes with temp file + rename
- Strict file permissions (600, directory 700)
- Permission verification before reading
"""

import contextlib
import os
import re
import secrets
import stat
from pathlib import Path
from typing import Generator, Optional

from pgprov.core.exceptions import CredentialError
from pgprov.core.output import console
from pgprov.services.connection import resolve_password, with_resolved_password
from pgprov.services.targets import ConnectionSpec


DEFAULT_CREDENTIALS_DIR = Path("/root/.pgprov/credentials")

SECURE_FILE_PERMS = 0o600
SECURE_DIR_PERMS = 0o700

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class CredentialManager:
    """Keeps generated passwords stable across runs."""

    def __init__(self, storage_dir: Optional[Path] = None) -> None:
        self.storage_dir = storage_dir or DEFAULT_CREDENTIALS_DIR

    def ensure_directory(self) -> None:
        """Ensure the storage directory exists with secure permissions."""
        if not self.storage_dir.exists():
            self.storage_dir.mkdir(parents=True, mode=SECURE_DIR_PERMS)
        elif self.storage_dir.stat().st_mode & 0o777 != SECURE_DIR_PERMS:
            os.chmod(self.storage_dir, SECURE_DIR_PERMS)

    def get_password_path(self, spec: ConnectionSpec) -> Path:
        """Password file for a (host, port, user) triple."""
        host = spec.host or "local"
        name = f"pg_{host}_{spec.effective_port}_{spec.effective_user}.pass"
        return self.storage_dir / _UNSAFE_FILENAME_CHARS.sub("_", name)

    def store_password(self, password: str, spec: ConnectionSpec, dry_run: bool = False) -> Path:
        """Atomically store a password with 0600 permissions."""
        filepath = self.get_password_path(spec)

        if dry_run:
            console.dry_run_msg(f"Store password to {filepath}")
            return filepath

        self.ensure_directory()

        with self._secure_temp_file(self.storage_dir) as tmp_path:
            tmp_path.write_text(password + "\n")
            os.chmod(tmp_path, SECURE_FILE_PERMS)
            os.replace(tmp_path, filepath)

        self._verify_permissions(filepath)
        console.debug(f"Password stored: {filepath}")
        return filepath

    def load_password(self, spec: ConnectionSpec) -> Optional[str]:
        """Load a stored password, or None if there is none.

        Raises:
            CredentialError: If the file has insecure permissions
        """
        filepath = self.get_password_path(spec)
        if not filepath.exists():
            return None

        self._verify_permissions(filepath)
        return filepath.read_text().strip() or None

    def ensure_connection_password(
        self,
        spec: ConnectionSpec,
        dry_run: bool = False,
    ) -> tuple[ConnectionSpec, bool]:
        """Resolve the connection password, reusing a stored one.

        Only connections with ``password_generate`` touch the store.

        Returns:
            Tuple of (spec with password filled in, was_generated)
        """
        if not spec.password_generate:
            return spec, False

        existing = self.load_password(spec)
        if existing:
            return with_resolved_password(spec, existing), False

        password = resolve_password(spec)
        self.store_password(password, spec, dry_run=dry_run)
        return with_resolved_password(spec, password), True

    @contextlib.contextmanager
    def _secure_temp_file(self, directory: Path) -> Generator[Path, None, None]:
        """Create a 0600 temp file in ``directory``, removed on error."""
        tmp_path = directory / f".tmp_{secrets.token_hex(16)}"
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, SECURE_FILE_PERMS)
        os.close(fd)
        try:
            yield tmp_path
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

    def _verify_permissions(self, filepath: Path) -> None:
        """Raise CredentialError if the file is group or world accessible."""
        mode = filepath.stat().st_mode
        if mode & stat.S_IRWXG or mode & stat.S_IRWXO:
            raise CredentialError(
                f"Insecure permissions on {filepath}: {oct(mode & 0o777)}",
                hint=f"Fix with: chmod 600 {filepath}",
            )

