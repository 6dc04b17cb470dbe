"""Filesystem capability used by the assembly pipeline."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from constants import DIR_PERM, FILE_PERM
from errors import DirectoryCreationError
from storage import normalize_path

log = logging.getLogger(__name__)


def write_file_atomic(path: Path, content: str, mode: int) -> None:
    """Replace a file atomically, with permissions set before the rename.

    Writes to a uniquely named sibling temp file, then renames it over the
    destination. Readers see either the old or the new content, never a
    partial write. Temp files left by an interrupted write never block a
    later one.

    Args:
        path: Path to write to
        content: File content
        mode: File permission mode (e.g., 0o644)

    Raises:
        OSError: If the temp file cannot be created, written or renamed
    """
    fd, name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(name)
    try:
        try:
            os.fchmod(fd, mode)
            os.write(fd, content.encode())
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


class Filesystem:
    """Access to the host filesystem, optionally below a base directory.

    Every path handed to this class is absolute as seen by the assembly
    (e.g. '/sysroot/etc'). With the default root of '/' it is used as is;
    tests pass a temporary directory so the same paths land inside it.
    """

    def __init__(self, root: str | Path = "/") -> None:
        self.root = Path(root)

    def host_path(self, path: str) -> Path:
        """Translate an assembly path to the real location on disk."""
        return self.root / normalize_path(path).lstrip("/")

    def mkdir_all(self, path: str, mode: int = DIR_PERM) -> None:
        """Create a directory and its parents. Existing directories are left alone."""
        target = self.host_path(path)
        log.debug(f"mkdir -p {path} (mode {oct(mode)})")
        try:
            os.makedirs(target, mode=mode, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(path, e.strerror or str(e)) from e

    def exists(self, path: str) -> bool:
        return self.host_path(path).exists()

    def is_empty(self, path: str) -> bool:
        """Check whether a directory is missing or has no entries."""
        target = self.host_path(path)
        if not target.is_dir():
            return True
        return next(target.iterdir(), None) is None

    def copy_tree(self, source: str, dest: str, exclude: str | None = None) -> None:
        """Copy the contents of source into dest, keeping symlinks and modes.

        A missing source is not an error, there is nothing to carry over.

        Args:
            source: Directory to copy from
            dest: Directory to copy into (created if missing)
            exclude: Optional directory below source to skip, e.g. when dest
                itself lives inside source
        """
        src = self.host_path(source)
        if not src.is_dir():
            log.debug(f"Nothing to copy from {source}")
            return
        skip = {self.host_path(exclude), self.host_path(dest)} if exclude else {self.host_path(dest)}

        def ignore(directory: str, names: list[str]) -> set[str]:
            return {name for name in names if Path(directory, name) in skip}

        log.debug(f"Copying {source} to {dest}")
        try:
            shutil.copytree(src, self.host_path(dest), symlinks=True, dirs_exist_ok=True, ignore=ignore)
        except (shutil.Error, OSError) as e:
            raise DirectoryCreationError(dest, f"copying from {source} failed: {e}") from e

    def write_file(self, path: str, content: str, mode: int = FILE_PERM) -> None:
        """Write a file, replacing any previous content atomically."""
        log.debug(f"Writing {path} (mode {oct(mode)})")
        write_file_atomic(self.host_path(path), content, mode)
