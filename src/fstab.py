"""fstab rendering for the assembled tree."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from constants import FILE_PERM, OVERLAY_DIR, ROOT_DEVICE, TMPFS
from errors import PersistError
from storage import join_under

if TYPE_CHECKING:
    from fileutils import Filesystem
    from model.mount_spec import OverlaySpec

log = logging.getLogger(__name__)


def fstab_path(mount_point: str) -> str:
    """Location of the fstab inside the assembled tree."""
    return join_under(mount_point, "/etc/fstab")


def root_line(root_permission: str) -> str:
    """fstab line for the base root image."""
    return f"{ROOT_DEVICE}\t/\tauto\t{root_permission}\t0\t0"


def backing_store_line(overlay: OverlaySpec, overlay_dir: str = OVERLAY_DIR) -> str:
    """fstab line for the transient store holding overlay upper/work dirs."""
    return f"{TMPFS}\t{overlay_dir}\t{overlay.fs_type}\t{','.join(overlay.options())}\t0\t0"


def render(lines: list[str]) -> str:
    """Join fstab lines. No trailing newline is added."""
    return "\n".join(lines)


def write_fstab(fs: Filesystem, mount_point: str, lines: list[str]) -> str:
    """Write the fstab into the tree in one go.

    Returns:
        The path of the written file (as seen from the assembling system)

    Raises:
        PersistError: If the file cannot be written
    """
    path = fstab_path(mount_point)
    try:
        fs.write_file(path, render(lines), FILE_PERM)
    except OSError as e:
        log.error(f"Error writing fstab: {e}")
        raise PersistError(path, e.strerror or str(e)) from e
    log.info(f"Wrote {len(lines)} entries to {path}")
    return path
