"""Mount entries: one unit of work per overlay, volume or persistent path.

Each entry knows how to perform its mount and how to describe itself as one
fstab line, so the layout can be recreated after switch-root.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from constants import BIND_SUFFIX, DIR_PERM, DISK_BY_LABEL, OVERLAY_FS, OVERLAY_SUFFIX
from storage import derive_storage_name, join_under, normalize_path

if TYPE_CHECKING:
    from environment import MountEnvironment

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlayEntry:
    """Writable overlay over the existing content of one path in the tree."""

    path: str  # Path inside the tree, e.g. /etc
    base: str  # Where the tree is mounted, e.g. /sysroot
    overlay_dir: str  # Root of the transient backing store
    fs_type: str = OVERLAY_FS

    @property
    def storage_dir(self) -> str:
        return posixpath.join(self.overlay_dir, derive_storage_name(self.path, OVERLAY_SUFFIX))

    @property
    def upper(self) -> str:
        return posixpath.join(self.storage_dir, "upper")

    @property
    def work(self) -> str:
        return posixpath.join(self.storage_dir, "work")

    @property
    def merged(self) -> str:
        """Mount target, which is also the lower layer."""
        return join_under(self.base, self.path)

    def options(self) -> list[str]:
        return [
            "defaults",
            f"lowerdir={self.merged}",
            f"upperdir={self.upper}",
            f"workdir={self.work}",
        ]

    def mount(self, env: MountEnvironment) -> None:
        log.info(f"Mounting overlay on {self.merged}")
        env.fs.mkdir_all(self.upper, DIR_PERM)
        env.fs.mkdir_all(self.work, DIR_PERM)
        env.fs.mkdir_all(self.merged, DIR_PERM)
        env.mounter.mount(self.fs_type, self.merged, self.fs_type, self.options())

    def fstab_line(self) -> str:
        return f"{self.merged}\t{normalize_path(self.path)}\t{self.fs_type}\t{','.join(self.options())}"


@dataclass(frozen=True)
class BindEntry:
    """Persistent path relocated to the state store and bind-mounted back."""

    path: str  # Path inside the tree, e.g. /home
    base: str  # Where the tree is mounted
    state_root: str  # State store root inside the tree, e.g. /usr/local/.state

    @property
    def state_dir(self) -> str:
        """State directory as seen from inside the tree (after switch-root)."""
        return posixpath.join(normalize_path(self.state_root), derive_storage_name(self.path, BIND_SUFFIX))

    @property
    def source(self) -> str:
        """State directory as seen from the assembling system."""
        return join_under(self.base, self.state_dir)

    @property
    def target(self) -> str:
        return join_under(self.base, self.path)

    def options(self) -> list[str]:
        return ["defaults", "bind"]

    def mount(self, env: MountEnvironment) -> None:
        log.info(f"Binding {self.source} on {self.target}")
        env.fs.mkdir_all(self.target, DIR_PERM)
        env.fs.mkdir_all(self.source, DIR_PERM)
        # First assembly: seed the state directory with what the image ships
        if env.fs.is_empty(self.source):
            env.fs.copy_tree(self.target, self.source, exclude=join_under(self.base, self.state_root))
        env.mounter.mount(self.source, self.target, "none", self.options())

    def fstab_line(self) -> str:
        return f"{self.state_dir}\t{normalize_path(self.path)}\tnone\t{','.join(self.options())}"


@dataclass(frozen=True)
class VolumeEntry:
    """Block device, found by filesystem label, mounted inside the tree."""

    label: str
    mount_point: str  # Path inside the tree, e.g. /oem
    base: str

    @property
    def device(self) -> str:
        return f"{DISK_BY_LABEL}/{self.label}"

    @property
    def target(self) -> str:
        return join_under(self.base, self.mount_point)

    def options(self) -> list[str]:
        return ["defaults"]

    def mount(self, env: MountEnvironment) -> None:
        log.info(f"Mounting volume {self.label} on {self.target}")
        env.fs.mkdir_all(self.target, DIR_PERM)
        env.mounter.mount(self.device, self.target, "auto", self.options())

    def fstab_line(self) -> str:
        return f"{self.device}\t{normalize_path(self.mount_point)}\tauto\t{','.join(self.options())}"


MountEntry = Union[OverlayEntry, BindEntry, VolumeEntry]


def describe(entry: MountEntry) -> str:
    """One-line human description of an entry, for plans and the review screen."""
    if isinstance(entry, OverlayEntry):
        return f"overlay  {normalize_path(entry.path)}  (changes in {entry.storage_dir})"
    if isinstance(entry, VolumeEntry):
        return f"volume   {normalize_path(entry.mount_point)}  (device {entry.device})"
    if isinstance(entry, BindEntry):
        return f"state    {normalize_path(entry.path)}  (kept in {entry.state_dir})"
    raise TypeError(f"Unknown mount entry: {entry!r}")
