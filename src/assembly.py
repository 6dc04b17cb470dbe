"""Root filesystem assembly.

Builds the writable tree in stages:

    INIT -> BACKING_STORE_MOUNTED -> OVERLAYS_APPLIED -> VOLUMES_APPLIED
         -> STATE_APPLIED -> FSTAB_WRITTEN

The first error moves the run to FAILED and is re-raised. Mounts made before
the failure are left in place for the recovery shell to inspect.
"""

from __future__ import annotations

import logging
from enum import Enum

from constants import DIR_PERM, OVERLAY_DIR, TMPFS
from environment import MountEnvironment
from errors import AssemblyError
from fstab import backing_store_line, root_line, write_fstab
from model import BindEntry, MountEntry, MountSpec, OverlayEntry, VolumeEntry
from mount_config import validate_spec
from storage import join_under

log = logging.getLogger(__name__)


class AssemblyState(Enum):
    """Stages of one assembly run."""

    INIT = "init"
    BACKING_STORE_MOUNTED = "backing-store-mounted"
    OVERLAYS_APPLIED = "overlays-applied"
    VOLUMES_APPLIED = "volumes-applied"
    STATE_APPLIED = "state-applied"
    FSTAB_WRITTEN = "fstab-written"
    FAILED = "failed"


class RootfsAssembler:
    """Assembles the root tree described by a MountSpec.

    Intended to run once per boot. Not safe to run concurrently against the
    same mount namespace.
    """

    def __init__(
        self,
        spec: MountSpec,
        env: MountEnvironment | None = None,
        overlay_dir: str = OVERLAY_DIR,
    ) -> None:
        self.spec = spec
        self.env = env or MountEnvironment.host()
        self.overlay_dir = overlay_dir
        self.state = AssemblyState.INIT
        self.fstab: list[str] = []

    def overlay_entries(self) -> list[OverlayEntry]:
        return [OverlayEntry(path, self.spec.mount_point, self.overlay_dir) for path in self.spec.rw_paths]

    def volume_entries(self) -> list[VolumeEntry]:
        return [VolumeEntry(v.label, v.mount_point, self.spec.mount_point) for v in self.spec.volumes]

    def bind_entries(self) -> list[BindEntry]:
        return [
            BindEntry(path, self.spec.mount_point, self.spec.persistent_state_target)
            for path in self.spec.persistent_state_paths
        ]

    def plan(self) -> list[MountEntry]:
        """All mount entries in the order they are applied."""
        return [*self.overlay_entries(), *self.volume_entries(), *self.bind_entries()]

    def render_fstab(self) -> list[str]:
        """fstab lines for the spec, without touching the host."""
        return [
            root_line(self.spec.root_permission),
            backing_store_line(self.spec.overlay, self.overlay_dir),
            *(entry.fstab_line() for entry in self.plan()),
        ]

    def validate(self) -> list[str]:
        """Validate the spec. Raises ConfigurationError, returns warnings."""
        warnings = validate_spec(self.spec)
        for warning in warnings:
            log.warning(warning)
        return warnings

    def assemble(self) -> str:
        """Run every stage and write the fstab.

        Returns:
            Path of the written fstab

        Raises:
            AssemblyError: On the first failure. Nothing is unmounted.
        """
        if self.state is not AssemblyState.INIT:
            raise AssemblyError(f"Assembly already ran (state: {self.state.value})")

        try:
            self.validate()
            self._mount_backing_store()
            self._apply(self.overlay_entries(), AssemblyState.OVERLAYS_APPLIED)
            self._apply(self.volume_entries(), AssemblyState.VOLUMES_APPLIED)
            self._apply_state()
            path = write_fstab(self.env.fs, self.spec.mount_point, self.fstab)
        except AssemblyError as e:
            log.error(f"Assembly failed while in state {self.state.value}: {e}")
            self.state = AssemblyState.FAILED
            raise
        self._advance(AssemblyState.FSTAB_WRITTEN)
        log.info("RootFS mounted, ready for switching root.")
        return path

    def _advance(self, state: AssemblyState) -> None:
        log.debug(f"Assembly state: {self.state.value} -> {state.value}")
        self.state = state

    def _mount_backing_store(self) -> None:
        overlay = self.spec.overlay
        self.env.fs.mkdir_all(self.overlay_dir, DIR_PERM)
        log.info(f"Mounting {overlay.fs_type} overlay store on {self.overlay_dir} (size {overlay.size})")
        self.env.mounter.mount(TMPFS, self.overlay_dir, overlay.fs_type, overlay.options())
        self.fstab = [
            root_line(self.spec.root_permission),
            backing_store_line(overlay, self.overlay_dir),
        ]
        self._advance(AssemblyState.BACKING_STORE_MOUNTED)

    def _apply(self, entries: list[MountEntry], done: AssemblyState) -> None:
        for entry in entries:
            entry.mount(self.env)
            self.fstab.append(entry.fstab_line())
        self._advance(done)

    def _apply_state(self) -> None:
        entries = self.bind_entries()
        if entries:
            self.env.fs.mkdir_all(join_under(self.spec.mount_point, self.spec.persistent_state_target), DIR_PERM)
        self._apply(entries, AssemblyState.STATE_APPLIED)
