"""Mount capability backed by the mount(8) binary."""

from __future__ import annotations

import logging

from errors import MountError
from runner import Runner

log = logging.getLogger(__name__)


class Mounter:
    """Interface for performing a single mount.

    Implementations raise MountError when the mount is rejected.
    """

    def mount(self, source: str, target: str, fs_type: str, options: list[str]) -> None:
        raise NotImplementedError


class HostMounter(Mounter):
    """Mounts through the system mount binary."""

    def __init__(self, runner: Runner | None = None, mount_cmd: str = "mount") -> None:
        self.runner = runner or Runner()
        self.mount_cmd = mount_cmd

    def build_command(self, source: str, target: str, fs_type: str, options: list[str]) -> list[str]:
        """Build the mount command line for one mount."""
        cmd = [self.mount_cmd]
        if fs_type and fs_type != "auto":
            cmd.extend(["-t", fs_type])
        if options:
            cmd.extend(["-o", ",".join(options)])
        cmd.extend([source, target])
        return cmd

    def mount(self, source: str, target: str, fs_type: str, options: list[str]) -> None:
        cmd = self.build_command(source, target, fs_type, options)
        result = self.runner.run(cmd)
        if not result.ok:
            log.error(f"mount {source} on {target} failed: {result.output.strip()}")
            raise MountError(target, result.output.strip() or f"exit status {result.returncode}")
