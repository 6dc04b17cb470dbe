"""Host capabilities handed to mount entries and the assembler."""

from __future__ import annotations

from dataclasses import dataclass, field

from fileutils import Filesystem
from mounter import HostMounter, Mounter
from runner import Runner


@dataclass
class MountEnvironment:
    """Filesystem, mount and subprocess capabilities for one assembly run.

    Passed explicitly instead of being looked up globally, so tests can swap
    in a temporary filesystem root and a recording mounter.
    """

    fs: Filesystem = field(default_factory=Filesystem)
    mounter: Mounter = field(default_factory=HostMounter)
    runner: Runner = field(default_factory=Runner)

    @classmethod
    def host(cls) -> MountEnvironment:
        """Capabilities acting on the real system."""
        runner = Runner()
        return cls(fs=Filesystem("/"), mounter=HostMounter(runner), runner=runner)
