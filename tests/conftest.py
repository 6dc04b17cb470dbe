"""Shared fixtures for rootfs-assemble tests."""

import pytest

from environment import MountEnvironment
from errors import MountError
from fileutils import Filesystem
from model import MountSpec, VolumeSpec
from mounter import Mounter
from runner import CommandResult, Runner


class FakeMounter(Mounter):
    """Records mounts instead of performing them.

    Raises MountError for any target listed in fail_on.
    """

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.calls: list[tuple[str, str, str, list[str]]] = []
        self.fail_on = fail_on or set()

    def mount(self, source: str, target: str, fs_type: str, options: list[str]) -> None:
        self.calls.append((source, target, fs_type, list(options)))
        if target in self.fail_on:
            raise MountError(target, "permission denied")

    @property
    def targets(self) -> list[str]:
        return [call[1] for call in self.calls]


class FakeRunner(Runner):
    """Records commands and returns queued results (success by default)."""

    def __init__(self, results: list[CommandResult] | None = None) -> None:
        self.calls: list[tuple[list[str], str | None]] = []
        self.results = list(results or [])

    def run(self, cmd: list[str], stdin: str | None = None) -> CommandResult:
        self.calls.append((list(cmd), stdin))
        if self.results:
            return self.results.pop(0)
        return CommandResult(returncode=0)


@pytest.fixture
def host_root(tmp_path):
    """Directory standing in for the host's /."""
    root = tmp_path / "host"
    root.mkdir()
    return root


@pytest.fixture
def fs(host_root):
    return Filesystem(host_root)


@pytest.fixture
def mounter():
    return FakeMounter()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def env(fs, mounter, runner):
    """MountEnvironment backed by a temp directory and recording fakes."""
    return MountEnvironment(fs=fs, mounter=mounter, runner=runner)


@pytest.fixture
def default_spec():
    """Default MountSpec (mounted on /sysroot)."""
    return MountSpec()


@pytest.fixture
def small_spec():
    """MountSpec with one entry of each kind."""
    return MountSpec(
        mount_point="/sysroot",
        rw_paths=("/etc",),
        volumes=(VolumeSpec(label="COS_PERSISTENT", mount_point="/usr/local"),),
        persistent_state_paths=("/home",),
        persistent_state_target="/usr/local/.state",
    )
