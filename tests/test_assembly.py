"""Tests for root filesystem assembly.

These drive RootfsAssembler against a temp directory and a recording
mounter, checking mount order, the written fstab and fail-fast behavior.
"""

import os
from dataclasses import replace

import pytest

from assembly import AssemblyState, RootfsAssembler
from errors import AssemblyError, ConfigurationError, MountError, PersistError
from model import MountSpec, OverlaySpec, VolumeSpec


def fstab_content(fs, mount_point="/sysroot"):
    return fs.host_path(f"{mount_point}/etc/fstab").read_text()


class TestAssemble:
    """Test a full successful assembly."""

    def test_small_spec(self, small_spec, env, fs, mounter):
        """One entry of each kind produces the expected mounts and fstab."""
        assembler = RootfsAssembler(small_spec, env)
        path = assembler.assemble()

        assert path == "/sysroot/etc/fstab"
        assert assembler.state is AssemblyState.FSTAB_WRITTEN
        assert mounter.calls == [
            ("tmpfs", "/run/overlay", "tmpfs", ["defaults", "size=25%"]),
            (
                "overlay",
                "/sysroot/etc",
                "overlay",
                [
                    "defaults",
                    "lowerdir=/sysroot/etc",
                    "upperdir=/run/overlay/etc.overlay/upper",
                    "workdir=/run/overlay/etc.overlay/work",
                ],
            ),
            ("/dev/disk/by-label/COS_PERSISTENT", "/sysroot/usr/local", "auto", ["defaults"]),
            ("/sysroot/usr/local/.state/home.bind", "/sysroot/home", "none", ["defaults", "bind"]),
        ]
        assert fstab_content(fs) == "\n".join([
            "/dev/loop0\t/\tauto\tro\t0\t0",
            "tmpfs\t/run/overlay\ttmpfs\tdefaults,size=25%\t0\t0",
            "/sysroot/etc\t/etc\toverlay\tdefaults,lowerdir=/sysroot/etc,"
            "upperdir=/run/overlay/etc.overlay/upper,workdir=/run/overlay/etc.overlay/work",
            "/dev/disk/by-label/COS_PERSISTENT\t/usr/local\tauto\tdefaults",
            "/usr/local/.state/home.bind\t/home\tnone\tdefaults,bind",
        ])

    def test_fstab_matches_render(self, default_spec, env, fs):
        """The written file is exactly the rendered line list."""
        assembler = RootfsAssembler(default_spec, env)
        assembler.assemble()
        assert fstab_content(fs) == "\n".join(assembler.render_fstab())
        assert not fstab_content(fs).endswith("\n")

    def test_default_spec_order(self, default_spec, env, mounter):
        """Backing store, overlays, volumes, then persistent state, each in spec order."""
        RootfsAssembler(default_spec, env).assemble()
        assert mounter.targets == [
            "/run/overlay",
            "/sysroot/var",
            "/sysroot/etc",
            "/sysroot/oem",
            "/sysroot/usr/local",
            "/sysroot/etc",
            "/sysroot/root",
            "/sysroot/home",
            "/sysroot/opt",
            "/sysroot/usr/local",
            "/sysroot/var",
        ]

    def test_fstab_line_order(self, default_spec, env):
        """No line depends on a directory introduced by a later line."""
        assembler = RootfsAssembler(default_spec, env)
        assembler.assemble()
        targets = [line.split("\t")[1] for line in assembler.fstab]
        assert targets == [
            "/",
            "/run/overlay",
            "/var",
            "/etc",
            "/oem",
            "/usr/local",
            "/etc",
            "/root",
            "/home",
            "/opt",
            "/usr/local",
            "/var",
        ]
        # Bind sources live on the persistent volume, which is mounted earlier
        volume_index = targets.index("/usr/local")
        for index, line in enumerate(assembler.fstab):
            if line.split("\t")[2] == "none":
                assert line.startswith("/usr/local/.state/")
                assert index > volume_index

    def test_field_counts(self, default_spec, env):
        """Fixed lines carry dump/pass, synthesized lines do not."""
        assembler = RootfsAssembler(default_spec, env)
        assembler.assemble()
        counts = [len(line.split("\t")) for line in assembler.fstab]
        assert counts[:2] == [6, 6]
        assert set(counts[2:]) == {4}

    def test_root_permission_rw(self, small_spec, env):
        assembler = RootfsAssembler(replace(small_spec, root_permission="rw"), env)
        assembler.assemble()
        assert assembler.fstab[0] == "/dev/loop0\t/\tauto\trw\t0\t0"

    def test_overlay_size(self, small_spec, env, mounter):
        spec = replace(small_spec, overlay=OverlaySpec("tmpfs", "512M"))
        assembler = RootfsAssembler(spec, env)
        assembler.assemble()
        assert mounter.calls[0] == ("tmpfs", "/run/overlay", "tmpfs", ["defaults", "size=512M"])
        assert assembler.fstab[1] == "tmpfs\t/run/overlay\ttmpfs\tdefaults,size=512M\t0\t0"

    def test_custom_overlay_dir(self, small_spec, env, fs):
        assembler = RootfsAssembler(small_spec, env, overlay_dir="/run/rootfs")
        assembler.assemble()
        assert fs.host_path("/run/rootfs/etc.overlay/upper").is_dir()

    def test_state_root_created(self, small_spec, env, fs):
        RootfsAssembler(small_spec, env).assemble()
        assert fs.host_path("/sysroot/usr/local/.state/home.bind").is_dir()

    def test_empty_spec(self, env, fs, mounter):
        """Only the backing store is mounted when nothing else is configured."""
        fs.host_path("/sysroot/etc").mkdir(parents=True)
        spec = MountSpec(rw_paths=(), volumes=(), persistent_state_paths=())
        assembler = RootfsAssembler(spec, env)
        assembler.assemble()
        assert mounter.targets == ["/run/overlay"]
        assert len(fstab_content(fs).splitlines()) == 2

    def test_leftover_fstab_temp_file(self, small_spec, env, fs):
        """A temp file from an interrupted boot does not block the next one."""
        etc = fs.host_path("/sysroot/etc")
        etc.mkdir(parents=True)
        (etc / f".fstab.{os.getpid()}.tmp").write_text("partial")
        assert RootfsAssembler(small_spec, env).assemble() == "/sysroot/etc/fstab"
        assert fstab_content(fs).startswith("/dev/loop0\t/\t")

    def test_assemble_twice_rejected(self, small_spec, env):
        assembler = RootfsAssembler(small_spec, env)
        assembler.assemble()
        with pytest.raises(AssemblyError):
            assembler.assemble()


class TestPlan:
    """Test plan() and render_fstab() without side effects."""

    def test_plan_order(self, small_spec, env):
        entries = RootfsAssembler(small_spec, env).plan()
        assert [type(e).__name__ for e in entries] == ["OverlayEntry", "VolumeEntry", "BindEntry"]

    def test_render_does_not_mount(self, default_spec, env, fs, mounter):
        lines = RootfsAssembler(default_spec, env).render_fstab()
        assert len(lines) == 2 + 2 + 2 + 6
        assert mounter.calls == []
        assert not fs.host_path("/run/overlay").exists()


class TestValidation:
    """Test that invalid specs fail before anything is touched."""

    def test_collision_fails_before_mount(self, env, fs, mounter):
        """'/a/b' and '/a-b' collide; nothing is mounted or written."""
        spec = MountSpec(rw_paths=("/a/b", "/a-b"))
        assembler = RootfsAssembler(spec, env)
        with pytest.raises(ConfigurationError):
            assembler.assemble()
        assert mounter.calls == []
        assert assembler.state is AssemblyState.FAILED
        assert not fs.host_path("/run/overlay").exists()

    def test_persistent_collision(self, env, mounter):
        spec = MountSpec(persistent_state_paths=("/home", "/home/"))
        with pytest.raises(ConfigurationError):
            RootfsAssembler(spec, env).assemble()
        assert mounter.calls == []

    def test_bind_disabled_not_supported(self, env, mounter):
        spec = MountSpec(persistent_state_bind=False)
        with pytest.raises(ConfigurationError):
            RootfsAssembler(spec, env).assemble()
        assert mounter.calls == []

    def test_unsupported_overlay_type(self, env, mounter):
        spec = MountSpec(overlay=OverlaySpec("ext4", "1G"))
        with pytest.raises(ConfigurationError):
            RootfsAssembler(spec, env).assemble()
        assert mounter.calls == []

    def test_warnings_logged(self, env, caplog):
        spec = MountSpec(volumes=(VolumeSpec("COS_OEM", "/oem"),))
        with caplog.at_level("WARNING"):
            warnings = RootfsAssembler(spec, env).validate()
        assert warnings
        assert "will not survive a reboot" in caplog.text


class TestFailFast:
    """Test that the first failure stops the run and leaves earlier mounts."""

    def test_first_overlay_fails(self, env, fs, mounter):
        """Second rw path is never mounted and no fstab is written."""
        mounter.fail_on = {"/sysroot/var"}
        spec = MountSpec(rw_paths=("/var", "/etc"))
        assembler = RootfsAssembler(spec, env)

        with pytest.raises(MountError):
            assembler.assemble()

        assert mounter.targets == ["/run/overlay", "/sysroot/var"]
        assert assembler.state is AssemblyState.FAILED
        assert not fs.host_path("/sysroot/etc/fstab").exists()

    def test_backing_store_fails(self, env, mounter):
        mounter.fail_on = {"/run/overlay"}
        assembler = RootfsAssembler(MountSpec(), env)
        with pytest.raises(MountError):
            assembler.assemble()
        assert mounter.targets == ["/run/overlay"]
        assert assembler.fstab == []

    def test_volume_fails_after_overlays(self, small_spec, env, mounter):
        """Overlays mounted before the failure stay mounted."""
        mounter.fail_on = {"/sysroot/usr/local"}
        assembler = RootfsAssembler(small_spec, env)
        with pytest.raises(MountError):
            assembler.assemble()
        assert "/sysroot/etc" in mounter.targets
        assert "/sysroot/home" not in mounter.targets
        assert assembler.state is AssemblyState.FAILED

    def test_fstab_write_fails(self, env, mounter):
        """A missing /etc in the tree makes the final write fail."""
        spec = MountSpec(rw_paths=(), volumes=(), persistent_state_paths=())
        assembler = RootfsAssembler(spec, env)
        with pytest.raises(PersistError) as exc_info:
            assembler.assemble()
        assert exc_info.value.path == "/sysroot/etc/fstab"
        assert assembler.state is AssemblyState.FAILED
