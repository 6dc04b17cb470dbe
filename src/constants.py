"""Shared constants for rootfs-assemble."""

# Transient overlay backing store
OVERLAY_DIR = "/run/overlay"
TMPFS = "tmpfs"
OVERLAY_FS = "overlay"

# Permissions for created directories and the fstab
DIR_PERM = 0o755
FILE_PERM = 0o644

# Base root mount as it appears in the generated fstab
ROOT_DEVICE = "/dev/loop0"

# Devices for auxiliary volumes are resolved by filesystem label
DISK_BY_LABEL = "/dev/disk/by-label"

# Device-mapper nodes created by cryptsetup open
MAPPER_DIR = "/dev/mapper"

OVERLAY_SUFFIX = "overlay"
BIND_SUFFIX = "bind"

# Defaults for the mount specification
DEFAULT_IMAGE = "/cOS/active.img"
DEFAULT_MOUNT_POINT = "/sysroot"
DEFAULT_ROOT_PERM = "ro"
DEFAULT_OVERLAY = "tmpfs:25%"
DEFAULT_RW_PATHS = ("/var", "/etc")
DEFAULT_VOLUMES = ("LABEL=COS_OEM:/oem", "LABEL=COS_PERSISTENT:/usr/local")
DEFAULT_PERSISTENT_STATE_PATHS = ("/etc", "/root", "/home", "/opt", "/usr/local", "/var")
DEFAULT_PERSISTENT_STATE_TARGET = "/usr/local/.state"
