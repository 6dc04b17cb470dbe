"""Loading and validation of the mount specification."""

from __future__ import annotations

import json
import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import Any

from constants import BIND_SUFFIX, OVERLAY_SUFFIX, TMPFS
from errors import ConfigurationError
from model import MountSpec, OverlaySpec, VolumeSpec
from storage import find_collisions, normalize_path

log = logging.getLogger(__name__)

ROOT_PERMISSIONS = ("ro", "rw")
SUPPORTED_OVERLAY_TYPES = (TMPFS,)

_LIST_FIELDS = {"rw_paths", "persistent_state_paths"}
_BOOL_FIELDS = {"switch_root", "persistent_state_bind"}
_STR_FIELDS = {"image", "mount_point", "root_permission", "persistent_state_target"}


def _is_under(path: str, parent: str) -> bool:
    path, parent = normalize_path(path), normalize_path(parent)
    return path == parent or path.startswith(parent.rstrip("/") + "/")


def _require_absolute(kind: str, path: str) -> None:
    if not path.startswith("/"):
        raise ConfigurationError(f"{kind} must be an absolute path, got '{path}'")


def validate_spec(spec: MountSpec) -> list[str]:
    """Validate a MountSpec before anything is mounted.

    Raises ConfigurationError for anything that would break the assembly,
    including configured paths whose storage names collide.
    Returns list of non-critical warnings.
    """
    warnings = []

    if spec.root_permission not in ROOT_PERMISSIONS:
        raise ConfigurationError(
            f"Invalid root permission '{spec.root_permission}' (must be one of {', '.join(ROOT_PERMISSIONS)})"
        )

    if not spec.mount_point.startswith("/") or normalize_path(spec.mount_point) == "/":
        raise ConfigurationError(f"Mount point must be an absolute path below /, got '{spec.mount_point}'")

    for path in spec.rw_paths:
        _require_absolute("rw path", path)
    for path in spec.persistent_state_paths:
        _require_absolute("Persistent state path", path)
    for volume in spec.volumes:
        _require_absolute(f"Mount point of volume {volume.label}", volume.mount_point)
    _require_absolute("Persistent state target", spec.persistent_state_target)

    if spec.overlay.fs_type not in SUPPORTED_OVERLAY_TYPES:
        raise ConfigurationError(
            f"Unsupported overlay type '{spec.overlay.fs_type}' (supported: {', '.join(SUPPORTED_OVERLAY_TYPES)})"
        )

    collisions = find_collisions(spec.rw_paths, OVERLAY_SUFFIX)
    if collisions:
        first, second = collisions[0]
        raise ConfigurationError(f"rw paths '{first}' and '{second}' map to the same overlay directory")

    collisions = find_collisions(spec.persistent_state_paths, BIND_SUFFIX)
    if collisions:
        first, second = collisions[0]
        raise ConfigurationError(
            f"Persistent state paths '{first}' and '{second}' map to the same state directory"
        )

    seen_mount_points = set()
    for volume in spec.volumes:
        mount_point = normalize_path(volume.mount_point)
        if mount_point == "/":
            raise ConfigurationError(f"Volume {volume.label} cannot be mounted on the root directory")
        if mount_point in seen_mount_points:
            raise ConfigurationError(f"More than one volume is mounted on {mount_point}")
        seen_mount_points.add(mount_point)

    if spec.persistent_state_paths:
        if not spec.persistent_state_bind:
            raise ConfigurationError(
                "Persistent state without bind mounts is not supported, enable persistent_state_bind"
            )
        if normalize_path(spec.persistent_state_target) == "/":
            raise ConfigurationError("Persistent state target cannot be the root directory")
        if not any(_is_under(spec.persistent_state_target, v.mount_point) for v in spec.volumes):
            warnings.append(
                f"Persistent state target {spec.persistent_state_target} is not on a volume, "
                "state will not survive a reboot"
            )

    rw = {normalize_path(p) for p in spec.rw_paths}
    for volume in spec.volumes:
        if normalize_path(volume.mount_point) in rw:
            warnings.append(f"Volume {volume.label} is mounted over the overlay on {volume.mount_point}")

    return warnings


def spec_from_dict(data: dict[str, Any], base: MountSpec | None = None) -> MountSpec:
    """Build a MountSpec from a JSON-style dict.

    Keys are MountSpec field names. 'overlay' is written as 'tmpfs:25%' and
    each volume as 'LABEL=<label>:<mountpoint>'. Missing keys keep the value
    from base (defaults when base is None).
    """
    known = {f.name for f in fields(MountSpec)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for name, value in data.items():
        if name in _STR_FIELDS:
            if not isinstance(value, str):
                raise ConfigurationError(f"'{name}' must be a string")
            kwargs[name] = value
        elif name in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ConfigurationError(f"'{name}' must be true or false")
            kwargs[name] = value
        elif name in _LIST_FIELDS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError(f"'{name}' must be a list of paths")
            kwargs[name] = tuple(value)
        elif name == "overlay":
            if not isinstance(value, str):
                raise ConfigurationError("'overlay' must be a string like 'tmpfs:25%'")
            kwargs[name] = OverlaySpec.parse(value)
        elif name == "volumes":
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError("'volumes' must be a list like ['LABEL=COS_OEM:/oem']")
            kwargs[name] = tuple(VolumeSpec.parse(v) for v in value)

    return replace(base or MountSpec(), **kwargs)


def spec_to_dict(spec: MountSpec) -> dict[str, Any]:
    """Serialize a MountSpec to the same shape spec_from_dict() reads."""
    result: dict[str, Any] = {}
    for f in fields(spec):
        value = getattr(spec, f.name)
        if isinstance(value, OverlaySpec):
            result[f.name] = str(value)
        elif f.name == "volumes":
            result[f.name] = [str(v) for v in value]
        elif isinstance(value, tuple):
            result[f.name] = list(value)
        else:
            result[f.name] = value
    return result


def load_mount_spec(path: Path, base: MountSpec | None = None) -> MountSpec:
    """Load a MountSpec from a JSON file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    try:
        data = json.loads(path.read_text())
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must contain a JSON object")

    log.debug(f"Loaded configuration from {path}")
    return spec_from_dict(data, base)
