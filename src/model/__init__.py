"""Model classes for rootfs-assemble."""

from model.key_slot import KeySlot
from model.mount_spec import MountSpec, OverlaySpec, VolumeSpec
from model.entries import BindEntry, MountEntry, OverlayEntry, VolumeEntry, describe

__all__ = [
    "KeySlot",
    "MountSpec",
    "OverlaySpec",
    "VolumeSpec",
    "BindEntry",
    "MountEntry",
    "OverlayEntry",
    "VolumeEntry",
    "describe",
]
