"""Plan output for dry runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from model import describe

if TYPE_CHECKING:
    from model import MountEntry, MountSpec


def print_assembly_plan(
    spec: "MountSpec",
    entries: list["MountEntry"],
    fstab_lines: list[str],
    warnings: list[str] | None = None,
) -> None:
    """Print what an assembly would do, without doing it.

    Args:
        spec: The mount specification
        entries: Mount entries in application order
        fstab_lines: The fstab that would be written
        warnings: Optional validation warnings
    """
    print("=" * 60)
    print(f"Assembling root filesystem on {spec.mount_point} ({spec.root_permission})")
    print(f"Overlay store: {spec.overlay}")

    if entries:
        print("\nMounts:")
        for entry in entries:
            print(f"  {describe(entry)}")

    print("\nfstab:")
    for line in fstab_lines:
        print(f"  {line}")

    if warnings:
        print("\nWarnings:")
        for warning in warnings:
            print(f"  {warning}")

    print("=" * 60 + "\n")
