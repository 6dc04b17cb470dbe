"""Encrypted device preparation with cryptsetup."""

from __future__ import annotations

import logging
import posixpath

from constants import MAPPER_DIR
from errors import ConfigurationError, SubprocessError
from model import KeySlot
from runner import Runner

log = logging.getLogger(__name__)

CRYPTSETUP = "cryptsetup"


def unlock_args(cmd: list[str], slot: KeySlot) -> tuple[list[str], str | None]:
    """Attach the credentials of a key slot to a cryptsetup command.

    Returns:
        (command, stdin) where stdin carries the passphrase, or None to let
        cryptsetup prompt interactively.
    """
    cmd = list(cmd)
    if slot.key_file:
        cmd.extend(["--key-file", slot.key_file])
    return cmd, slot.passphrase or None


def encrypt_device(runner: Runner, device: str, mapped_name: str, slots: list[KeySlot]) -> str:
    """Format a device as a LUKS volume and open it.

    Only the first key slot is enrolled. Any further slots are ignored.

    Args:
        runner: Subprocess capability
        device: Block device to format (e.g. /dev/sda3)
        mapped_name: Device-mapper name to open it under
        slots: Key slots, at least one

    Returns:
        Path of the mapped device node (e.g. /dev/mapper/cryptroot)

    Raises:
        ConfigurationError: If no usable key slot is given. Nothing is run.
        SubprocessError: If formatting or opening fails. A failed format is
            never followed by an open.
    """
    if not slots:
        raise ConfigurationError(f"Needs at least 1 key-slot to encrypt {device}")
    if not mapped_name or "/" in mapped_name:
        raise ConfigurationError(f"Invalid mapped device name '{mapped_name}'")

    first = slots[0]
    if first.slot < 0:
        raise ConfigurationError(f"Invalid key slot {first.slot} for {device}")
    if len(slots) > 1:
        log.warning(f"Only key slot {first.slot} is enrolled on {device}, {len(slots) - 1} more ignored")

    cmd, stdin = unlock_args([CRYPTSETUP, "luksFormat", "--key-slot", str(first.slot), device, "-"], first)
    log.info(f"Formatting {device} as LUKS (key slot {first.slot})")
    result = runner.run(cmd, stdin=stdin)
    if not result.ok:
        log.error(f"Error formatting device {device}: {result.output.strip()}")
        raise SubprocessError(cmd, result.returncode, result.output)

    cmd, stdin = unlock_args([CRYPTSETUP, "open", device, mapped_name], first)
    log.info(f"Opening {device} as {mapped_name}")
    result = runner.run(cmd, stdin=stdin)
    if not result.ok:
        log.error(f"Error opening device {device}: {result.output.strip()}")
        raise SubprocessError(cmd, result.returncode, result.output)

    return posixpath.join(MAPPER_DIR, mapped_name)
