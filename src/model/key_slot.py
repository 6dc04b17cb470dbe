"""Encryption key slot model."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class KeySlot:
    """One credential for a LUKS key slot.

    With neither passphrase nor key_file set, cryptsetup prompts for the
    passphrase on the terminal.
    """

    slot: int
    passphrase: str = field(default="", repr=False)
    key_file: str = ""
