"""Subprocess capability for external tools (mount, cryptsetup)."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass

log = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Exit status and combined stdout/stderr of a finished command."""

    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Runner:
    """Runs external commands synchronously and captures their output."""

    def run(self, cmd: list[str], stdin: str | None = None) -> CommandResult:
        """Run a command to completion.

        Args:
            cmd: Command and arguments
            stdin: Optional text piped to the command's standard input. Never logged.
                When None, standard input is inherited so the tool can prompt.

        Returns:
            CommandResult with the exit status and combined output. A missing
            executable is reported as exit status 127.
        """
        log.debug(f"Running: {shlex.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as e:
            return CommandResult(returncode=127, output=str(e))
        return CommandResult(returncode=result.returncode, output=result.stdout or "")
