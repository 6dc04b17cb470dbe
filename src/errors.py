"""Exceptions raised while preparing devices and assembling the root filesystem."""


class AssemblyError(Exception):
    """Base class for every failure that aborts an assembly run."""


class ConfigurationError(AssemblyError):
    """Raised when the mount specification or key slots are unusable."""


class DirectoryCreationError(AssemblyError):
    """Raised when a directory under the tree or overlay store cannot be created."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to create directory {path}: {reason}")
        self.path = path


class MountError(AssemblyError):
    """Raised when the mount helper rejects an operation."""

    def __init__(self, target: str, reason: str) -> None:
        super().__init__(f"Failed to mount {target}: {reason}")
        self.target = target


class SubprocessError(AssemblyError):
    """Raised when an external tool exits non-zero."""

    def __init__(self, cmd: list[str], returncode: int, output: str = "") -> None:
        message = f"Command '{' '.join(cmd)}' exited with status {returncode}"
        if output.strip():
            message += f": {output.strip()}"
        super().__init__(message)
        self.cmd = cmd
        self.returncode = returncode
        self.output = output


class PersistError(AssemblyError):
    """Raised when the fstab file cannot be written."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path
