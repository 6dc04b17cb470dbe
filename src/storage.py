"""Storage directory naming for overlay and bind-state directories."""

from __future__ import annotations

import posixpath

from errors import ConfigurationError


def normalize_path(path: str) -> str:
    """Normalize a configured path to its absolute, slash-collapsed form.

    Converts paths like 'var//lib/' to '/var/lib'. Does not resolve symlinks,
    the path refers to a location inside a tree that may not be mounted yet.
    """
    return posixpath.normpath("/" + path.strip().lstrip("/"))


def derive_storage_name(path: str, suffix: str) -> str:
    """Map an absolute path to a flat directory name in the overlay or state store.

    Converts '/usr/local' to 'usr-local.overlay' (suffix 'overlay') or
    'usr-local.bind' (suffix 'bind'). A leading or trailing slash does not
    change the result.

    Args:
        path: The configured path (e.g. '/var', '/usr/local')
        suffix: Name suffix without the dot ('overlay' or 'bind')

    Returns:
        A directory name with no embedded separators

    Raises:
        ConfigurationError: If the path is empty or the root directory

    Note:
        Paths with dashes in component names flatten onto paths with separators
        ('/a-b' and '/a/b' both become 'a-b'). Callers validate configured paths
        with find_collisions() before using the names.
    """
    if not path or not path.strip():
        raise ConfigurationError("Cannot derive a storage name from an empty path")

    trimmed = normalize_path(path).removeprefix("/")
    if not trimmed:
        raise ConfigurationError(f"Cannot derive a storage name for the root path {path!r}")
    return f"{trimmed.replace('/', '-')}.{suffix}"


def find_collisions(paths: list[str] | tuple[str, ...], suffix: str) -> list[tuple[str, str]]:
    """Find configured paths that derive the same storage name.

    Returns (first, second) pairs in configuration order. Duplicate paths and
    paths that only differ by slashes are reported as well.
    """
    seen: dict[str, str] = {}
    collisions = []
    for path in paths:
        name = derive_storage_name(path, suffix)
        if name in seen:
            collisions.append((seen[name], path))
        else:
            seen[name] = path
    return collisions


def join_under(base: str, path: str) -> str:
    """Join an absolute path below a base directory.

    Unlike posixpath.join(), an absolute second argument does not discard the
    base: join_under('/sysroot', '/etc') is '/sysroot/etc'.
    """
    return normalize_path(f"{base}/{path}")
