"""Utility functions for pydeploy."""

import os
import posixpath
from pathlib import Path
from typing import Union

# =============================================================================
# Constants for deployment
# =============================================================================

# Maximum number of simultaneous file transfers
DEFAULT_CONCURRENCY: int = 5

DEFAULT_SSH_PORT: int = 22

# Timeout for remote commands (seconds)
DEFAULT_COMMAND_TIMEOUT: float = 120.0

REMOTE_SEPARATOR: str = "/"


# =============================================================================
# Path utilities
# =============================================================================


def to_posix(path: Union[str, Path]) -> str:
    """Convert a local path to forward-slash form.

    Args:
        path: Local path (may contain the platform separator)

    Returns:
        Path string using forward slashes
    """
    return str(path).replace(os.sep, "/")


def relative_posix(path: Union[str, Path], root: Union[str, Path]) -> str:
    """Return ``path`` relative to ``root`` using forward slashes.

    Unlike ``Path.relative_to`` this never raises: paths outside ``root``
    come back starting with ``..``.
    """
    return to_posix(os.path.relpath(path, root))


def is_outside_root(relative_path: str) -> bool:
    """Check whether a relative path escapes its root."""
    return relative_path == ".." or relative_path.startswith("../")


def join_remote(remote_root: str, relative_path: str) -> str:
    """Join a remote directory with a forward-slash relative path."""
    return posixpath.join(remote_root, relative_path)


def is_absolute_remote_path(remote_path: str) -> bool:
    """Check whether a remote path is an absolute directory path."""
    return remote_path.startswith(REMOTE_SEPARATOR)


def format_count(count: int, noun: str = "file") -> str:
    """Format a count with a pluralised noun, e.g. ``3 files``."""
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"
