"""Local and remote scanning for deployments."""

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import RemoteCommandError, RemoteListingError
from ..remote import RemoteAccess
from ..utils import is_outside_root, relative_posix, to_posix
from .ignore import IgnoreFilter
from .state import DeploymentSnapshot, FileStat

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file below a workspace root."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Path relative to the root (forward slashes on all platforms)"""


class DirectoryScanner:
    """Recursively lists the files of a local directory.

    Directories matched by the ignore filter are pruned without descending
    into them.

    Examples:
        >>> scanner = DirectoryScanner(IgnoreFilter.compile(["build"]))
        >>> files = scanner.scan_local(Path("/ws/project"))
        >>> [f.relative_path for f in files]
        ['src/main.c', 'README.md']
    """

    def __init__(self, ignore_filter: Optional[IgnoreFilter] = None):
        """Initialize directory scanner.

        Args:
            ignore_filter: Rules excluding paths; None lists everything
        """
        self.ignore_filter = ignore_filter

    def _is_ignored(self, relative_path: str, is_dir: bool) -> bool:
        if self.ignore_filter is None:
            return False
        if self.ignore_filter.ignores(relative_path, is_dir=is_dir):
            logger.debug(f"Ignoring (from rules): {relative_path}")
            return True
        return False

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[LocalFile]:
        """Recursively scan a local directory.

        Args:
            directory: Directory to scan
            base_path: Base path for relative paths (defaults to directory)

        Returns:
            List of LocalFile objects, sorted by relative path within each
            directory level
        """
        if base_path is None:
            base_path = directory

        files: list[LocalFile] = []

        try:
            items = sorted(directory.iterdir(), key=lambda p: p.name)
        except PermissionError:
            logger.warning(f"Permission denied: {directory}")
            return files

        for item in items:
            relative_path = relative_posix(item, base_path)
            is_dir = item.is_dir()
            if self._is_ignored(relative_path, is_dir):
                continue
            if is_dir:
                if not item.is_symlink():
                    files.extend(self.scan_local(item, base_path))
            elif item.is_file():
                files.append(LocalFile(path=item, relative_path=relative_path))

        return files


def build_listing_command(find_command: str, remote_root: str) -> str:
    """Build the remote listing command.

    Prints one ``<modification-time> ./<path>`` line per regular file below
    ``remote_root``.
    """
    return f"cd {shlex.quote(remote_root)} && {find_command} . -type f -printf '%T+ %p\\n'"


def parse_listing(stdout: str) -> dict[str, str]:
    """Parse remote listing output.

    Args:
        stdout: Output of the listing command

    Returns:
        Mapping of relative remote path (``./`` stripped) to timestamp
    """
    entries: dict[str, str] = {}
    for line in stdout.splitlines():
        line = line.rstrip("\r")
        if not line.strip():
            continue
        timestamp, sep, path = line.partition(" ")
        if not sep or not path:
            logger.debug(f"Skipping malformed listing line: {line!r}")
            continue
        if path.startswith("./"):
            path = path[2:]
        entries[path] = timestamp
    return entries


def find_local_match(
    remote_path: str,
    local_by_relative: dict[str, LocalFile],
    local_files: list[LocalFile],
) -> Optional[LocalFile]:
    """Correlate a remote path with a local file.

    An exact relative-path match wins. Otherwise the first local file whose
    normalized absolute path ends with ``/<remote_path>`` is used.
    """
    exact = local_by_relative.get(remote_path)
    if exact is not None:
        return exact
    suffix = "/" + remote_path
    for local_file in local_files:
        if to_posix(local_file.path).endswith(suffix):
            return local_file
    return None


class RemoteStatScanner:
    """Collects per-file timestamps from the remote and the local tree."""

    def __init__(self, remote: RemoteAccess):
        """Initialize the scanner.

        Args:
            remote: Remote access provider with a ``find_command``
        """
        self.remote = remote

    def list_remote(self, remote_root: str) -> dict[str, str]:
        """Run the listing command for ``remote_root``.

        Returns:
            Mapping of relative path to remote timestamp

        Raises:
            RemoteListingError: If the command fails or prints nothing
        """
        find_command = self.remote.find_command
        if not find_command:
            raise RemoteListingError("Remote host does not support file listing")

        command = build_listing_command(find_command, remote_root)
        try:
            result = self.remote.run_command(command)
        except RemoteCommandError as e:
            raise RemoteListingError(f"Remote listing failed: {e}") from e

        if not result.ok:
            raise RemoteListingError(
                f"Remote listing exited {result.exit_code}: {result.stderr.strip()}"
            )
        if not result.stdout.strip():
            raise RemoteListingError(f"Remote listing of {remote_root} returned no files")

        entries = parse_listing(result.stdout)
        logger.debug(f"Remote listing found {len(entries)} file(s) in {remote_root}")
        return entries

    def scan(
        self,
        local_root: Path,
        remote_root: str,
        ignore_filter: IgnoreFilter,
        local_files: Optional[list[LocalFile]] = None,
    ) -> DeploymentSnapshot:
        """Build the current snapshot of files present on both sides.

        Args:
            local_root: Workspace root
            remote_root: Remote target directory
            ignore_filter: Rules applied to correlated paths
            local_files: Full local enumeration (scanned if omitted)

        Returns:
            Snapshot keyed by local relative path

        Raises:
            RemoteListingError: If the remote could not be listed
        """
        remote_entries = self.list_remote(remote_root)
        if local_files is None:
            local_files = DirectoryScanner().scan_local(local_root)
        local_by_relative = {f.relative_path: f for f in local_files}

        snapshot: DeploymentSnapshot = {}
        for remote_path, remote_ts in remote_entries.items():
            local_file = find_local_match(remote_path, local_by_relative, local_files)
            if local_file is None:
                continue

            relative_path = relative_posix(local_file.path, local_root)
            if is_outside_root(relative_path) or ignore_filter.ignores(relative_path):
                continue

            snapshot[relative_path] = FileStat(
                relative_path=relative_path,
                local_ts=_local_mtime(local_file.path),
                remote_ts=remote_ts,
            )

        logger.debug(f"Correlated {len(snapshot)} of {len(remote_entries)} remote file(s)")
        return snapshot


def _local_mtime(path: Path) -> Optional[float]:
    try:
        return os.stat(path).st_mtime
    except OSError as e:
        logger.debug(f"Unable to stat {path}: {e}")
        return None
