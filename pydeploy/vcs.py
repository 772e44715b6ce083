"""Version-control providers supplying staged and working-tree changes."""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .exceptions import NoRepositoryError, VersionControlError

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 30


@dataclass
class VcsChange:
    """A changed file reported by version control."""

    path: Path
    """Absolute local path of the changed file"""

    content_ref: str
    """Revision spec for the content, e.g. ``:src/a.c`` for the index copy"""


class VersionControl(Protocol):
    """Source of changed files for a local root."""

    def get_changes(self, local_root: Path, staged: bool) -> list[VcsChange]: ...


def run_git_command(args: list[str], cwd: Path) -> tuple[int, str, str]:
    """Run ``git`` with ``args`` in ``cwd``.

    Returns:
        Tuple of (returncode, stdout, stderr)

    Raises:
        VersionControlError: If git is missing or times out
    """
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except FileNotFoundError:
        raise VersionControlError("git not found in PATH")
    except subprocess.TimeoutExpired:
        raise VersionControlError(f"git command timed out after {GIT_TIMEOUT}s: {args}")
    return result.returncode, result.stdout, result.stderr


def parse_porcelain_status(output: str, staged: bool) -> list[str]:
    """Parse ``git status --porcelain=v1 -z`` output.

    Args:
        output: Raw NUL-separated status output
        staged: Select index changes (True) or working-tree changes (False)

    Returns:
        Repository-relative paths of changed files, deletions excluded
    """
    paths: list[str] = []
    entries = output.split("\0")
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if len(entry) < 4:
            continue
        index_status, worktree_status, path = entry[0], entry[1], entry[3:]
        if index_status in "RC":
            # Renames and copies are followed by the original path
            i += 1

        status = index_status if staged else worktree_status
        if staged and status in " ?!":
            continue
        if not staged and status in " !":
            continue
        if status == "D":
            # Nothing to upload for a deleted file
            logger.debug(f"Skipping deleted file {path}")
            continue
        paths.append(path)
    return paths


class GitProvider:
    """Version-control provider backed by the ``git`` executable."""

    def _repository_root(self, local_root: Path) -> Path:
        if not local_root.is_dir():
            raise NoRepositoryError(str(local_root))
        code, stdout, _ = run_git_command(["rev-parse", "--show-toplevel"], local_root)
        if code != 0:
            raise NoRepositoryError(str(local_root))
        top = Path(stdout.strip())
        # Only a repository rooted exactly at the local root counts
        if os.path.normcase(top.resolve()) != os.path.normcase(local_root.resolve()):
            raise NoRepositoryError(str(local_root))
        return top

    def get_changes(self, local_root: Path, staged: bool) -> list[VcsChange]:
        """List staged or working-tree changes under ``local_root``.

        Raises:
            NoRepositoryError: If ``local_root`` is not a repository root
            VersionControlError: If ``git status`` fails
        """
        repo_root = self._repository_root(local_root)
        code, stdout, stderr = run_git_command(
            ["status", "--porcelain=v1", "-z", "--untracked-files=all"], repo_root
        )
        if code != 0:
            raise VersionControlError(f"git status failed: {stderr.strip()}")

        changes = [
            VcsChange(
                path=local_root / rel_path,
                content_ref=f":{rel_path}" if staged else rel_path,
            )
            for rel_path in parse_porcelain_status(stdout, staged)
        ]
        logger.debug(
            f"Found {len(changes)} {'staged' if staged else 'working'} change(s) "
            f"in {local_root}"
        )
        return changes
