"""Shared fixtures and provider fakes for deployment tests."""

import os
import shlex
import threading
import time
from pathlib import Path
from typing import Optional

import pytest

from pydeploy.exceptions import NoRepositoryError, TransferError
from pydeploy.remote import CommandResult
from pydeploy.storage import MemoryStorage
from pydeploy.vcs import VcsChange


class FakeRemote:
    """In-memory remote host.

    Files are kept as ``remote_path -> timestamp``. Every upload stamps the
    file with a new timestamp, like a real filesystem would.
    """

    def __init__(self, find_command: Optional[str] = "find", delay: float = 0.0):
        self.find_command = find_command
        self.files: dict[str, str] = {}
        self.fail_paths: set[str] = set()
        self.put_calls: list[tuple[Path, str]] = []
        self.commands: list[str] = []
        self.listing_override: Optional[CommandResult] = None
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self._clock = 0
        self._lock = threading.Lock()

    def add_file(self, remote_path: str, timestamp: str) -> None:
        self.files[remote_path] = timestamp

    def run_command(self, command: str) -> CommandResult:
        self.commands.append(command)
        if "-printf" not in command:
            return CommandResult(exit_code=0, stdout="", stderr="")
        if self.listing_override is not None:
            return self.listing_override

        root = shlex.split(command)[1].rstrip("/")
        lines = [
            f"{timestamp} ./{path[len(root) + 1:]}"
            for path, timestamp in sorted(self.files.items())
            if path.startswith(root + "/")
        ]
        return CommandResult(exit_code=0, stdout="\n".join(lines) + "\n", stderr="")

    def put_file(self, local_path: Path, remote_path: str) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.put_calls.append((local_path, remote_path))
        try:
            if self.delay:
                time.sleep(self.delay)
            if remote_path in self.fail_paths or str(local_path) in self.fail_paths:
                raise TransferError(f"Permission denied: {remote_path}")
            with self._lock:
                self._clock += 1
                self.files[remote_path] = f"2026-01-01+00:00:{self._clock:02d}"
        finally:
            with self._lock:
                self.in_flight -= 1


class FakeVcs:
    """Version-control provider returning canned changes."""

    def __init__(
        self,
        staged: Optional[list[Path]] = None,
        working: Optional[list[Path]] = None,
        has_repository: bool = True,
    ):
        self.staged = staged or []
        self.working = working or []
        self.has_repository = has_repository
        self.calls: list[tuple[Path, bool]] = []

    def get_changes(self, local_root: Path, staged: bool) -> list[VcsChange]:
        self.calls.append((local_root, staged))
        if not self.has_repository:
            raise NoRepositoryError(str(local_root))
        paths = self.staged if staged else self.working
        return [VcsChange(path=p, content_ref=str(p)) for p in paths]


def make_file(root: Path, relative_path: str, content: str = "x", mtime=None) -> Path:
    """Create ``root/relative_path`` and optionally set its mtime."""
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def workspace(tmp_path):
    """An empty local workspace root."""
    root = tmp_path / "ws"
    root.mkdir()
    return root


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def storage():
    return MemoryStorage()
