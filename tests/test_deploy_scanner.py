"""Tests for local and remote scanning."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from pydeploy.deploy.ignore import IgnoreFilter
from pydeploy.deploy.scanner import (
    DirectoryScanner,
    LocalFile,
    RemoteStatScanner,
    build_listing_command,
    find_local_match,
    parse_listing,
)
from pydeploy.exceptions import RemoteCommandError, RemoteListingError
from pydeploy.remote import CommandResult

from .conftest import FakeRemote, make_file


class TestDirectoryScanner:
    """Tests for DirectoryScanner."""

    def test_scan_lists_all_files(self, workspace):
        make_file(workspace, "a.txt")
        make_file(workspace, "src/main.c")
        make_file(workspace, "src/lib/util.c")

        files = DirectoryScanner().scan_local(workspace)

        assert sorted(f.relative_path for f in files) == [
            "a.txt",
            "src/lib/util.c",
            "src/main.c",
        ]
        assert all(f.path.is_absolute() for f in files)

    def test_scan_prunes_ignored_directories(self, workspace):
        """Ignored directories are not descended into."""
        make_file(workspace, "a.txt")
        make_file(workspace, "node_modules/pkg/index.js")
        make_file(workspace, ".git/HEAD")

        scanner = DirectoryScanner(IgnoreFilter.compile(["node_modules/"]))
        files = scanner.scan_local(workspace)

        assert [f.relative_path for f in files] == ["a.txt"]

    def test_directory_only_pattern_matches_directory(self):
        rules = IgnoreFilter.compile(["node_modules/"])
        assert rules.ignores("node_modules", is_dir=True)
        assert not rules.ignores("node_modules", is_dir=False)

    def test_scan_empty_directory(self, workspace):
        assert DirectoryScanner().scan_local(workspace) == []


class TestListingParsing:
    """Tests for the remote listing format."""

    def test_build_listing_command(self):
        command = build_listing_command("/QOpenSys/pkgs/bin/find", "/home/dev/my app")
        assert command.startswith("cd '/home/dev/my app' && ")
        assert "/QOpenSys/pkgs/bin/find . -type f -printf '%T+ %p\\n'" in command

    def test_parse_listing_strips_dot_slash(self):
        stdout = (
            "2026-01-01+10:00:00.0000000000 ./a.txt\n"
            "2026-01-02+11:00:00.0000000000 ./src/main.c\n"
        )
        assert parse_listing(stdout) == {
            "a.txt": "2026-01-01+10:00:00.0000000000",
            "src/main.c": "2026-01-02+11:00:00.0000000000",
        }

    def test_parse_listing_keeps_spaces_in_paths(self):
        entries = parse_listing("T1 ./docs/read me.txt\n")
        assert entries == {"docs/read me.txt": "T1"}

    def test_parse_listing_skips_blank_and_malformed_lines(self):
        entries = parse_listing("\nT1 ./a.txt\r\ngarbage\n\n")
        assert entries == {"a.txt": "T1"}


class TestFindLocalMatch:
    """Tests for correlating remote paths with local files."""

    def _files(self, root: Path, *relative_paths: str) -> list[LocalFile]:
        return [LocalFile(path=root / p, relative_path=p) for p in relative_paths]

    def test_exact_match_preferred(self):
        root = Path("/ws")
        files = self._files(root, "other/src/a.c", "src/a.c")
        by_relative = {f.relative_path: f for f in files}

        match = find_local_match("src/a.c", by_relative, files)

        assert match is not None
        assert match.relative_path == "src/a.c"

    def test_suffix_match(self):
        """Without an exact match the first path-suffix match is used."""
        root = Path("/ws")
        files = self._files(root, "nested/a.c")
        by_relative = {f.relative_path: f for f in files}

        match = find_local_match("a.c", by_relative, files)

        assert match is not None
        assert match.relative_path == "nested/a.c"

    def test_suffix_must_align_with_segment(self):
        """'a.txt' does not match 'ba.txt'."""
        root = Path("/ws")
        files = self._files(root, "ba.txt")
        by_relative = {f.relative_path: f for f in files}

        assert find_local_match("a.txt", by_relative, files) is None

    def test_no_match(self):
        assert find_local_match("x.c", {}, []) is None


class TestRemoteStatScanner:
    """Tests for RemoteStatScanner."""

    def test_scan_correlates_local_and_remote(self, workspace):
        make_file(workspace, "a.txt", mtime=100)
        make_file(workspace, "src/b.txt", mtime=200)
        remote = FakeRemote()
        remote.add_file("/home/dev/a.txt", "T1")
        remote.add_file("/home/dev/src/b.txt", "T2")
        remote.add_file("/home/dev/remote_only.txt", "T3")

        snapshot = RemoteStatScanner(remote).scan(
            workspace, "/home/dev", IgnoreFilter.compile([])
        )

        assert set(snapshot) == {"a.txt", "src/b.txt"}
        assert snapshot["a.txt"].local_ts == 100
        assert snapshot["a.txt"].remote_ts == "T1"
        assert snapshot["src/b.txt"].local_ts == 200
        assert snapshot["src/b.txt"].remote_ts == "T2"

    def test_scan_discards_ignored(self, workspace):
        make_file(workspace, "a.txt")
        make_file(workspace, "build/out.o")
        remote = FakeRemote()
        remote.add_file("/home/dev/a.txt", "T1")
        remote.add_file("/home/dev/build/out.o", "T2")

        snapshot = RemoteStatScanner(remote).scan(
            workspace, "/home/dev", IgnoreFilter.compile(["build"])
        )

        assert set(snapshot) == {"a.txt"}

    def test_scan_uses_single_remote_command(self, workspace):
        make_file(workspace, "a.txt")
        remote = FakeRemote()
        remote.add_file("/home/dev/a.txt", "T1")

        RemoteStatScanner(remote).scan(workspace, "/home/dev", IgnoreFilter.compile([]))

        assert len(remote.commands) == 1
        assert "-printf" in remote.commands[0]

    def test_empty_output_raises(self):
        remote = FakeRemote()
        remote.listing_override = CommandResult(exit_code=0, stdout="\n", stderr="")

        with pytest.raises(RemoteListingError, match="returned no files"):
            RemoteStatScanner(remote).list_remote("/home/dev")

    def test_failed_command_raises(self):
        remote = FakeRemote()
        remote.listing_override = CommandResult(
            exit_code=1, stdout="", stderr="cd: /home/dev: No such file"
        )

        with pytest.raises(RemoteListingError, match="No such file"):
            RemoteStatScanner(remote).list_remote("/home/dev")

    def test_channel_error_wrapped(self):
        remote = FakeRemote()
        remote.run_command = Mock(side_effect=RemoteCommandError("connection reset"))

        with pytest.raises(RemoteListingError, match="connection reset"):
            RemoteStatScanner(remote).list_remote("/home/dev")

    def test_no_find_command_raises(self):
        remote = FakeRemote(find_command=None)

        with pytest.raises(RemoteListingError, match="does not support"):
            RemoteStatScanner(remote).list_remote("/home/dev")
