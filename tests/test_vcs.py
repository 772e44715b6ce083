"""Tests for the git version-control provider."""

from unittest.mock import patch

import pytest

from pydeploy.exceptions import NoRepositoryError, VersionControlError
from pydeploy.vcs import GitProvider, parse_porcelain_status


class TestParsePorcelainStatus:
    """Tests for parse_porcelain_status."""

    OUTPUT = "\0".join(
        [
            "M  staged.c",
            " M modified.c",
            "MM both.c",
            "?? new.c",
            "A  added.c",
            "D  removed.c",
            " D gone.c",
            "R  renamed.c",
            "original.c",
            "!! ignored.o",
            "",
        ]
    )

    def test_staged(self):
        assert parse_porcelain_status(self.OUTPUT, staged=True) == [
            "staged.c",
            "both.c",
            "added.c",
            "renamed.c",
        ]

    def test_working(self):
        assert parse_porcelain_status(self.OUTPUT, staged=False) == [
            "modified.c",
            "both.c",
            "new.c",
        ]

    def test_empty(self):
        assert parse_porcelain_status("", staged=True) == []

    def test_paths_with_spaces(self):
        assert parse_porcelain_status(" M docs/read me.md\0", staged=False) == [
            "docs/read me.md"
        ]


class TestGitProvider:
    """Tests for GitProvider with git calls patched out."""

    def test_working_changes(self, tmp_path):
        responses = [
            (0, f"{tmp_path}\n", ""),
            (0, " M src/a.c\0?? b.c\0", ""),
        ]
        with patch("pydeploy.vcs.run_git_command", side_effect=responses) as mock_git:
            changes = GitProvider().get_changes(tmp_path, staged=False)

        assert [c.path for c in changes] == [tmp_path / "src/a.c", tmp_path / "b.c"]
        assert [c.content_ref for c in changes] == ["src/a.c", "b.c"]
        assert mock_git.call_args_list[1][0][0][0] == "status"

    def test_staged_changes_reference_index(self, tmp_path):
        responses = [(0, f"{tmp_path}\n", ""), (0, "M  a.c\0", "")]
        with patch("pydeploy.vcs.run_git_command", side_effect=responses):
            changes = GitProvider().get_changes(tmp_path, staged=True)

        assert [c.content_ref for c in changes] == [":a.c"]

    def test_not_a_repository(self, tmp_path):
        with patch(
            "pydeploy.vcs.run_git_command",
            return_value=(128, "", "fatal: not a git repository"),
        ):
            with pytest.raises(NoRepositoryError):
                GitProvider().get_changes(tmp_path, staged=True)

    def test_subdirectory_of_repository(self, tmp_path):
        """A repository rooted above the local root does not count."""
        sub = tmp_path / "sub"
        sub.mkdir()
        with patch(
            "pydeploy.vcs.run_git_command", return_value=(0, f"{tmp_path}\n", "")
        ):
            with pytest.raises(NoRepositoryError):
                GitProvider().get_changes(sub, staged=False)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(NoRepositoryError):
            GitProvider().get_changes(tmp_path / "missing", staged=False)

    def test_status_failure(self, tmp_path):
        responses = [(0, f"{tmp_path}\n", ""), (1, "", "index locked")]
        with patch("pydeploy.vcs.run_git_command", side_effect=responses):
            with pytest.raises(VersionControlError, match="index locked"):
                GitProvider().get_changes(tmp_path, staged=False)
