"""Ignore rules for deployments.

Patterns use gitignore syntax (matched by ``pathspec``) and are compared
case-insensitively. The version-control metadata directory is always
ignored.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

import pathspec

from ..utils import to_posix

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".gitignore"

# Always ignored regardless of user patterns
IMPLICIT_PATTERNS = [".git"]


def read_ignore_file(path: Path) -> list[str]:
    """Read patterns from an ignore file.

    Carriage returns are stripped so files with Windows line endings
    produce the same patterns.
    """
    content = path.read_text(encoding="utf-8", errors="replace").replace("\r", "")
    return content.split("\n")


class IgnoreFilter:
    """Compiled set of ignore patterns.

    Examples:
        >>> rules = IgnoreFilter.compile(["node_modules", "*.LOG"])
        >>> rules.ignores("node_modules/pkg/index.js")
        True
        >>> rules.ignores("build/out.log")
        True
        >>> rules.ignores("src/main.c")
        False
    """

    def __init__(self, patterns: list[str]):
        self.patterns = patterns
        self._spec = pathspec.GitIgnoreSpec.from_lines(
            [pattern.lower() for pattern in patterns]
        )

    @classmethod
    def compile(cls, patterns: Optional[Iterable[str]] = None) -> "IgnoreFilter":
        """Compile patterns together with the implicit rules.

        Args:
            patterns: gitignore-syntax patterns; blank lines and comments
                are skipped

        Returns:
            IgnoreFilter instance
        """
        lines = list(IMPLICIT_PATTERNS)
        for pattern in patterns or []:
            stripped = pattern.strip()
            if stripped and not stripped.startswith("#"):
                lines.append(stripped)
        return cls(lines)

    @classmethod
    def for_root(
        cls, local_root: Path, patterns: Optional[Iterable[str]] = None
    ) -> "IgnoreFilter":
        """Compile patterns plus the root-level ignore file, if present.

        Args:
            local_root: Workspace root that may hold a ``.gitignore``
            patterns: Extra patterns applied before the file's patterns
        """
        all_patterns = list(patterns or [])
        ignore_file = local_root / IGNORE_FILE_NAME
        if ignore_file.is_file():
            file_patterns = read_ignore_file(ignore_file)
            logger.debug(
                f"Loaded {len(file_patterns)} line(s) from {ignore_file}"
            )
            all_patterns.extend(file_patterns)
        return cls.compile(all_patterns)

    def ignores(self, relative_path: str, is_dir: bool = False) -> bool:
        """Check whether a root-relative path is ignored.

        Args:
            relative_path: Path relative to the workspace root
            is_dir: Whether the path is a directory, so that directory-only
                patterns such as ``build/`` apply to it

        Returns:
            True if the path or one of its parent directories is ignored.
            As in git, a negated pattern cannot re-include a path whose
            parent directory is ignored.
        """
        normalized = to_posix(relative_path).strip("/").lower()
        if not normalized:
            return False
        parts = normalized.split("/")
        for depth in range(1, len(parts)):
            if self._spec.match_file("/".join(parts[:depth]) + "/"):
                return True
        if is_dir:
            normalized += "/"
        return self._spec.match_file(normalized)
