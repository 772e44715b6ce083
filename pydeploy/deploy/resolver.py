"""Change-set resolution: deciding which files a deployment sends."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..exceptions import RemoteListingError, UnsupportedModeError
from ..remote import RemoteAccess
from ..utils import join_remote, relative_posix
from ..vcs import VersionControl
from .ignore import IgnoreFilter
from .modes import DeployMode
from .scanner import DirectoryScanner, RemoteStatScanner
from .state import DeploymentSnapshot, DeploymentTarget

logger = logging.getLogger(__name__)


@dataclass
class ChangeRecord:
    """A file to transfer."""

    local_path: Path
    remote_path: str


@dataclass
class ResolveResult:
    """Outcome of change-set resolution."""

    records: list[ChangeRecord] = field(default_factory=list)
    """Files to transfer"""

    snapshot: Optional[DeploymentSnapshot] = None
    """Current file stats (incremental mode only), persisted after success"""

    warnings: list[str] = field(default_factory=list)
    """Non-fatal conditions, e.g. an empty change set"""


class ChangeSetResolver:
    """Resolves the files to deploy for each :class:`DeployMode`.

    Version-control modes trust version control's own ignore handling and
    skip the ignore filter. ``ALL`` and ``CHANGED_ONLY`` walk the local root
    and apply it.
    """

    def __init__(
        self,
        remote: Optional[RemoteAccess] = None,
        vcs: Optional[VersionControl] = None,
    ):
        """Initialize the resolver.

        Args:
            remote: Remote access provider (needed for CHANGED_ONLY)
            vcs: Version-control provider (needed for change modes)
        """
        self.remote = remote
        self.vcs = vcs

    def resolve(
        self,
        mode: DeployMode,
        target: DeploymentTarget,
        ignore_filter: IgnoreFilter,
        previous_snapshot: Optional[DeploymentSnapshot] = None,
    ) -> ResolveResult:
        """Resolve the change set for ``mode``.

        Args:
            mode: Deployment mode
            target: Local root and remote directory
            ignore_filter: Ignore rules (ALL and CHANGED_ONLY only)
            previous_snapshot: Snapshot of the last successful incremental
                deployment

        Returns:
            ResolveResult with the records to transfer

        Raises:
            NoRepositoryError: If a version-control mode finds no repository
            UnsupportedModeError: If a provider needed by ``mode`` is missing
        """
        if mode.uses_version_control:
            return self._resolve_vcs(target, staged=mode == DeployMode.STAGED_CHANGES)
        if mode == DeployMode.ALL:
            return self._resolve_all(target, ignore_filter)
        return self._resolve_changed_only(target, ignore_filter, previous_snapshot or {})

    def _record(self, target: DeploymentTarget, local_path: Path) -> ChangeRecord:
        relative_path = relative_posix(local_path, target.local_root)
        return ChangeRecord(
            local_path=local_path,
            remote_path=join_remote(target.remote_path, relative_path),
        )

    def _resolve_vcs(self, target: DeploymentTarget, staged: bool) -> ResolveResult:
        if self.vcs is None:
            raise UnsupportedModeError("No version-control provider available")

        change_type = "staged" if staged else "working"
        changes = self.vcs.get_changes(target.local_root, staged=staged)
        if not changes:
            return ResolveResult(warnings=[f"No {change_type} changes to deploy."])

        records = [self._record(target, change.path) for change in changes]
        logger.debug(f"Resolved {len(records)} {change_type} change(s)")
        return ResolveResult(records=records)

    def _resolve_all(
        self, target: DeploymentTarget, ignore_filter: IgnoreFilter
    ) -> ResolveResult:
        candidates = DirectoryScanner(ignore_filter).scan_local(target.local_root)
        records = [self._record(target, f.path) for f in candidates]
        logger.debug(f"Resolved {len(records)} file(s) for full deployment")
        return ResolveResult(records=records)

    def _resolve_changed_only(
        self,
        target: DeploymentTarget,
        ignore_filter: IgnoreFilter,
        previous: DeploymentSnapshot,
    ) -> ResolveResult:
        if self.remote is None:
            raise UnsupportedModeError("No remote available for changed-only mode")

        all_local = DirectoryScanner().scan_local(target.local_root)
        scanner = RemoteStatScanner(self.remote)
        try:
            current = scanner.scan(
                target.local_root,
                target.remote_path,
                ignore_filter,
                local_files=all_local,
            )
        except RemoteListingError as e:
            logger.warning(f"Changed-only deployment skipped: {e}")
            return ResolveResult(
                warnings=[f"Unable to list remote files, nothing deployed: {e}"]
            )

        records: list[ChangeRecord] = []
        for local_file in all_local:
            relative_path = local_file.relative_path
            if ignore_filter.ignores(relative_path):
                continue
            previous_stat = previous.get(relative_path)
            current_stat = current.get(relative_path)
            if previous_stat and current_stat and not current_stat.differs_from(
                previous_stat
            ):
                continue
            records.append(self._record(target, local_file.path))

        logger.debug(
            f"Changed-only: {len(records)} of {len(all_local)} local file(s) changed"
        )
        return ResolveResult(records=records, snapshot=current)
