"""Top-level deployment orchestration."""

import logging
import threading
from pathlib import Path
from typing import Optional, Union

from ..exceptions import (
    DeploymentInProgressError,
    NotConfiguredError,
    RemoteListingError,
    ResolveError,
    UnsupportedModeError,
    UnsupportedTargetError,
)
from ..remote import RemoteAccess
from ..storage import Storage
from ..utils import DEFAULT_CONCURRENCY, format_count
from ..vcs import VersionControl
from .ignore import IgnoreFilter
from .modes import DeployMode
from .progress import DeployEvent, DeployProgressInfo, DeployProgressTracker
from .resolver import ChangeSetResolver, ResolveResult
from .scanner import RemoteStatScanner
from .state import (
    DeploymentSnapshot,
    DeploymentStateStore,
    DeploymentTarget,
    DeploymentTargetStore,
    root_key,
)
from .transfer import DeploymentResult, TransferCoordinator

logger = logging.getLogger(__name__)


class DeploymentController:
    """Deploys local workspace roots to their configured remote directories.

    Only one deployment per root may run at a time; a second concurrent
    call for the same root raises :class:`DeploymentInProgressError`.

    Examples:
        >>> controller = DeploymentController(remote, GitProvider(), storage)
        >>> controller.set_target(Path("/ws/app"), "/home/dev/app")
        >>> result = controller.deploy(Path("/ws/app"), DeployMode.ALL)
        >>> result.succeeded
        True
    """

    def __init__(
        self,
        remote: RemoteAccess,
        vcs: Optional[VersionControl],
        storage: Storage,
        tracker: Optional[DeployProgressTracker] = None,
        ignore_patterns: Optional[list[str]] = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY,
    ):
        """Initialize the controller.

        Args:
            remote: Remote access provider
            vcs: Version-control provider (None disables change modes)
            storage: Persistent storage for targets and snapshots
            tracker: Receives lifecycle events
            ignore_patterns: Extra ignore patterns for every deployment
            concurrency_limit: Default maximum of simultaneous uploads
        """
        self.remote = remote
        self.vcs = vcs
        self.targets = DeploymentTargetStore(storage)
        self.state = DeploymentStateStore(storage)
        self.tracker = tracker or DeployProgressTracker()
        self.ignore_patterns = ignore_patterns or []
        self.concurrency_limit = concurrency_limit
        self.resolver = ChangeSetResolver(remote=remote, vcs=vcs)
        self.coordinator = TransferCoordinator(remote)
        self.supports_listing = bool(getattr(remote, "find_command", None))
        self._active: set[str] = set()
        self._active_lock = threading.Lock()

    def available_modes(self) -> list[DeployMode]:
        """Deploy modes the configured providers can serve."""
        modes = []
        if self.supports_listing:
            modes.append(DeployMode.CHANGED_ONLY)
        if self.vcs is not None:
            modes.extend([DeployMode.WORKING_CHANGES, DeployMode.STAGED_CHANGES])
        modes.append(DeployMode.ALL)
        return modes

    def set_target(self, local_root: Path, remote_path: str) -> DeploymentTarget:
        """Set the deploy location of ``local_root``.

        Raises:
            UnsupportedTargetError: If ``remote_path`` is not absolute
        """
        return self.targets.set(local_root, remote_path)

    def get_target(self, local_root: Path) -> DeploymentTarget:
        """Return the validated target of ``local_root``.

        Raises:
            NotConfiguredError: If no target is configured
            UnsupportedTargetError: If the stored target is not absolute
        """
        target = self.targets.get(local_root)
        if target is None:
            raise NotConfiguredError(str(local_root))
        if not target.is_supported:
            raise UnsupportedTargetError(target.remote_path)
        return target

    def clear_state(self, local_root: Path) -> bool:
        """Forget the incremental snapshot of ``local_root``."""
        return self.state.clear(local_root)

    def _emit(self, event: DeployEvent, local_root: Path, **kwargs) -> None:
        self.tracker.emit(DeployProgressInfo(event=event, local_root=local_root, **kwargs))

    def deploy(
        self,
        local_root: Union[str, Path],
        mode: DeployMode,
        concurrency_limit: Optional[int] = None,
    ) -> DeploymentResult:
        """Deploy ``local_root`` using ``mode``.

        Args:
            local_root: Workspace root to deploy
            mode: How to select the files
            concurrency_limit: Overrides the default upload concurrency

        Returns:
            DeploymentResult with per-file outcomes and the log

        Raises:
            NotConfiguredError: If no target is configured for the root
            UnsupportedTargetError: If the target is not an absolute path
            UnsupportedModeError: If the remote cannot serve ``mode``
            NoRepositoryError: If a version-control mode finds no repository
            DeploymentInProgressError: If the root is already deploying
            ValueError: If ``local_root`` is missing or the limit is below 1
        """
        local_root = Path(local_root)
        target = self.get_target(local_root)
        if mode.requires_remote_listing and not self.supports_listing:
            raise UnsupportedModeError(
                f"{mode.label} deployment needs a remote 'find' with -printf support"
            )
        if mode.uses_version_control and self.vcs is None:
            raise UnsupportedModeError(f"{mode.label} deployment needs version control")
        if not local_root.is_dir():
            raise ValueError(f"Local directory does not exist: {local_root}")

        limit = self.concurrency_limit if concurrency_limit is None else concurrency_limit
        if limit < 1:
            raise ValueError("Concurrency limit must be at least 1")

        key = root_key(local_root)
        with self._active_lock:
            if key in self._active:
                raise DeploymentInProgressError(str(local_root))
            self._active.add(key)
        try:
            return self._run(target, mode, limit)
        finally:
            with self._active_lock:
                self._active.discard(key)

    def _failed(
        self,
        local_root: Path,
        error: Exception,
        log: list[str],
        result: Optional[DeploymentResult] = None,
    ) -> DeploymentResult:
        logger.debug("Deployment failed", exc_info=True)
        message = str(error) or type(error).__name__
        log.extend(["Deployment failed.", message])
        self._emit(DeployEvent.FAILED, local_root, message=message)
        if result is None:
            return DeploymentResult(succeeded=False, log=log)
        result.succeeded = False
        result.log = log
        return result

    def _run(
        self, target: DeploymentTarget, mode: DeployMode, concurrency_limit: int
    ) -> DeploymentResult:
        local_root = target.local_root
        log: list[str] = [f"Deploying {local_root} to {target.remote_path} ({mode.label})"]

        try:
            if mode.uses_ignore_rules:
                ignore_filter = IgnoreFilter.for_root(local_root, self.ignore_patterns)
            else:
                # Version control already excludes what it does not track
                ignore_filter = IgnoreFilter.compile()
            previous: Optional[DeploymentSnapshot] = None
            if mode == DeployMode.CHANGED_ONLY:
                previous = self.state.get(local_root)
            resolved = self.resolver.resolve(mode, target, ignore_filter, previous)
        except ResolveError:
            raise
        except Exception as e:
            return self._failed(local_root, e, log)

        for warning in resolved.warnings:
            logger.warning(warning)
            log.append(f"WARNING: {warning}")

        total = len(resolved.records)
        self._emit(
            DeployEvent.STARTED,
            local_root,
            total=total,
            message=f"Deploying {format_count(total)} to {target.remote_path}",
        )

        completed = 0
        failed = 0

        def on_progress(local_path: Path, remote_path: str, error: Optional[str]) -> None:
            nonlocal completed, failed
            completed += 1
            if error is not None:
                failed += 1
            self._emit(
                DeployEvent.PROGRESS,
                local_root,
                total=total,
                completed=completed,
                failed=failed,
                local_path=local_path,
                remote_path=remote_path,
                error=error,
                message=(
                    f"Failed to deploy {local_path}"
                    if error
                    else f"Deployed {local_path}"
                ),
            )

        try:
            result = self.coordinator.transfer(
                resolved.records, concurrency_limit, on_progress
            )
        except Exception as e:
            return self._failed(local_root, e, log)

        result.log = log + result.log
        result.warnings = list(resolved.warnings)

        if not result.succeeded:
            summary = (
                f"Deployment failed: {len(result.failed)} of "
                f"{format_count(result.attempted)} could not be deployed."
            )
            result.log.append(summary)
            self._emit(
                DeployEvent.FAILED,
                local_root,
                total=total,
                completed=completed,
                failed=failed,
                message=summary,
            )
            return result

        if mode == DeployMode.CHANGED_ONLY and resolved.snapshot is not None:
            try:
                self._save_snapshot(target, resolved, ignore_filter, result)
            except Exception as e:
                result.log.append("Unable to save deployment state.")
                return self._failed(local_root, e, result.log, result)

        if result.nothing_to_deploy:
            summary = "Nothing to deploy."
        else:
            summary = f"Deployment finished: {format_count(result.attempted)} deployed."
        result.log.append(summary)
        self._emit(
            DeployEvent.FINISHED,
            local_root,
            total=total,
            completed=completed,
            message=summary,
        )
        return result

    def _save_snapshot(
        self,
        target: DeploymentTarget,
        resolved: ResolveResult,
        ignore_filter: IgnoreFilter,
        result: DeploymentResult,
    ) -> None:
        """Persist the snapshot of a successful changed-only run.

        After uploads the remote is listed again so the snapshot holds the
        post-upload remote timestamps.
        """
        snapshot = resolved.snapshot or {}
        if resolved.records:
            try:
                snapshot = RemoteStatScanner(self.remote).scan(
                    target.local_root, target.remote_path, ignore_filter
                )
            except RemoteListingError as e:
                warning = f"Unable to refresh remote timestamps after deployment: {e}"
                logger.warning(warning)
                result.warnings.append(warning)
                result.log.append(f"WARNING: {warning}")
        self.state.set(target.local_root, snapshot)
