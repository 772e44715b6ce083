"""Persistent deployment state.

Two maps outlive a single deployment, both keyed by the resolved local
workspace root:

* the deployment target (remote directory) of each root, and
* the snapshot of per-file local/remote timestamps captured after the last
  successful incremental deployment.

Read-modify-write of these maps is not atomic across processes. At most one
deployment per root is expected to run at a time; the last writer wins.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import UnsupportedTargetError
from ..storage import Storage
from ..utils import is_absolute_remote_path

logger = logging.getLogger(__name__)

DEPLOYMENT_KEY = "deployment"
DEPLOYMENT_STATS_KEY = "deploymentStats"


def root_key(local_root: Path) -> str:
    """Storage key for a local workspace root."""
    return str(Path(local_root).resolve())


@dataclass
class DeploymentTarget:
    """Remote directory a local workspace root deploys to."""

    local_root: Path
    remote_path: str

    @property
    def is_supported(self) -> bool:
        """Whether the remote path is an absolute directory path."""
        return is_absolute_remote_path(self.remote_path)


@dataclass
class FileStat:
    """Timestamps of one file as seen during an incremental deployment."""

    relative_path: str
    """Path relative to the local root"""

    local_ts: Optional[float] = None
    """Local modification time, None if it could not be read"""

    remote_ts: Optional[str] = None
    """Remote modification time as printed by the listing command"""

    def to_dict(self) -> dict:
        return {
            "path": self.relative_path,
            "localTs": self.local_ts,
            "remoteTs": self.remote_ts,
        }

    @classmethod
    def from_dict(cls, relative_path: str, data: dict) -> "FileStat":
        return cls(
            relative_path=data.get("path", relative_path),
            local_ts=data.get("localTs"),
            remote_ts=data.get("remoteTs"),
        )

    def differs_from(self, other: "FileStat") -> bool:
        """Check whether either timestamp moved relative to ``other``."""
        return self.local_ts != other.local_ts or self.remote_ts != other.remote_ts


DeploymentSnapshot = dict[str, FileStat]
"""Mapping of relative path to FileStat"""


class DeploymentTargetStore:
    """Persists the deployment target of each local root."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def _all(self) -> dict[str, str]:
        return dict(self.storage.get(DEPLOYMENT_KEY) or {})

    def get(self, local_root: Path) -> Optional[DeploymentTarget]:
        """Return the target configured for ``local_root``, if any."""
        remote_path = self._all().get(root_key(local_root))
        if not remote_path:
            return None
        return DeploymentTarget(local_root=Path(local_root), remote_path=remote_path)

    def set(self, local_root: Path, remote_path: str) -> DeploymentTarget:
        """Configure the remote directory ``local_root`` deploys to.

        Raises:
            UnsupportedTargetError: If ``remote_path`` is not absolute
        """
        if not is_absolute_remote_path(remote_path):
            raise UnsupportedTargetError(remote_path)
        targets = self._all()
        targets[root_key(local_root)] = remote_path
        self.storage.set(DEPLOYMENT_KEY, targets)
        logger.debug(f"Deployment location for {local_root} set to {remote_path}")
        return DeploymentTarget(local_root=Path(local_root), remote_path=remote_path)


class DeploymentStateStore:
    """Persists the incremental-deployment snapshot of each local root."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def _all(self) -> dict[str, dict]:
        return dict(self.storage.get(DEPLOYMENT_STATS_KEY) or {})

    def get(self, local_root: Path) -> DeploymentSnapshot:
        """Return the last snapshot for ``local_root`` (empty if none)."""
        raw = self._all().get(root_key(local_root)) or {}
        return {
            relative_path: FileStat.from_dict(relative_path, data)
            for relative_path, data in raw.items()
        }

    def set(self, local_root: Path, snapshot: DeploymentSnapshot) -> None:
        """Replace the snapshot for ``local_root``."""
        all_stats = self._all()
        all_stats[root_key(local_root)] = {
            relative_path: stat.to_dict() for relative_path, stat in snapshot.items()
        }
        self.storage.set(DEPLOYMENT_STATS_KEY, all_stats)
        logger.debug(f"Saved deployment snapshot with {len(snapshot)} file(s)")

    def clear(self, local_root: Path) -> bool:
        """Forget the snapshot for ``local_root``.

        Returns:
            True if a snapshot was removed, False if none existed
        """
        all_stats = self._all()
        if all_stats.pop(root_key(local_root), None) is None:
            return False
        self.storage.set(DEPLOYMENT_STATS_KEY, all_stats)
        return True
