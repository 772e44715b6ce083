"""Deployment engine for pydeploy - change resolution and concurrent upload."""

from .controller import DeploymentController
from .ignore import IGNORE_FILE_NAME, IgnoreFilter
from .modes import DeployMode
from .progress import DeployEvent, DeployProgressInfo, DeployProgressTracker
from .resolver import ChangeRecord, ChangeSetResolver, ResolveResult
from .scanner import DirectoryScanner, LocalFile, RemoteStatScanner
from .state import (
    DeploymentSnapshot,
    DeploymentStateStore,
    DeploymentTarget,
    DeploymentTargetStore,
    FileStat,
)
from .transfer import DeploymentResult, TransferCoordinator, TransferOutcome

__all__ = [
    "DeploymentController",
    "DeployMode",
    "IgnoreFilter",
    "IGNORE_FILE_NAME",
    "DeployEvent",
    "DeployProgressInfo",
    "DeployProgressTracker",
    "ChangeRecord",
    "ChangeSetResolver",
    "ResolveResult",
    "DirectoryScanner",
    "LocalFile",
    "RemoteStatScanner",
    "DeploymentSnapshot",
    "DeploymentStateStore",
    "DeploymentTarget",
    "DeploymentTargetStore",
    "FileStat",
    "DeploymentResult",
    "TransferCoordinator",
    "TransferOutcome",
]
