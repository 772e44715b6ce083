"""pydeploy - incremental deployment of local projects to remote hosts."""

from .exceptions import (
    DeployConfigError,
    DeployError,
    DeploymentInProgressError,
    NoRepositoryError,
    NotConfiguredError,
    RemoteCommandError,
    RemoteListingError,
    ResolveError,
    TransferError,
    UnsupportedModeError,
    UnsupportedTargetError,
    VersionControlError,
)
from .remote import CommandResult, SSHRemote
from .storage import JsonStorage
from .vcs import GitProvider

__all__ = [
    "CommandResult",
    "SSHRemote",
    "GitProvider",
    "JsonStorage",
    "DeployError",
    "DeployConfigError",
    "DeploymentInProgressError",
    "NoRepositoryError",
    "NotConfiguredError",
    "RemoteCommandError",
    "RemoteListingError",
    "ResolveError",
    "TransferError",
    "UnsupportedModeError",
    "UnsupportedTargetError",
    "VersionControlError",
]
