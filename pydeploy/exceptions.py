"""Exceptions raised by pydeploy."""


class DeployError(Exception):
    """Base exception for all deployment errors."""


class DeployConfigError(DeployError):
    """A deployment cannot start because of its configuration."""


class NotConfiguredError(DeployConfigError):
    """No deployment target is configured for a local root."""

    def __init__(self, local_root: str):
        self.local_root = local_root
        super().__init__(
            f"Chosen location ({local_root}) is not configured for deployment."
        )


class UnsupportedTargetError(DeployConfigError):
    """The configured remote path is not an absolute remote directory."""

    def __init__(self, remote_path: str):
        self.remote_path = remote_path
        super().__init__(
            f"Unsupported deployment target '{remote_path}': "
            "the remote path must be an absolute directory (deploying to a "
            "library is no longer supported)."
        )


class UnsupportedModeError(DeployConfigError):
    """The requested deploy mode is not supported by the remote."""


class DeploymentInProgressError(DeployError):
    """Another deployment for the same local root is still running."""

    def __init__(self, local_root: str):
        self.local_root = local_root
        super().__init__(f"A deployment for {local_root} is already in progress.")


class ResolveError(DeployError):
    """The change set for a deployment could not be resolved."""


class NoRepositoryError(ResolveError):
    """The local root has no version-control repository."""

    def __init__(self, local_root: str):
        self.local_root = local_root
        super().__init__(f"No repository found for {local_root}")


class VersionControlError(DeployError):
    """The version-control tool failed or is unavailable."""


class RemoteCommandError(DeployError):
    """A command on the remote host could not be executed."""


class TransferError(DeployError):
    """A single file could not be transferred to the remote host."""


class RemoteListingError(RemoteCommandError):
    """The remote file listing failed or produced no output."""
