"""CLI progress display for deployments.

This module provides a Rich-based progress bar driven by the lifecycle
events of :class:`~pydeploy.deploy.DeployProgressTracker`.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .deploy.progress import DeployEvent, DeployProgressInfo, DeployProgressTracker


class DeployProgressDisplay:
    """Rich-based progress display for deployments.

    Use as a context manager around ``controller.deploy`` after subscribing
    :meth:`handle_event` to the controller's tracker.
    """

    def __init__(self) -> None:
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def __enter__(self) -> "DeployProgressDisplay":
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            transient=True,
        )
        self._progress.start()
        return self

    def __exit__(self, *exc_info) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task = None

    def attach(self, tracker: DeployProgressTracker):
        """Subscribe to ``tracker``; returns the unsubscribe function."""
        return tracker.subscribe(self.handle_event)

    def handle_event(self, info: DeployProgressInfo) -> None:
        """Update the display for one lifecycle event."""
        if self._progress is None:
            return

        if info.event == DeployEvent.STARTED:
            self._task = self._progress.add_task(info.message, total=info.total)

        elif info.event == DeployEvent.PROGRESS:
            if self._task is not None:
                self._progress.update(
                    self._task,
                    completed=info.completed,
                    description=info.message,
                )

        elif info.event in (DeployEvent.FINISHED, DeployEvent.FAILED):
            if self._task is not None:
                self._progress.update(self._task, description=info.message)
