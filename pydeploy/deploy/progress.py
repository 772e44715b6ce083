"""Deployment lifecycle events.

The controller reports what it is doing by emitting events to subscribed
listeners (CLI progress display, logs, tests) instead of toggling shared
status flags.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DeployEvent(str, Enum):
    """Lifecycle events of a deployment run."""

    STARTED = "started"
    """Change set resolved; ``total`` files are about to be sent"""

    PROGRESS = "progress"
    """One file transfer finished (successfully or not)"""

    FINISHED = "finished"
    """Run ended and every transfer succeeded"""

    FAILED = "failed"
    """Run ended with failures or aborted"""


@dataclass
class DeployProgressInfo:
    """Payload sent with each lifecycle event."""

    event: DeployEvent
    local_root: Path
    total: int = 0
    completed: int = 0
    failed: int = 0
    local_path: Optional[Path] = None
    remote_path: Optional[str] = None
    error: Optional[str] = None
    message: str = ""


DeployListener = Callable[[DeployProgressInfo], None]


class DeployProgressTracker:
    """Fans lifecycle events out to listeners.

    A listener that raises is logged and skipped; it never interrupts the
    deployment.
    """

    def __init__(self, callback: Optional[DeployListener] = None):
        self._listeners: list[DeployListener] = []
        if callback is not None:
            self.subscribe(callback)

    def subscribe(self, listener: DeployListener) -> Callable[[], None]:
        """Register ``listener``.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, info: DeployProgressInfo) -> None:
        for listener in list(self._listeners):
            try:
                listener(info)
            except Exception as e:
                logger.warning(f"Deploy listener failed on {info.event.value}: {e}")
