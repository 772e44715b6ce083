"""Concurrent file transfer with per-file outcomes."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from ..remote import RemoteAccess
from ..utils import DEFAULT_CONCURRENCY
from .resolver import ChangeRecord

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Path, str, Optional[str]], None]
"""Called as ``on_progress(local_path, remote_path, error_or_None)``"""


@dataclass
class TransferOutcome:
    """Result of one file transfer attempt."""

    local_path: Path
    remote_path: str
    succeeded: bool
    error: Optional[str] = None


@dataclass
class DeploymentResult:
    """Aggregate result of a deployment run."""

    succeeded: bool
    attempted: int = 0
    failed: list[TransferOutcome] = field(default_factory=list)
    log: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def nothing_to_deploy(self) -> bool:
        """True when the run succeeded without sending any file."""
        return self.succeeded and self.attempted == 0


def format_outcome(outcome: TransferOutcome) -> str:
    """Format the log line for a transfer outcome."""
    if outcome.succeeded:
        return f"SUCCESS: {outcome.local_path} -> {outcome.remote_path}"
    return f"FAILED: {outcome.local_path} -> {outcome.remote_path}: {outcome.error}"


class TransferCoordinator:
    """Sends change records to the remote through a bounded worker pool.

    At most ``concurrency_limit`` uploads run at once; the remaining records
    wait in submission order. A failed upload never cancels the others.
    """

    def __init__(self, remote: RemoteAccess):
        """Initialize the coordinator.

        Args:
            remote: Remote access provider performing the uploads
        """
        self.remote = remote

    def _transfer_one(self, record: ChangeRecord) -> TransferOutcome:
        start = time.time()
        try:
            self.remote.put_file(record.local_path, record.remote_path)
        except Exception as e:
            logger.debug(
                f"Failed {record.local_path} in {time.time() - start:.2f}s: {e}"
            )
            return TransferOutcome(
                local_path=record.local_path,
                remote_path=record.remote_path,
                succeeded=False,
                error=str(e) or type(e).__name__,
            )
        logger.debug(f"Completed {record.local_path} in {time.time() - start:.2f}s")
        return TransferOutcome(
            local_path=record.local_path,
            remote_path=record.remote_path,
            succeeded=True,
        )

    def transfer(
        self,
        records: list[ChangeRecord],
        concurrency_limit: int = DEFAULT_CONCURRENCY,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DeploymentResult:
        """Transfer ``records`` and collect the outcomes.

        Args:
            records: Files to send
            concurrency_limit: Maximum number of simultaneous uploads
            on_progress: Called after each attempt, in completion order

        Returns:
            DeploymentResult; ``succeeded`` is False if any file failed

        Raises:
            ValueError: If ``concurrency_limit`` is less than 1
        """
        if concurrency_limit < 1:
            raise ValueError("Concurrency limit must be at least 1")

        result = DeploymentResult(succeeded=True)
        if not records:
            return result

        logger.debug(
            f"Transferring {len(records)} file(s) with {concurrency_limit} workers"
        )

        with ThreadPoolExecutor(max_workers=concurrency_limit) as executor:
            futures = [executor.submit(self._transfer_one, r) for r in records]

            for future in as_completed(futures):
                outcome = future.result()
                result.attempted += 1
                if not outcome.succeeded:
                    result.failed.append(outcome)
                result.log.append(format_outcome(outcome))

                if on_progress is not None:
                    try:
                        on_progress(
                            outcome.local_path, outcome.remote_path, outcome.error
                        )
                    except Exception as e:
                        logger.warning(f"Progress callback failed: {e}")

        result.succeeded = not result.failed
        return result
