"""Tests for concurrent file transfer."""

from pathlib import Path

import pytest

from pydeploy.deploy.resolver import ChangeRecord
from pydeploy.deploy.transfer import (
    DeploymentResult,
    TransferCoordinator,
    TransferOutcome,
    format_outcome,
)

from .conftest import FakeRemote


def _records(count: int) -> list[ChangeRecord]:
    return [
        ChangeRecord(local_path=Path(f"/ws/f{i}.txt"), remote_path=f"/home/dev/f{i}.txt")
        for i in range(count)
    ]


class TestTransferCoordinator:
    """Tests for TransferCoordinator."""

    @pytest.mark.parametrize("limit", [1, 5, 100])
    def test_concurrency_is_bounded(self, limit):
        remote = FakeRemote(delay=0.002)
        records = _records(250)

        result = TransferCoordinator(remote).transfer(records, concurrency_limit=limit)

        assert result.succeeded
        assert result.attempted == 250
        assert len(remote.put_calls) == 250
        assert 1 <= remote.max_in_flight <= limit

    def test_single_worker_is_sequential(self):
        remote = FakeRemote(delay=0.001)
        TransferCoordinator(remote).transfer(_records(10), concurrency_limit=1)
        assert remote.max_in_flight == 1

    def test_partial_failure(self):
        """One failure does not stop the remaining transfers."""
        remote = FakeRemote()
        records = _records(10)
        remote.fail_paths.add(records[2].remote_path)

        result = TransferCoordinator(remote).transfer(records, concurrency_limit=2)

        assert result.succeeded is False
        assert result.attempted == 10
        assert len(result.failed) == 1
        assert result.failed[0].remote_path == "/home/dev/f2.txt"
        assert "Permission denied" in result.failed[0].error
        assert len(remote.put_calls) == 10
        assert sum(line.startswith("SUCCESS:") for line in result.log) == 9
        assert sum(line.startswith("FAILED:") for line in result.log) == 1

    def test_progress_called_once_per_record(self):
        remote = FakeRemote()
        records = _records(7)
        remote.fail_paths.add(records[0].remote_path)
        calls = []

        TransferCoordinator(remote).transfer(
            records,
            concurrency_limit=3,
            on_progress=lambda local, target, error: calls.append((target, error)),
        )

        assert sorted(target for target, _ in calls) == sorted(
            r.remote_path for r in records
        )
        errors = [error for _, error in calls if error is not None]
        assert len(errors) == 1

    def test_failing_progress_callback_ignored(self):
        def explode(*args):
            raise RuntimeError("display closed")

        result = TransferCoordinator(FakeRemote()).transfer(
            _records(3), on_progress=explode
        )

        assert result.succeeded
        assert result.attempted == 3

    def test_empty_records(self):
        remote = FakeRemote()
        result = TransferCoordinator(remote).transfer([])

        assert result.succeeded
        assert result.attempted == 0
        assert result.nothing_to_deploy
        assert remote.put_calls == []

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            TransferCoordinator(FakeRemote()).transfer(_records(1), concurrency_limit=0)


class TestDeploymentResult:
    def test_nothing_to_deploy_requires_success(self):
        assert DeploymentResult(succeeded=True).nothing_to_deploy
        assert not DeploymentResult(succeeded=False).nothing_to_deploy
        assert not DeploymentResult(succeeded=True, attempted=2).nothing_to_deploy

    def test_format_outcome(self):
        ok = TransferOutcome(Path("/ws/a"), "/r/a", succeeded=True)
        bad = TransferOutcome(Path("/ws/b"), "/r/b", succeeded=False, error="denied")

        assert format_outcome(ok) == f"SUCCESS: {Path('/ws/a')} -> /r/a"
        assert format_outcome(bad) == f"FAILED: {Path('/ws/b')} -> /r/b: denied"
