"""Tests for the background task runner."""

import asyncio

import pytest

from revgeo.core.background import InProcessTaskRunner, JobStatus


class TestInProcessTaskRunner:
    """Tests for InProcessTaskRunner."""

    async def test_submit_and_complete(self) -> None:
        runner = InProcessTaskRunner()
        result: list[str] = []

        async def simple_task() -> None:
            result.append("done")

        job_id = runner.submit_task(simple_task())
        await runner.wait_all()

        assert runner.get_status(job_id) == JobStatus.COMPLETED
        assert result == ["done"]

    async def test_failed_task_is_recorded_not_raised(self) -> None:
        runner = InProcessTaskRunner()

        async def failing_task() -> None:
            msg = "connection reset"
            raise ConnectionError(msg)

        job_id = runner.submit_task(failing_task(), name="cache-touch")
        await runner.wait_all()

        assert runner.get_status(job_id) == JobStatus.FAILED

    async def test_unknown_job_raises(self) -> None:
        runner = InProcessTaskRunner()
        with pytest.raises(KeyError):
            runner.get_status("nonexistent")

    async def test_pending_count_tracks_in_flight_tasks(self) -> None:
        runner = InProcessTaskRunner()
        release = asyncio.Event()

        async def blocked() -> None:
            await release.wait()

        job_id = runner.submit_task(blocked())
        assert runner.pending_count == 1
        assert runner.get_status(job_id) in (JobStatus.PENDING, JobStatus.RUNNING)

        release.set()
        await runner.wait_all()
        assert runner.pending_count == 0
        assert runner.get_status(job_id) == JobStatus.COMPLETED

    async def test_multiple_tasks(self) -> None:
        runner = InProcessTaskRunner()
        results: list[int] = []

        async def task(n: int) -> None:
            results.append(n)

        job_ids = [runner.submit_task(task(i)) for i in range(5)]
        await runner.wait_all()

        assert all(runner.get_status(job_id) == JobStatus.COMPLETED for job_id in job_ids)
        assert sorted(results) == [0, 1, 2, 3, 4]

    async def test_job_history_is_trimmed(self) -> None:
        runner = InProcessTaskRunner(max_job_history=2)

        async def noop() -> None:
            return None

        job_ids = [runner.submit_task(noop()) for _ in range(4)]
        await runner.wait_all()

        with pytest.raises(KeyError):
            runner.get_status(job_ids[0])
        assert runner.get_status(job_ids[-1]) == JobStatus.COMPLETED

    async def test_wait_all_with_no_tasks(self) -> None:
        await InProcessTaskRunner().wait_all()
