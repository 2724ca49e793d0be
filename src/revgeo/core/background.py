"""Background task runner abstraction.

Provides a protocol for submitting and tracking detached tasks, with an
in-process asyncio implementation. The cache store uses it for
fire-and-forget recency updates that must never block or fail a read.
"""

import asyncio
import enum
import uuid
from collections.abc import Coroutine
from typing import Any, Protocol

from loguru import logger

_MAX_JOB_HISTORY = 10_000


class JobStatus(enum.StrEnum):
    """Status of a background job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BackgroundTaskRunner(Protocol):
    """Protocol for background task execution."""

    def submit_task(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> str:
        """Submit an async task for detached execution.

        Args:
            coro: The coroutine to execute.
            name: Optional label used in log messages.

        Returns:
            A job ID string for tracking.
        """
        ...

    def get_status(self, job_id: str) -> JobStatus:
        """Get the current status of a background job."""
        ...

    async def wait_all(self) -> None:
        """Wait for every in-flight task to finish."""
        ...


class InProcessTaskRunner:
    """In-process background task runner using asyncio.

    Tasks run on the caller's event loop via ``asyncio.create_task()``.
    Strong references are held until each task finishes so detached tasks
    are not garbage collected mid-flight. Failures are logged and recorded
    as FAILED; they never propagate to the submitter.
    """

    def __init__(self, max_job_history: int = _MAX_JOB_HISTORY) -> None:
        self._jobs: dict[str, JobStatus] = {}
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._max_job_history = max_job_history

    def submit_task(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> str:
        """Submit an async task for detached execution.

        Args:
            coro: The coroutine to execute.
            name: Optional label used in log messages.

        Returns:
            A job ID string for tracking.
        """
        job_id = str(uuid.uuid4())
        label = name or job_id
        self._jobs[job_id] = JobStatus.PENDING

        async def _run() -> None:
            self._jobs[job_id] = JobStatus.RUNNING
            try:
                await coro
                self._jobs[job_id] = JobStatus.COMPLETED
            except Exception as e:
                self._jobs[job_id] = JobStatus.FAILED
                logger.debug(f"Background task {label} failed: {e}")

        task = asyncio.create_task(_run(), name=label)
        self._tasks[job_id] = task
        task.add_done_callback(lambda _: self._forget(job_id))
        return job_id

    def _forget(self, job_id: str) -> None:
        """Drop the finished task and trim the oldest finished statuses."""
        self._tasks.pop(job_id, None)
        while len(self._jobs) > self._max_job_history:
            oldest = next(iter(self._jobs))
            if self._jobs[oldest] in (JobStatus.PENDING, JobStatus.RUNNING):
                break
            del self._jobs[oldest]

    def get_status(self, job_id: str) -> JobStatus:
        """Get the current status of a background job.

        Args:
            job_id: The job ID returned by submit_task.

        Returns:
            The current job status.

        Raises:
            KeyError: If the job ID is not found.
        """
        return self._jobs[job_id]

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def wait_all(self) -> None:
        """Wait for every in-flight task to finish (used on shutdown and in tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)


# Singleton instance for the application
task_runner = InProcessTaskRunner()
