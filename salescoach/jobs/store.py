"""In-memory job table with per-job TTL eviction."""

from __future__ import annotations

import asyncio
import logging
import secrets
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from uuid import uuid4

from salescoach.services.storage import remove_file
from salescoach.telemetry import record_eviction, record_job_created, set_jobs_in_store

from .models import Job

logger = logging.getLogger("salescoach.jobs")

DEFAULT_TTL_SECONDS = 24 * 60 * 60
_TOKEN_BYTES = 32


class JobStore:
    """Owns every live job and the temp file each one may still hold.

    All methods are synchronous so a caller can read a job, check a guard and
    write the result without the event loop switching tasks in between.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        self._ttl_seconds = ttl_seconds
        self._jobs: dict[str, Job] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def create(
        self,
        *,
        resource_path: Path | None = None,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> Job:
        """Insert a new job and schedule its eviction.

        Must be called from inside the running event loop.
        """

        loop = asyncio.get_running_loop()
        job = Job(
            job_id=str(uuid4()),
            access_token=secrets.token_hex(_TOKEN_BYTES),
            filename=filename,
            content_type=content_type,
            resource_path=resource_path,
        )
        self._jobs[job.job_id] = job
        self._timers[job.job_id] = loop.call_later(self._ttl_seconds, self.evict, job.job_id)

        record_job_created()
        set_jobs_in_store(len(self._jobs))
        logger.info("job=%s created file=%s ttl=%ss", job.job_id, filename, self._ttl_seconds)
        return job

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def evict(self, job_id: str) -> bool:
        """Remove the job whatever its status and release its temp file."""

        job = self._jobs.pop(job_id, None)
        timer = self._timers.pop(job_id, None)
        if timer is not None:
            timer.cancel()
        if job is None:
            return False

        self.release_resource(job)
        record_eviction()
        set_jobs_in_store(len(self._jobs))
        logger.info("job=%s evicted, cleaned up (status=%s)", job_id, job.status.value)
        return True

    def release_resource(self, job: Job) -> None:
        """Delete the job's temp file, if still held, and clear the reference."""

        path, job.resource_path = job.resource_path, None
        if path is not None and remove_file(path):
            logger.info("job=%s removed temp file %s", job.job_id, path.name)

    @contextmanager
    def resource_scope(self, job: Job) -> Iterator[Path | None]:
        """Lend the job's temp file to a stage; release it on every exit path."""

        try:
            yield job.resource_path
        finally:
            self.release_resource(job)

    def close(self) -> None:
        """Evict everything; used on application shutdown."""

        for job_id in list(self._jobs):
            self.evict(job_id)


__all__ = ["DEFAULT_TTL_SECONDS", "JobStore"]
