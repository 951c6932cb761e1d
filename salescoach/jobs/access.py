"""Per-job bearer token check."""

from __future__ import annotations

import secrets

from .models import Job
from .store import JobStore


class JobNotFoundError(LookupError):
    """The job id is unknown or the job has been evicted."""


class JobAccessDeniedError(PermissionError):
    """The job exists but the presented token does not match."""


def authorize_job(store: JobStore, job_id: str, token: str | None) -> Job:
    """Return the job only when ``token`` equals its access token."""

    job = store.get(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    if not token or not secrets.compare_digest(token.encode("utf-8"), job.access_token.encode("utf-8")):
        raise JobAccessDeniedError(job_id)
    return job


__all__ = ["JobAccessDeniedError", "JobNotFoundError", "authorize_job"]
