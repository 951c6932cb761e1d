"""Coaching job lifecycle: records, in-memory store, and access checks.

The orchestrator lives in ``salescoach.jobs.orchestrator`` and is imported
from there directly; it depends on the pipeline stages, which in turn use
the models defined here.
"""

from .access import JobAccessDeniedError, JobNotFoundError, authorize_job
from .models import (
    ANALYSIS_FAILED_MESSAGE,
    TRANSCRIPTION_FAILED_MESSAGE,
    InvalidTransitionError,
    Job,
    JobStatus,
    ReferenceDocument,
)
from .store import JobStore

__all__ = [
    "ANALYSIS_FAILED_MESSAGE",
    "TRANSCRIPTION_FAILED_MESSAGE",
    "InvalidTransitionError",
    "Job",
    "JobAccessDeniedError",
    "JobNotFoundError",
    "JobStatus",
    "JobStore",
    "ReferenceDocument",
    "authorize_job",
]
