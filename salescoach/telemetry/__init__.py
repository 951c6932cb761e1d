"""Telemetry helpers and metrics."""

from .metrics import (
    ANALYSIS_ATTEMPTS,
    ERROR_COUNTER,
    JOB_TRANSITIONS,
    JOBS_CREATED,
    JOBS_EVICTED,
    JOBS_IN_STORE,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    TRANSCRIPTION_POLLS,
    observe_request,
    record_analysis_attempt,
    record_eviction,
    record_job_created,
    record_transcription_poll,
    record_transition,
    set_jobs_in_store,
)

__all__ = [
    "ANALYSIS_ATTEMPTS",
    "ERROR_COUNTER",
    "JOB_TRANSITIONS",
    "JOBS_CREATED",
    "JOBS_EVICTED",
    "JOBS_IN_STORE",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "TRANSCRIPTION_POLLS",
    "observe_request",
    "record_analysis_attempt",
    "record_eviction",
    "record_job_created",
    "record_transcription_poll",
    "record_transition",
    "set_jobs_in_store",
]
