"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

JOBS_CREATED = Counter(
    "coaching_jobs_created_total",
    "Number of coaching jobs accepted through /start",
)

JOB_TRANSITIONS = Counter(
    "coaching_job_transitions_total",
    "Job lifecycle transitions by target status",
    ("status",),
)

JOBS_EVICTED = Counter(
    "coaching_jobs_evicted_total",
    "Number of jobs removed from the store after their TTL",
)

JOBS_IN_STORE = Gauge(
    "coaching_jobs_in_store",
    "Jobs currently held in memory",
)

TRANSCRIPTION_POLLS = Counter(
    "transcription_polls_total",
    "Rev.ai job status polls by reported provider status",
    ("provider_status",),
)

ANALYSIS_ATTEMPTS = Counter(
    "analysis_attempts_total",
    "Gemini generate calls by outcome",
    ("outcome",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    observed_duration = max(duration_seconds, 0.0)

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=str(status_code),
    ).inc()
    REQUEST_LATENCY.labels(method=safe_method, route=safe_route).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(method=safe_method, route=safe_route).inc()


def record_job_created() -> None:
    JOBS_CREATED.inc()


def record_transition(status: str) -> None:
    JOB_TRANSITIONS.labels(status=status).inc()


def record_eviction() -> None:
    JOBS_EVICTED.inc()


def set_jobs_in_store(count: int) -> None:
    JOBS_IN_STORE.set(count)


def record_transcription_poll(provider_status: str | None) -> None:
    TRANSCRIPTION_POLLS.labels(provider_status=provider_status or "unknown").inc()


def record_analysis_attempt(outcome: str) -> None:
    ANALYSIS_ATTEMPTS.labels(outcome=outcome).inc()
