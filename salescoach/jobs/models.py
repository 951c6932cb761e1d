"""Job records and the lifecycle state machine they move through.

Every coaching job walks the same forward-only lattice::

    created -> transcribing -> transcribed -> analysis_started -> finished
        \\            \\              \\                  \\
         `------------`--------------`------------------`--> error

``Job.advance`` is the only place a status is written, so the lattice is
enforced in one spot regardless of which pipeline stage drives the change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Final


class JobStatus(str, Enum):
    """Closed set of lifecycle states exposed through the status endpoint."""

    CREATED = "created"
    TRANSCRIBING = "transcribing"
    TRANSCRIBED = "transcribed"
    ANALYSIS_STARTED = "analysis_started"
    FINISHED = "finished"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: Final[frozenset[JobStatus]] = frozenset(
    {JobStatus.FINISHED, JobStatus.ERROR}
)

ALLOWED_TRANSITIONS: Final[dict[JobStatus, frozenset[JobStatus]]] = {
    JobStatus.CREATED: frozenset({JobStatus.TRANSCRIBING, JobStatus.ERROR}),
    JobStatus.TRANSCRIBING: frozenset({JobStatus.TRANSCRIBED, JobStatus.ERROR}),
    JobStatus.TRANSCRIBED: frozenset({JobStatus.ANALYSIS_STARTED, JobStatus.ERROR}),
    JobStatus.ANALYSIS_STARTED: frozenset({JobStatus.FINISHED, JobStatus.ERROR}),
    JobStatus.FINISHED: frozenset(),
    JobStatus.ERROR: frozenset(),
}

# Statuses during which the caller may still replace the book selection.
SELECTION_OPEN_STATUSES: Final[frozenset[JobStatus]] = frozenset(
    {JobStatus.CREATED, JobStatus.TRANSCRIBING, JobStatus.TRANSCRIBED}
)

TRANSCRIPTION_FAILED_MESSAGE: Final[str] = "Transcription failed."
ANALYSIS_FAILED_MESSAGE: Final[str] = "An error occurred during AI analysis."


class InvalidTransitionError(RuntimeError):
    """Raised when a job is asked to move outside the lifecycle lattice."""


@dataclass(frozen=True)
class ReferenceDocument:
    """Book selected by the caller; ``locator`` points at its text file."""

    title: str
    locator: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """Mutable in-memory record for one upload-to-report unit of work."""

    job_id: str
    access_token: str = field(repr=False)
    filename: str | None = None
    content_type: str | None = None
    status: JobStatus = JobStatus.CREATED
    transcript: str | None = field(default=None, repr=False)
    selected_references: list[ReferenceDocument] = field(default_factory=list)
    report: dict[str, Any] | None = field(default=None, repr=False)
    error: str | None = None
    resource_path: Path | None = None
    created_at: datetime = field(default_factory=_utcnow)
    history: list[JobStatus] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def ready_for_analysis(self) -> bool:
        """Both inputs of the analysis stage are present."""

        return bool(self.transcript) and bool(self.selected_references)

    def advance(self, target: JobStatus) -> None:
        """Move to ``target`` if the lattice allows it, else raise."""

        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Job {self.job_id} cannot move from {self.status.value} to {target.value}"
            )
        self.status = target
        self.history.append(target)

    def complete_transcription(self, transcript: str) -> None:
        self.advance(JobStatus.TRANSCRIBED)
        self.transcript = transcript

    def finish(self, report: dict[str, Any]) -> None:
        """Store the report and drop the transcript in one step."""

        self.advance(JobStatus.FINISHED)
        self.report = report
        self.transcript = None

    def fail(self, message: str) -> None:
        self.advance(JobStatus.ERROR)
        self.error = message
        self.transcript = None


__all__ = [
    "ALLOWED_TRANSITIONS",
    "ANALYSIS_FAILED_MESSAGE",
    "InvalidTransitionError",
    "Job",
    "JobStatus",
    "ReferenceDocument",
    "SELECTION_OPEN_STATUSES",
    "TERMINAL_STATUSES",
    "TRANSCRIPTION_FAILED_MESSAGE",
]
