"""Shared fakes and fixtures for the coaching job tests."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
import sys
from typing import Any, Callable, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from salescoach.jobs.orchestrator import JobOrchestrator  # noqa: E402
from salescoach.jobs.store import JobStore  # noqa: E402
from salescoach.services.prompt_builder import ReferenceText  # noqa: E402
from salescoach.services.response_contract import CoachingReport  # noqa: E402
from salescoach.services.transcribe import PollTick  # noqa: E402

SAMPLE_TRANSCRIPT = (
    "Seller: Thanks for taking the call, what made you look at new CRM tools?\n"
    "Buyer: Our team keeps losing track of follow-ups."
)

SAMPLE_REPORT: dict[str, Any] = {
    "intro": "A friendly call that stayed on features for too long.",
    "review": {
        "steps": {
            "opening": "Warm opening ('Thanks for taking the call').",
            "discovery": "Only one open question was asked.",
            "demonstration": "The demo did not tie back to lost follow-ups.",
            "closing": "No next step was agreed.",
        },
        "skills": {
            "listening": "Good: the buyer's pain was repeated back.",
            "questioning": "Book X, ch. 2: ask about impact, e.g. 'What does a lost follow-up cost you?'",
            "objectionHandling": "No objections surfaced.",
            "clarity": "Clear and concise.",
        },
        "opportunitiesMissed": ["Ask who else is involved in the decision."],
    },
    "advice": {
        "newHabit": "Close every call with a dated next step.",
        "dropHabit": "Stop demoing before the pain is quantified.",
    },
    "referencesUsed": ["Book X"],
}


class FakeTranscriber:
    """Transcription adapter double; optionally blocks until ``release`` is set.

    ``release`` is a ``threading.Event`` so tests driving the app through
    ``TestClient`` (which runs the event loop in another thread) can unblock it.
    """

    def __init__(
        self,
        transcript: str = SAMPLE_TRANSCRIPT,
        *,
        error: Exception | None = None,
        release: threading.Event | None = None,
    ) -> None:
        self.transcript = transcript
        self.error = error
        self.release = release
        self.started = threading.Event()
        self.calls: list[Path] = []
        self.file_existed: list[bool] = []
        self.deadlines: list[float | None] = []

    async def transcribe(
        self,
        media_path: Path,
        *,
        content_type: str | None = None,
        deadline_seconds: float | None = None,
        on_poll: Callable[[PollTick], None] | None = None,
    ) -> str:
        self.calls.append(media_path)
        self.file_existed.append(media_path.exists())
        self.deadlines.append(deadline_seconds)
        self.started.set()
        if on_poll is not None:
            on_poll(PollTick("rev-job-1", "in_progress", 0.0))
        if self.release is not None:
            await asyncio.to_thread(self.release.wait, 5.0)
        if self.error is not None:
            raise self.error
        return self.transcript


class FakeAnalyzer:
    """Analysis adapter double recording every call."""

    def __init__(
        self,
        report: dict[str, Any] | None = None,
        *,
        error: Exception | None = None,
        release: threading.Event | None = None,
    ) -> None:
        self.report = report or SAMPLE_REPORT
        self.error = error
        self.release = release
        self.calls: list[tuple[str, list[ReferenceText]]] = []

    async def analyze(self, transcript: str, references: Sequence[ReferenceText]) -> CoachingReport:
        self.calls.append((transcript, list(references)))
        if self.release is not None:
            await asyncio.to_thread(self.release.wait, 5.0)
        if self.error is not None:
            raise self.error
        return CoachingReport.model_validate(self.report)


@pytest.fixture
def library(tmp_path: Path) -> Path:
    root = tmp_path / "books"
    root.mkdir()
    (root / "book_x.txt").write_text(
        "Chapter 2. Ask about the impact of the problem before presenting.",
        encoding="utf-8",
    )
    (root / "book_y.txt").write_text("Chapter 1. Always agree on a next step.", encoding="utf-8")
    return root


@pytest.fixture
def media_file(tmp_path: Path) -> Path:
    uploads = tmp_path / "uploads"
    uploads.mkdir()
    path = uploads / "call.mp3"
    path.write_bytes(b"ID3fake-mp3-bytes")
    return path


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def make_orchestrator(library: Path) -> Callable[..., JobOrchestrator]:
    def factory(
        transcriber: Any,
        analyzer: Any,
        *,
        ttl_seconds: float = 60.0,
        deadline_seconds: float | None = 900.0,
    ) -> JobOrchestrator:
        return JobOrchestrator(
            JobStore(ttl_seconds=ttl_seconds),
            transcriber,
            analyzer,
            library_root=library,
            transcription_deadline_seconds=deadline_seconds,
        )

    return factory
