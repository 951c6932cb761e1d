"""Adapter contracts the job orchestrator depends on.

Kept apart from the concrete Rev.ai/Gemini implementations so tests and the
orchestrator can swap in fakes without importing HTTP clients.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Protocol, Sequence

from salescoach.services.prompt_builder import ReferenceText
from salescoach.services.response_contract import CoachingReport
from salescoach.services.transcribe import PollTick


class Transcriber(Protocol):
    """Long-running speech-to-text operation resolving to plain text."""

    async def transcribe(
        self,
        media_path: Path,
        *,
        content_type: str | None = None,
        deadline_seconds: float | None = None,
        on_poll: Callable[[PollTick], None] | None = None,
    ) -> str:
        """Return the transcript or raise ``TranscriptionError``."""


class Analyzer(Protocol):
    """Transcript + books to structured coaching report."""

    async def analyze(self, transcript: str, references: Sequence[ReferenceText]) -> CoachingReport:
        """Return the report or raise ``AnalysisError``."""


__all__ = ["Analyzer", "PollTick", "ReferenceText", "Transcriber"]
