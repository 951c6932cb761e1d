"""Drive coaching jobs from upload to report.

The orchestrator owns the two background stages of a job:

1. transcription, started as soon as the upload is accepted;
2. analysis, started once the transcript *and* the book selection exist.

Stage two is a level-sensitive join: ``_try_start_analysis`` is called after
every event that could complete it (transcription finishing, books being
submitted) and re-checks the job's current state each time. The check and the
``analysis_started`` write happen in one synchronous call, with no ``await`` in
between, so on a single event loop two near-simultaneous triggers cannot both
pass the guard.

Every write that follows an ``await`` re-reads the job from the store first:
the job may have been evicted or failed while the stage was suspended.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Coroutine, Sequence

from salescoach.config.settings import settings
from salescoach.pipelines.coaching.analysis import get_coaching_analyzer
from salescoach.pipelines.coaching.references import load_reference_texts
from salescoach.pipelines.coaching.types import Analyzer, PollTick, Transcriber
from salescoach.services.transcribe import get_transcribe_service
from salescoach.telemetry import record_transition

from .models import (
    ANALYSIS_FAILED_MESSAGE,
    SELECTION_OPEN_STATUSES,
    TRANSCRIPTION_FAILED_MESSAGE,
    Job,
    JobStatus,
    ReferenceDocument,
)
from .store import JobStore

logger = logging.getLogger("salescoach.jobs")


class JobOrchestrator:
    """Create jobs and move them through the lifecycle lattice."""

    def __init__(
        self,
        store: JobStore,
        transcriber: Transcriber,
        analyzer: Analyzer,
        *,
        library_root: Path,
        transcription_deadline_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._transcriber = transcriber
        self._analyzer = analyzer
        self._library_root = library_root
        self._transcription_deadline_seconds = transcription_deadline_seconds
        self._tasks: set[asyncio.Task] = set()

    @property
    def store(self) -> JobStore:
        return self._store

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _spawn(self, coro: Coroutine, *, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    def _advance(job: Job, target: JobStatus) -> None:
        job.advance(target)
        record_transition(target.value)
        logger.info("job=%s status=%s", job.job_id, target.value)

    def _live_job(self, job_id: str, expected: JobStatus) -> Job | None:
        """Re-read a job after a suspension; ``None`` if it moved on or was evicted."""

        job = self._store.get(job_id)
        if job is None:
            logger.info("job=%s evicted while %s; dropping result", job_id, expected.value)
            return None
        if job.status is not expected:
            logger.warning(
                "job=%s expected status %s but found %s; dropping result",
                job_id,
                expected.value,
                job.status.value,
            )
            return None
        return job

    def _fail(self, job: Job, message: str) -> None:
        job.fail(message)
        record_transition(JobStatus.ERROR.value)
        logger.info("job=%s status=error message=%r", job.job_id, message)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def start_job(
        self,
        media_path: Path,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> Job:
        """Register the upload as a job and schedule transcription in the background."""

        job = self._store.create(
            resource_path=media_path,
            filename=filename,
            content_type=content_type,
        )
        self._advance(job, JobStatus.TRANSCRIBING)
        self._spawn(self._run_transcription(job.job_id), name=f"transcribe-{job.job_id}")
        return job

    def select_references(self, job: Job, references: Sequence[ReferenceDocument]) -> bool:
        """Record the caller's books and fire analysis if the job is now ready.

        Returns ``False`` when the selection arrived after analysis started (or
        the job already ended) and was therefore ignored.
        """

        if job.status not in SELECTION_OPEN_STATUSES:
            logger.info(
                "job=%s ignoring book selection in status %s",
                job.job_id,
                job.status.value,
            )
            return False

        job.selected_references = list(references)
        logger.info("job=%s received %s selected book(s)", job.job_id, len(job.selected_references))
        self._try_start_analysis(job.job_id)
        return True

    async def shutdown(self) -> None:
        """Cancel in-flight stages and evict every job."""

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._store.close()

    async def wait_idle(self) -> None:
        """Wait until no stage task is running (used by tests and shutdown)."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # stages
    # ------------------------------------------------------------------
    def _try_start_analysis(self, job_id: str) -> bool:
        """Guarded ``transcribed -> analysis_started`` transition.

        Must stay free of ``await``: the guard and the write below form the
        test-and-set that keeps analysis to a single run per job.
        """

        job = self._store.get(job_id)
        if job is None or job.status is not JobStatus.TRANSCRIBED:
            return False
        if not job.ready_for_analysis:
            return False

        self._advance(job, JobStatus.ANALYSIS_STARTED)
        self._spawn(self._run_analysis(job_id), name=f"analyze-{job_id}")
        return True

    async def _run_transcription(self, job_id: str) -> None:
        job = self._store.get(job_id)
        if job is None:
            return

        def log_tick(tick: PollTick) -> None:
            logger.info(
                "job=%s still transcribing (%.0fs) status=%s",
                job_id,
                tick.elapsed_seconds,
                tick.status,
            )

        logger.info("job=%s starting transcription", job_id)
        try:
            with self._store.resource_scope(job) as media_path:
                if media_path is None:
                    raise FileNotFoundError("uploaded media is no longer available")
                transcript = await self._transcriber.transcribe(
                    media_path,
                    content_type=job.content_type,
                    deadline_seconds=self._transcription_deadline_seconds,
                    on_poll=log_tick,
                )
            if not transcript or not transcript.strip():
                raise ValueError("provider returned an empty transcript")
        except Exception as exc:
            logger.exception("job=%s transcription error: %s", job_id, exc)
            failed = self._live_job(job_id, JobStatus.TRANSCRIBING)
            if failed is not None:
                self._fail(failed, TRANSCRIPTION_FAILED_MESSAGE)
            return

        job = self._live_job(job_id, JobStatus.TRANSCRIBING)
        if job is None:
            return
        job.complete_transcription(transcript)
        record_transition(JobStatus.TRANSCRIBED.value)
        logger.info("job=%s status=transcribed chars=%s", job_id, len(transcript))
        self._try_start_analysis(job_id)

    async def _run_analysis(self, job_id: str) -> None:
        job = self._store.get(job_id)
        if job is None:
            return
        transcript = job.transcript or ""
        references = list(job.selected_references)

        try:
            logger.info("job=%s loading %s book(s)", job_id, len(references))
            reference_texts = await load_reference_texts(references, self._library_root)
            report = await self._analyzer.analyze(transcript, reference_texts)
        except Exception as exc:
            logger.exception("job=%s analysis error: %s", job_id, exc)
            failed = self._live_job(job_id, JobStatus.ANALYSIS_STARTED)
            if failed is not None:
                self._fail(failed, ANALYSIS_FAILED_MESSAGE)
            return

        job = self._live_job(job_id, JobStatus.ANALYSIS_STARTED)
        if job is None:
            return
        job.finish(report.to_public_dict())
        record_transition(JobStatus.FINISHED.value)
        logger.info("job=%s status=finished", job_id)


_orchestrator: JobOrchestrator | None = None


def get_orchestrator() -> JobOrchestrator:
    """Return the process-wide orchestrator, building it on first use."""

    global _orchestrator
    if _orchestrator is None:
        _orchestrator = JobOrchestrator(
            JobStore(ttl_seconds=settings.jobs.ttl_seconds),
            get_transcribe_service(),
            get_coaching_analyzer(),
            library_root=Path(settings.library.root),
            transcription_deadline_seconds=settings.rev_ai.deadline_seconds,
        )
    return _orchestrator


__all__ = ["JobOrchestrator", "get_orchestrator"]
