"""Lifecycle tests for the job orchestrator, driven with fake adapters."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from conftest import SAMPLE_TRANSCRIPT, FakeAnalyzer, FakeTranscriber
from salescoach.jobs import (
    ANALYSIS_FAILED_MESSAGE,
    TRANSCRIPTION_FAILED_MESSAGE,
    InvalidTransitionError,
    Job,
    JobStatus,
    ReferenceDocument,
)
from salescoach.services.transcribe import TranscriptionError, TranscriptionTimeoutError

BOOK_X = ReferenceDocument(title="Book X", locator="book_x.txt")
BOOK_Y = ReferenceDocument(title="Book Y", locator="book_y.txt")

HAPPY_PATH = [
    JobStatus.CREATED,
    JobStatus.TRANSCRIBING,
    JobStatus.TRANSCRIBED,
    JobStatus.ANALYSIS_STARTED,
    JobStatus.FINISHED,
]


@pytest.mark.asyncio
async def test_books_after_transcription_runs_analysis_once(make_orchestrator, media_file: Path):
    transcriber = FakeTranscriber()
    analyzer = FakeAnalyzer()
    orchestrator = make_orchestrator(transcriber, analyzer)

    job = orchestrator.start_job(media_file, filename="call.mp3", content_type="audio/mpeg")
    assert job.status is JobStatus.TRANSCRIBING

    await orchestrator.wait_idle()
    assert job.status is JobStatus.TRANSCRIBED
    assert job.transcript == SAMPLE_TRANSCRIPT
    assert analyzer.calls == []

    assert orchestrator.select_references(job, [BOOK_X]) is True
    assert job.status is JobStatus.ANALYSIS_STARTED
    await orchestrator.wait_idle()

    assert job.status is JobStatus.FINISHED
    assert job.history == HAPPY_PATH
    assert job.report is not None and job.report["advice"]["newHabit"]
    assert job.transcript is None
    assert len(analyzer.calls) == 1
    transcript, references = analyzer.calls[0]
    assert transcript == SAMPLE_TRANSCRIPT
    assert [ref.title for ref in references] == ["Book X"]
    assert "impact of the problem" in references[0].text


@pytest.mark.asyncio
async def test_books_before_transcription_fire_on_completion(make_orchestrator, media_file: Path):
    release = threading.Event()
    transcriber = FakeTranscriber(release=release)
    analyzer = FakeAnalyzer()
    orchestrator = make_orchestrator(transcriber, analyzer)

    job = orchestrator.start_job(media_file)
    assert orchestrator.select_references(job, [BOOK_X, BOOK_Y]) is True
    assert job.status is JobStatus.TRANSCRIBING
    assert analyzer.calls == []

    release.set()
    await orchestrator.wait_idle()

    assert job.status is JobStatus.FINISHED
    assert job.history == HAPPY_PATH
    assert len(analyzer.calls) == 1
    assert [ref.title for ref in analyzer.calls[0][1]] == ["Book X", "Book Y"]


@pytest.mark.asyncio
async def test_duplicate_triggers_do_not_duplicate_analysis(make_orchestrator, media_file: Path):
    analyzer = FakeAnalyzer(release=threading.Event())
    orchestrator = make_orchestrator(FakeTranscriber(), analyzer)

    job = orchestrator.start_job(media_file)
    await orchestrator.wait_idle()

    orchestrator.select_references(job, [BOOK_X])
    # Second submission and a stray readiness check while analysis is running.
    assert orchestrator.select_references(job, [BOOK_Y]) is False
    assert orchestrator._try_start_analysis(job.job_id) is False
    assert job.selected_references == [BOOK_X]

    analyzer.release.set()
    await orchestrator.wait_idle()

    assert len(analyzer.calls) == 1
    assert job.status is JobStatus.FINISHED
    assert orchestrator.select_references(job, [BOOK_Y]) is False
    assert len(analyzer.calls) == 1


@pytest.mark.asyncio
async def test_concurrent_completion_and_selection_trigger_once(make_orchestrator, media_file: Path):
    release = threading.Event()
    analyzer = FakeAnalyzer()
    orchestrator = make_orchestrator(FakeTranscriber(release=release), analyzer)

    job = orchestrator.start_job(media_file)
    await asyncio.sleep(0)

    async def submit_books() -> None:
        orchestrator.select_references(job, [BOOK_X])
        orchestrator.select_references(job, [BOOK_X])

    release.set()
    await asyncio.gather(submit_books(), orchestrator.wait_idle())
    await orchestrator.wait_idle()

    assert len(analyzer.calls) == 1
    assert job.history == HAPPY_PATH


@pytest.mark.asyncio
async def test_empty_selection_does_not_start_analysis(make_orchestrator, media_file: Path):
    analyzer = FakeAnalyzer()
    orchestrator = make_orchestrator(FakeTranscriber(), analyzer)

    job = orchestrator.start_job(media_file)
    await orchestrator.wait_idle()
    assert orchestrator.select_references(job, []) is True
    await orchestrator.wait_idle()

    assert job.status is JobStatus.TRANSCRIBED
    assert analyzer.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        TranscriptionError('Rev.ai job 1 ended with status "failed": bad audio'),
        TranscriptionTimeoutError("Rev.ai job 1 timed out after 900s"),
        RuntimeError("unexpected adapter crash"),
    ],
)
async def test_transcription_failure_is_terminal(make_orchestrator, media_file: Path, error):
    analyzer = FakeAnalyzer()
    orchestrator = make_orchestrator(FakeTranscriber(error=error), analyzer)

    job = orchestrator.start_job(media_file)
    orchestrator.select_references(job, [BOOK_X])
    await orchestrator.wait_idle()

    assert job.status is JobStatus.ERROR
    assert job.error == TRANSCRIPTION_FAILED_MESSAGE
    assert "Rev.ai" not in job.error
    assert job.report is None
    assert analyzer.calls == []

    assert orchestrator.select_references(job, [BOOK_Y]) is False
    await orchestrator.wait_idle()
    assert job.status is JobStatus.ERROR
    assert analyzer.calls == []
    assert job.history == [JobStatus.CREATED, JobStatus.TRANSCRIBING, JobStatus.ERROR]


@pytest.mark.asyncio
async def test_empty_transcript_counts_as_failure(make_orchestrator, media_file: Path):
    orchestrator = make_orchestrator(FakeTranscriber(transcript="   "), FakeAnalyzer())

    job = orchestrator.start_job(media_file)
    await orchestrator.wait_idle()

    assert job.status is JobStatus.ERROR
    assert job.error == TRANSCRIPTION_FAILED_MESSAGE


@pytest.mark.asyncio
@pytest.mark.parametrize("outcome", ["success", "failure", "crash"])
async def test_temp_file_released_on_every_transcription_outcome(make_orchestrator, media_file: Path, outcome):
    errors = {
        "success": None,
        "failure": TranscriptionError("provider failed"),
        "crash": KeyError("boom"),
    }
    transcriber = FakeTranscriber(error=errors[outcome])
    orchestrator = make_orchestrator(transcriber, FakeAnalyzer())

    job = orchestrator.start_job(media_file)
    await orchestrator.wait_idle()

    assert transcriber.file_existed == [True]
    assert job.resource_path is None
    assert not media_file.exists()


@pytest.mark.asyncio
async def test_temp_file_released_when_task_is_cancelled(make_orchestrator, media_file: Path):
    release = threading.Event()
    transcriber = FakeTranscriber(release=release)
    orchestrator = make_orchestrator(transcriber, FakeAnalyzer())

    job = orchestrator.start_job(media_file)
    await asyncio.to_thread(transcriber.started.wait, 5.0)

    shutdown = asyncio.create_task(orchestrator.shutdown())
    release.set()
    await shutdown

    assert not media_file.exists()
    assert job.resource_path is None
    assert len(orchestrator.store) == 0


@pytest.mark.asyncio
async def test_analysis_failure_sets_generic_error(make_orchestrator, media_file: Path):
    analyzer = FakeAnalyzer(error=RuntimeError("Gemini API error: quota exceeded for key 6"))
    orchestrator = make_orchestrator(FakeTranscriber(), analyzer)

    job = orchestrator.start_job(media_file)
    orchestrator.select_references(job, [BOOK_X])
    await orchestrator.wait_idle()

    assert job.status is JobStatus.ERROR
    assert job.error == ANALYSIS_FAILED_MESSAGE
    assert job.report is None
    assert job.history[-2:] == [JobStatus.ANALYSIS_STARTED, JobStatus.ERROR]


@pytest.mark.asyncio
async def test_unreadable_book_fails_analysis_without_calling_model(make_orchestrator, media_file: Path):
    analyzer = FakeAnalyzer()
    orchestrator = make_orchestrator(FakeTranscriber(), analyzer)

    job = orchestrator.start_job(media_file)
    orchestrator.select_references(job, [ReferenceDocument(title="Missing", locator="nope.txt")])
    await orchestrator.wait_idle()

    assert job.status is JobStatus.ERROR
    assert job.error == ANALYSIS_FAILED_MESSAGE
    assert analyzer.calls == []


@pytest.mark.asyncio
async def test_result_for_evicted_job_is_dropped(make_orchestrator, media_file: Path):
    release = threading.Event()
    transcriber = FakeTranscriber(release=release)
    analyzer = FakeAnalyzer()
    orchestrator = make_orchestrator(transcriber, analyzer)

    job = orchestrator.start_job(media_file)
    orchestrator.select_references(job, [BOOK_X])
    await asyncio.to_thread(transcriber.started.wait, 5.0)

    assert orchestrator.store.evict(job.job_id) is True
    assert not media_file.exists()

    release.set()
    await orchestrator.wait_idle()

    assert orchestrator.store.get(job.job_id) is None
    assert job.status is JobStatus.TRANSCRIBING
    assert analyzer.calls == []


@pytest.mark.asyncio
async def test_deadline_is_passed_to_transcriber(make_orchestrator, media_file: Path):
    transcriber = FakeTranscriber()
    orchestrator = make_orchestrator(transcriber, FakeAnalyzer(), deadline_seconds=42.0)

    orchestrator.start_job(media_file)
    await orchestrator.wait_idle()

    assert transcriber.deadlines == [42.0]


def test_lattice_rejects_skipped_and_backward_transitions():
    job = Job(job_id="job-1", access_token="secret")

    with pytest.raises(InvalidTransitionError):
        job.advance(JobStatus.FINISHED)

    job.advance(JobStatus.TRANSCRIBING)
    job.complete_transcription("hello")
    with pytest.raises(InvalidTransitionError):
        job.advance(JobStatus.TRANSCRIBING)

    job.fail("Transcription failed.")
    for target in JobStatus:
        with pytest.raises(InvalidTransitionError):
            job.advance(target)
    assert job.history == [
        JobStatus.CREATED,
        JobStatus.TRANSCRIBING,
        JobStatus.TRANSCRIBED,
        JobStatus.ERROR,
    ]


def test_report_present_only_when_finished():
    job = Job(job_id="job-2", access_token="secret")
    job.advance(JobStatus.TRANSCRIBING)
    job.complete_transcription("hello")
    job.advance(JobStatus.ANALYSIS_STARTED)
    assert job.report is None

    job.finish({"intro": "ok"})
    assert job.status is JobStatus.FINISHED
    assert job.report == {"intro": "ok"}
    assert job.transcript is None
