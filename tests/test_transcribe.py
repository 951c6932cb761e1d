"""Rev.ai adapter tests using ``httpx.MockTransport``."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from salescoach.services.transcribe import (
    PollTick,
    RevAiTranscribeService,
    TranscriptionError,
    TranscriptionTimeoutError,
)

BASE_URL = "https://rev.example/speechtotext/v1"


async def _no_sleep(_seconds: float) -> None:
    return None


def _service(handler, *, token: str | None = "rev-token", deadline: float = 900.0) -> RevAiTranscribeService:
    return RevAiTranscribeService(
        token,
        base_url=BASE_URL,
        language="fr",
        poll_interval_seconds=7.0,
        deadline_seconds=deadline,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        sleep=_no_sleep,
    )


class RevAiStub:
    """Scripted Rev.ai API: returns the given statuses in order, then the transcript."""

    def __init__(self, statuses: list[dict], transcript: str = "Bonjour, merci pour votre temps.") -> None:
        self.statuses = list(statuses)
        self.transcript = transcript
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/jobs"):
            return httpx.Response(200, json={"id": "rev-123", "status": "in_progress"})
        if path.endswith("/jobs/rev-123/transcript"):
            return httpx.Response(200, text=self.transcript)
        if path.endswith("/jobs/rev-123"):
            return httpx.Response(200, json=self.statuses.pop(0))
        return httpx.Response(404, json={"title": "not found"})


@pytest.mark.asyncio
async def test_transcribe_submits_once_and_polls_until_transcribed(media_file: Path):
    stub = RevAiStub([{"status": "in_progress"}, {"status": "in_progress"}, {"status": "transcribed"}])
    service = _service(stub)
    ticks: list[PollTick] = []

    transcript = await service.transcribe(media_file, content_type="audio/mpeg", on_poll=ticks.append)

    assert transcript == "Bonjour, merci pour votre temps."
    assert [tick.status for tick in ticks] == ["in_progress", "in_progress", "transcribed"]
    assert all(tick.provider_job_id == "rev-123" for tick in ticks)

    submissions = [req for req in stub.requests if req.method == "POST"]
    assert len(submissions) == 1
    submission = submissions[0]
    assert submission.headers["Authorization"] == "Bearer rev-token"
    body = submission.content
    assert b'name="media"; filename="call.mp3"' in body
    assert b"ID3fake-mp3-bytes" in body
    assert b'name="options"' in body
    assert b'"language": "fr"' in body

    transcript_request = stub.requests[-1]
    assert transcript_request.headers["Accept"] == "text/plain"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["failed", "revoked", "error"])
async def test_failed_provider_status_raises_with_reason(media_file: Path, status: str):
    stub = RevAiStub([{"status": "in_progress"}, {"status": status, "failure_detail": "Audio is silent"}])
    service = _service(stub)

    with pytest.raises(TranscriptionError) as excinfo:
        await service.transcribe(media_file)

    assert status in str(excinfo.value)
    assert "Audio is silent" in str(excinfo.value)
    assert not any(req.url.path.endswith("/transcript") for req in stub.requests)


@pytest.mark.asyncio
async def test_polling_stops_at_deadline(media_file: Path):
    stub = RevAiStub([{"status": "in_progress"}] * 5)
    service = _service(stub, deadline=0.0)

    with pytest.raises(TranscriptionTimeoutError):
        await service.transcribe(media_file)

    polls = [req for req in stub.requests if req.method == "GET"]
    assert len(polls) == 1


@pytest.mark.asyncio
async def test_per_call_deadline_overrides_default(media_file: Path):
    stub = RevAiStub([{"status": "in_progress"}] * 5)
    service = _service(stub, deadline=900.0)

    with pytest.raises(TranscriptionTimeoutError):
        await service.transcribe(media_file, deadline_seconds=0.0)


@pytest.mark.asyncio
async def test_http_error_becomes_transcription_error(media_file: Path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"title": "Authorization has been denied"})

    service = _service(handler)

    with pytest.raises(TranscriptionError) as excinfo:
        await service.transcribe(media_file)

    assert "401" in str(excinfo.value)


@pytest.mark.asyncio
async def test_network_error_becomes_transcription_error(media_file: Path):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    service = _service(handler)

    with pytest.raises(TranscriptionError):
        await service.transcribe(media_file)


@pytest.mark.asyncio
async def test_missing_job_id_is_an_error(media_file: Path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "in_progress"})

    service = _service(handler)

    with pytest.raises(TranscriptionError, match="no job id"):
        await service.transcribe(media_file)


@pytest.mark.asyncio
async def test_missing_token_fails_before_any_request(media_file: Path):
    stub = RevAiStub([])
    service = _service(stub, token=None)

    with pytest.raises(TranscriptionError, match="access token"):
        await service.transcribe(media_file)

    assert stub.requests == []


@pytest.mark.asyncio
async def test_submission_streams_from_an_open_file(media_file: Path, monkeypatch):
    def no_read_bytes(self):
        raise AssertionError("media must not be read into memory up front")

    monkeypatch.setattr(Path, "read_bytes", no_read_bytes)
    stub = RevAiStub([{"status": "transcribed"}])

    transcript = await _service(stub).transcribe(media_file, content_type="audio/mpeg")

    assert transcript == "Bonjour, merci pour votre temps."
    submission = next(req for req in stub.requests if req.method == "POST")
    assert b"ID3fake-mp3-bytes" in submission.content
