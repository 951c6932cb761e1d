"""Rev.ai asynchronous speech-to-text integration."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Final

import httpx

from salescoach.config.settings import settings
from salescoach.telemetry import record_transcription_poll

logger = logging.getLogger(__name__)

SUCCESS_STATUS: Final[str] = "transcribed"
FAILED_STATUSES: Final[frozenset[str]] = frozenset({"failed", "revoked", "error"})


@dataclass(frozen=True)
class PollTick:
    """One observation of the provider job while waiting for it to finish."""

    provider_job_id: str
    status: str | None
    elapsed_seconds: float


class TranscriptionError(RuntimeError):
    """Raised when Rev.ai cannot produce a transcript."""


class TranscriptionTimeoutError(TranscriptionError):
    """Raised when the provider job outlives the polling deadline."""


class RevAiTranscribeService:
    """Submit a local media file to Rev.ai and wait for the plain-text transcript."""

    def __init__(
        self,
        access_token: str | None,
        *,
        base_url: str = "https://api.rev.ai/speechtotext/v1",
        language: str = "fr",
        poll_interval_seconds: float = 7.0,
        deadline_seconds: float = 900.0,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._poll_interval_seconds = poll_interval_seconds
        self._deadline_seconds = deadline_seconds
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self._sleep = sleep

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _headers(self, **extra: str) -> dict[str, str]:
        if not self._access_token:
            raise TranscriptionError("Rev.ai access token is not configured.")
        return {"Authorization": f"Bearer {self._access_token}", **extra}

    def _submission_options(self) -> dict[str, Any]:
        return {
            "language": self._language,
            "metadata": "auto-transcribed",
            "skip_punctuation": False,
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, f"{self._base_url}{path}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TranscriptionError(
                f"Rev.ai {method} {path} returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"Rev.ai {method} {path} failed: {exc}") from exc
        return response

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def submit(self, media_path: Path, *, content_type: str | None = None) -> str:
        """Upload the file once and return the provider job id."""

        headers = self._headers()
        data = {"options": json.dumps(self._submission_options())}

        # httpx reads file objects in chunks while sending the multipart body.
        with media_path.open("rb") as media:
            files = {"media": (media_path.name, media, content_type or "application/octet-stream")}
            response = await self._request("POST", "/jobs", headers=headers, files=files, data=data)
        job_id = response.json().get("id")
        if not job_id:
            raise TranscriptionError("Rev.ai accepted the upload but returned no job id.")
        return str(job_id)

    async def get_job(self, provider_job_id: str) -> dict[str, Any]:
        response = await self._request("GET", f"/jobs/{provider_job_id}", headers=self._headers())
        return response.json()

    async def get_transcript_text(self, provider_job_id: str) -> str:
        response = await self._request(
            "GET",
            f"/jobs/{provider_job_id}/transcript",
            headers=self._headers(Accept="text/plain"),
        )
        return response.text

    async def transcribe(
        self,
        media_path: Path,
        *,
        content_type: str | None = None,
        deadline_seconds: float | None = None,
        on_poll: Callable[[PollTick], None] | None = None,
    ) -> str:
        """Submit, poll until a terminal status, and return the transcript text.

        Raises ``TranscriptionError`` when the provider reports failed/revoked/error
        and ``TranscriptionTimeoutError`` once ``deadline_seconds`` of polling have
        elapsed without a terminal status.
        """

        deadline = self._deadline_seconds if deadline_seconds is None else deadline_seconds
        provider_job_id = await self.submit(media_path, content_type=content_type)
        logger.info("Rev.ai job submitted id=%s file=%s", provider_job_id, media_path.name)

        started = time.monotonic()
        while True:
            await self._sleep(self._poll_interval_seconds)
            details = await self.get_job(provider_job_id)
            status = details.get("status")
            elapsed = time.monotonic() - started

            record_transcription_poll(status)
            logger.debug(
                "Rev.ai job id=%s still transcribing (%.1fs) status=%s",
                provider_job_id,
                elapsed,
                status,
            )
            if on_poll is not None:
                on_poll(PollTick(provider_job_id, status, elapsed))

            if status == SUCCESS_STATUS:
                break

            if status in FAILED_STATUSES:
                reason = details.get("failure_detail") or details.get("failure") or "unknown reason"
                raise TranscriptionError(
                    f'Rev.ai job {provider_job_id} ended with status "{status}": {reason}'
                )

            if elapsed >= deadline:
                raise TranscriptionTimeoutError(
                    f"Rev.ai job {provider_job_id} timed out after {deadline:g}s"
                )

        return await self.get_transcript_text(provider_job_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_service: RevAiTranscribeService | None = None


def get_transcribe_service() -> RevAiTranscribeService:
    """Return a lazily-instantiated transcribe service singleton."""

    global _service
    if _service is None:
        config = settings.rev_ai
        _service = RevAiTranscribeService(
            config.access_token.get_secret_value() if config.access_token else None,
            base_url=config.base_url,
            language=config.language,
            poll_interval_seconds=config.poll_interval_seconds,
            deadline_seconds=config.deadline_seconds,
            timeout=config.request_timeout_seconds,
        )
    return _service


__all__ = [
    "PollTick",
    "RevAiTranscribeService",
    "TranscriptionError",
    "TranscriptionTimeoutError",
    "get_transcribe_service",
]
