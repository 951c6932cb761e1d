"""Coaching job endpoints.

1. ``POST /start`` validates and stores the recording, creates the job and
   returns its id + token before transcription begins.
2. ``POST /booksselection/{job_id}`` records the books to analyse against.
3. ``GET /status/{job_id}`` is polled until the job is finished or errored.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, UploadFile, status

from salescoach.config.settings import settings
from salescoach.controllers.dependencies import AuthorizedJobDep, OrchestratorDep
from salescoach.pipelines.coaching import accept_upload
from salescoach.views import (
    BooksSelectionRequest,
    BooksSelectionResponse,
    JobStatusResponse,
    StartJobResponse,
)

router = APIRouter(tags=["jobs"])

logger = logging.getLogger(__name__)

_MEDIA_FILE_UPLOAD = File(None)


@router.post(
    "/start",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=StartJobResponse,
)
async def start_job(
    orchestrator: OrchestratorDep,
    file: Optional[UploadFile] = _MEDIA_FILE_UPLOAD,
) -> StartJobResponse:
    """Accept a recording and start transcribing it in the background."""

    stored = await accept_upload(
        file,
        directory=Path(settings.upload.directory),
        max_bytes=settings.upload.max_bytes,
        allowed_content_types=settings.upload.allowed_content_types,
    )
    job = orchestrator.start_job(
        stored.path,
        filename=stored.filename,
        content_type=stored.content_type,
    )
    logger.info("job=%s received file %s (%s bytes)", job.job_id, stored.filename, stored.size)
    return StartJobResponse(job_id=job.job_id, access_token=job.access_token)


@router.post("/booksselection/{job_id}", response_model=BooksSelectionResponse)
async def select_books(
    payload: BooksSelectionRequest,
    job: AuthorizedJobDep,
    orchestrator: OrchestratorDep,
) -> BooksSelectionResponse:
    """Store the selected books; analysis starts once the transcript is also ready."""

    references = [book.to_reference() for book in payload.selected_books]
    accepted = orchestrator.select_references(job, references)
    return BooksSelectionResponse(accepted=len(references) if accepted else 0)


@router.get("/status/{job_id}", response_model=JobStatusResponse)
async def job_status(job: AuthorizedJobDep) -> JobStatusResponse:
    """Report the job's current status, analysis and user-facing error."""

    return JobStatusResponse.from_job(job)
