"""Schemas for the coaching job endpoints."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from salescoach.jobs.models import Job, ReferenceDocument


class StartJobResponse(BaseModel):
    """Returned once by ``POST /start``; the only place the token is exposed."""

    job_id: str = Field(serialization_alias="jobId")
    access_token: str = Field(serialization_alias="accessToken")


class SelectedBook(BaseModel):
    title: str = Field(min_length=1)
    text: str = Field(min_length=1, description="Locator of the book text inside the library")

    def to_reference(self) -> ReferenceDocument:
        return ReferenceDocument(title=self.title, locator=self.text)


class BooksSelectionRequest(BaseModel):
    """Books chosen by the caller as grounding for the analysis."""

    model_config = ConfigDict(populate_by_name=True)

    selected_books: List[SelectedBook] = Field(default_factory=list, alias="selectedBooks")


class BooksSelectionResponse(BaseModel):
    accepted: int


class JobStatusResponse(BaseModel):
    status: str
    analysis: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusResponse":
        return cls(status=job.status.value, analysis=job.report, error=job.error)


__all__ = [
    "BooksSelectionRequest",
    "BooksSelectionResponse",
    "JobStatusResponse",
    "SelectedBook",
    "StartJobResponse",
]
