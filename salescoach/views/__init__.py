"""Pydantic schemas used as views in the MVC architecture."""

from .common import HealthResponse
from .jobs import (
    BooksSelectionRequest,
    BooksSelectionResponse,
    JobStatusResponse,
    SelectedBook,
    StartJobResponse,
)

__all__ = [
    "BooksSelectionRequest",
    "BooksSelectionResponse",
    "HealthResponse",
    "JobStatusResponse",
    "SelectedBook",
    "StartJobResponse",
]
