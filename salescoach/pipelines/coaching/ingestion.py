"""Request ingestion helpers (first stage of the coaching pipeline)."""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Collection

from fastapi import HTTPException, UploadFile, status

from salescoach.services.storage import StorageError, UploadTooLargeError, store_upload

logger = logging.getLogger("salescoach.jobs")

_GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}


@dataclass(frozen=True)
class StoredUpload:
    """A validated upload written to the temp directory."""

    path: Path
    filename: str
    content_type: str
    size: int


def resolve_content_type(upload: UploadFile, allowed: Collection[str]) -> str:
    """Return the upload's MIME type, guessing from the filename when the client sent none."""

    content_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    if content_type in _GENERIC_CONTENT_TYPES and upload.filename:
        guessed_type, _ = mimetypes.guess_type(upload.filename)
        content_type = (guessed_type or content_type).lower()

    logger.info("Checking file: %s, MIME type: %s", upload.filename, content_type or "<none>")
    if content_type not in allowed:
        logger.info("Rejected upload %s with MIME type %s", upload.filename, content_type or "<none>")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Invalid file type: '{content_type or 'unknown'}'. "
                "Only specific audio/video formats are allowed."
            ),
        )
    return content_type


async def accept_upload(
    upload: UploadFile | None,
    *,
    directory: Path,
    max_bytes: int,
    allowed_content_types: Collection[str],
) -> StoredUpload:
    """Validate type and size, then store the media file; no job exists until this returns."""

    if upload is None or not upload.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file was uploaded or file was empty.",
        )

    content_type = resolve_content_type(upload, allowed_content_types)

    try:
        path, size = await store_upload(upload, directory, max_bytes=max_bytes)
    except UploadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File upload error: {exc}",
        ) from exc
    except StorageError as exc:
        logger.exception("Could not store upload %s", upload.filename)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not store the uploaded file.",
        ) from exc

    if size == 0:
        path.unlink(missing_ok=True)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file was uploaded or file was empty.",
        )

    return StoredUpload(path=path, filename=Path(upload.filename).name, content_type=content_type, size=size)


__all__ = ["StoredUpload", "accept_upload", "resolve_content_type"]
