"""Local disk helpers for uploaded media."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024
# Names produced by store_upload: uuid4 hex stem plus a short alphanumeric suffix.
_UPLOAD_SUFFIX = re.compile(r"^\.[a-z0-9]{1,10}$")
_UPLOAD_NAME = re.compile(r"^[0-9a-f]{32}(\.[a-z0-9]{1,10})?$")


class StorageError(RuntimeError):
    """Raised when an upload cannot be written to disk."""


class UploadTooLargeError(StorageError):
    """Raised when an upload exceeds the configured byte limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"File exceeds the {limit} byte upload limit")
        self.limit = limit


def _copy_limited(source: BinaryIO, target: Path, max_bytes: int) -> int:
    """Copy ``source`` into ``target`` chunk by chunk, enforcing ``max_bytes``."""

    written = 0
    try:
        with target.open("wb") as fp:
            while True:
                chunk = source.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise UploadTooLargeError(max_bytes)
                fp.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise
    return written


async def store_upload(
    upload: UploadFile,
    directory: Path,
    *,
    max_bytes: int,
) -> tuple[Path, int]:
    """Persist an upload under ``directory`` and return (path, size)."""

    suffix = Path(upload.filename or "").suffix.lower()
    if not _UPLOAD_SUFFIX.match(suffix):
        suffix = ""
    target = directory / f"{uuid4().hex}{suffix}"

    try:
        await run_in_threadpool(directory.mkdir, parents=True, exist_ok=True)
        await run_in_threadpool(upload.file.seek, 0)
        size = await run_in_threadpool(_copy_limited, upload.file, target, max_bytes)
    except UploadTooLargeError:
        raise
    except OSError as exc:
        raise StorageError(f"Failed to store upload: {exc}") from exc
    finally:
        await upload.close()

    return target, size


def remove_file(path: Path | None) -> bool:
    """Delete ``path``; failures are logged and reported as ``False``."""

    if path is None:
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("Cleanup skipped, file already gone: %s", path)
        return False
    except OSError as exc:
        logger.warning("Cleanup failed for %s: %s", path, exc)
        return False
    return True


def purge_directory(directory: Path) -> int:
    """Delete uploads left in ``directory`` by a previous process run.

    Only names ``store_upload`` generates are touched; anything else in the
    directory is left alone.
    """

    directory.mkdir(parents=True, exist_ok=True)
    removed = 0
    for entry in directory.iterdir():
        if not _UPLOAD_NAME.match(entry.name) or not entry.is_file():
            continue
        if remove_file(entry):
            removed += 1
    return removed


__all__ = [
    "StorageError",
    "UploadTooLargeError",
    "purge_directory",
    "remove_file",
    "store_upload",
]
