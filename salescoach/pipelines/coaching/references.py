"""Load the caller-selected books from the reference library."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from fastapi.concurrency import run_in_threadpool

from salescoach.jobs.models import ReferenceDocument
from salescoach.services.prompt_builder import ReferenceText

from .analysis import AnalysisError

logger = logging.getLogger("salescoach.jobs")


class ReferenceDocumentError(AnalysisError):
    """Raised when a book locator cannot be resolved or read."""


def resolve_locator(library_root: Path, locator: str) -> Path:
    """Map ``locator`` to a file inside ``library_root``; refuse anything outside it."""

    if not locator or not locator.strip():
        raise ReferenceDocumentError("Empty book locator")

    root = library_root.resolve()
    candidate = (root / locator.strip()).resolve()
    if not candidate.is_relative_to(root):
        raise ReferenceDocumentError(f"Book locator escapes the library: {locator!r}")
    return candidate


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ReferenceDocumentError(f"Cannot read book {path.name}: {exc}") from exc


async def load_reference_texts(
    references: Sequence[ReferenceDocument],
    library_root: Path,
) -> list[ReferenceText]:
    """Read every selected book, preserving the caller's order."""

    paths = [resolve_locator(library_root, reference.locator) for reference in references]
    texts = await asyncio.gather(*(run_in_threadpool(_read_text, path) for path in paths))
    logger.debug("Loaded %s book(s) from %s", len(texts), library_root)
    return [
        ReferenceText(title=reference.title, text=text)
        for reference, text in zip(references, texts)
    ]


__all__ = ["ReferenceDocumentError", "load_reference_texts", "resolve_locator"]
