"""Coaching pipeline package.

Modules follow the order a job moves through:

1. `ingestion` – validate and store the uploaded recording.
2. `references` – load the books the caller selected.
3. `analysis` – prompt the model and validate the coaching report.

Transcription itself lives in `salescoach.services.transcribe`; the
orchestrator in `salescoach.jobs` decides when each stage runs.
"""

from .analysis import AnalysisError, CoachingAnalyzer, get_coaching_analyzer
from .ingestion import StoredUpload, accept_upload, resolve_content_type
from .references import ReferenceDocumentError, load_reference_texts, resolve_locator
from .types import Analyzer, Transcriber

__all__ = [
    "AnalysisError",
    "Analyzer",
    "CoachingAnalyzer",
    "ReferenceDocumentError",
    "StoredUpload",
    "Transcriber",
    "accept_upload",
    "get_coaching_analyzer",
    "load_reference_texts",
    "resolve_content_type",
    "resolve_locator",
]
