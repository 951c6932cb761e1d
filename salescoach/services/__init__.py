"""Service layer helpers for external integrations."""

from .llm_client import GeminiLlmClient, LlmInvocationError, get_llm_client
from .prompt_builder import COACHING_RESPONSE_SCHEMA, ReferenceText, build_coaching_prompt
from .response_contract import CoachingReport, ResponseContractError
from .storage import StorageError, UploadTooLargeError, remove_file, store_upload
from .transcribe import (
    PollTick,
    RevAiTranscribeService,
    TranscriptionError,
    TranscriptionTimeoutError,
    get_transcribe_service,
)

__all__ = [
    "COACHING_RESPONSE_SCHEMA",
    "CoachingReport",
    "GeminiLlmClient",
    "LlmInvocationError",
    "PollTick",
    "ReferenceText",
    "ResponseContractError",
    "RevAiTranscribeService",
    "StorageError",
    "TranscriptionError",
    "TranscriptionTimeoutError",
    "UploadTooLargeError",
    "build_coaching_prompt",
    "get_llm_client",
    "get_transcribe_service",
    "remove_file",
    "store_upload",
]
