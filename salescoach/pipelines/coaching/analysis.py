"""Analysis stage: transcript + books -> validated coaching report."""

from __future__ import annotations

import logging
from typing import Sequence

from salescoach.services.llm_client import GeminiLlmClient, LlmInvocationError, get_llm_client
from salescoach.services.prompt_builder import (
    COACHING_RESPONSE_SCHEMA,
    ReferenceText,
    build_coaching_prompt,
)
from salescoach.services.response_contract import CoachingReport, ResponseContractError

logger = logging.getLogger("salescoach.jobs")

_MAX_JSON_RETRIES = 1  # Re-ask once when the model returns malformed JSON.


class AnalysisError(RuntimeError):
    """Raised when no valid coaching report could be produced.

    Failures of the analysis stage reach the orchestrator as this type or a
    subclass of it.
    """


def _truncate(value: str, max_length: int = 500) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


class CoachingAnalyzer:
    """Analysis adapter backed by the Gemini client."""

    def __init__(self, client: GeminiLlmClient) -> None:
        self._client = client

    async def analyze(
        self,
        transcript: str,
        references: Sequence[ReferenceText],
    ) -> CoachingReport:
        if not transcript:
            raise AnalysisError("Cannot analyse an empty transcript.")
        if not references:
            raise AnalysisError("At least one reference book is required.")

        prompt = build_coaching_prompt(transcript, references)
        logger.info(
            "Calling %s with %s book(s), prompt=%s chars",
            self._client.model,
            len(references),
            len(prompt),
        )

        for attempt in range(_MAX_JSON_RETRIES + 1):
            try:
                raw_response = await self._client.invoke(
                    prompt=prompt,
                    response_schema=COACHING_RESPONSE_SCHEMA,
                )
            except LlmInvocationError as exc:
                raise AnalysisError(str(exc)) from exc

            try:
                return CoachingReport.from_json(raw_response)
            except ResponseContractError as exc:
                logger.warning(
                    "Model returned an invalid report attempt=%s: %s | raw=%s",
                    attempt + 1,
                    exc,
                    _truncate(raw_response),
                )
                if attempt < _MAX_JSON_RETRIES:
                    continue
                raise AnalysisError(
                    "The model returned an invalid report even after retrying."
                ) from exc

        # Unreachable: the loop either returns or raises.
        raise AnalysisError("No coaching report produced.")


def get_coaching_analyzer() -> CoachingAnalyzer:
    return CoachingAnalyzer(get_llm_client())


__all__ = ["AnalysisError", "CoachingAnalyzer", "get_coaching_analyzer"]
