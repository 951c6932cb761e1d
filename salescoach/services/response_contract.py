"""Pydantic models for validating the coaching report returned by the LLM.

The status endpoint serves ``CoachingReport.model_dump(by_alias=True)``, so the
aliases below are the public JSON shape of a finished analysis.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class _ContractModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


class SalesSteps(_ContractModel):
    """Commentary for each stage of the sales conversation."""

    opening: str
    discovery: str
    demonstration: str
    closing: str


class SalesSkills(_ContractModel):
    listening: str
    questioning: str
    objection_handling: str = Field(alias="objectionHandling")
    clarity: str


class SalesReview(_ContractModel):
    steps: SalesSteps
    skills: SalesSkills
    opportunities_missed: List[str] = Field(default_factory=list, alias="opportunitiesMissed")

    @field_validator("opportunities_missed")
    @classmethod
    def drop_blank_items(cls, value: List[str]) -> List[str]:
        return [item for item in value if item]


class SalesAdvice(_ContractModel):
    new_habit: str = Field(alias="newHabit")
    drop_habit: str = Field(alias="dropHabit")


class CoachingReport(_ContractModel):
    """Structured result of the analysis stage."""

    intro: str
    review: SalesReview
    advice: SalesAdvice
    references_used: List[str] = Field(default_factory=list, alias="referencesUsed")

    @classmethod
    def from_json(cls, payload: str) -> "CoachingReport":
        """Parse raw model output; raises ``ResponseContractError`` on bad JSON or shape."""

        try:
            return cls.model_validate_json(_clean_json_payload(payload))
        except ValidationError as exc:
            raise ResponseContractError(
                f"Coaching report failed validation with {exc.error_count()} error(s)"
            ) from exc

    def to_public_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class ResponseContractError(RuntimeError):
    """Raised when the LLM response contract cannot be validated."""


def _clean_json_payload(payload: str) -> str:
    """Strip Markdown code fences and keep the outermost JSON object."""
    if not payload:
        return ""

    cleaned = payload.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]

    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    cleaned = cleaned.strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


__all__ = [
    "CoachingReport",
    "ResponseContractError",
    "SalesAdvice",
    "SalesReview",
    "SalesSkills",
    "SalesSteps",
]
