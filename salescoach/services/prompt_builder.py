"""Prompt and response-schema construction for the sales coaching analysis."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Sequence

_FENCE: Final[str] = "```"

_REPORT_SHAPE: Final[str] = """{
  "intro": string,
  "review": {
    "steps": {
      "opening": "analysis of the opening step",
      "discovery": "analysis of the discovery/investigation step",
      "demonstration": "analysis of the demonstration step",
      "closing": "analysis of the closing step"
    },
    "skills": {
      "listening": string,
      "questioning": string,
      "objectionHandling": string,
      "clarity": string
    },
    "opportunitiesMissed": [
      "questions not asked: ...",
      "objections not well-addressed: ...",
      "missed buying signals: ..."
    ]
  },
  "advice": {
    "newHabit": string,
    "dropHabit": string
  },
  "referencesUsed": ["title of every book the analysis relied on"]
}"""


@dataclass(frozen=True)
class ReferenceText:
    """A reference book with its full text, ready to be quoted."""

    title: str
    text: str


def _string() -> dict[str, Any]:
    return {"type": "STRING"}


def _object(properties: dict[str, Any]) -> dict[str, Any]:
    return {"type": "OBJECT", "properties": properties, "required": list(properties)}


COACHING_RESPONSE_SCHEMA: Final[dict[str, Any]] = _object(
    {
        "intro": _string(),
        "review": _object(
            {
                "steps": _object(
                    {
                        "opening": _string(),
                        "discovery": _string(),
                        "demonstration": _string(),
                        "closing": _string(),
                    }
                ),
                "skills": _object(
                    {
                        "listening": _string(),
                        "questioning": _string(),
                        "objectionHandling": _string(),
                        "clarity": _string(),
                    }
                ),
                "opportunitiesMissed": {"type": "ARRAY", "items": _string()},
            }
        ),
        "advice": _object({"newHabit": _string(), "dropHabit": _string()}),
        "referencesUsed": {"type": "ARRAY", "items": _string()},
    }
)
"""Gemini ``responseSchema`` mirroring ``CoachingReport``."""


def _render_books(references: Sequence[ReferenceText]) -> str:
    sections = [f"### {reference.title}\n{reference.text.strip()}" for reference in references]
    return "\n\n".join(sections)


def build_coaching_prompt(transcript: str, references: Sequence[ReferenceText]) -> str:
    """Render the single-turn prompt sent to the analysis model."""

    return (
        "You are a sales-coach AI. You will be given a transcript of a sales "
        "conversation. Analyze it and fill in this JSON structure:\n\n"
        f"{_REPORT_SHAPE}\n\n"
        "Here is the transcript to analyze (delimited by triple-backticks):\n"
        f"{_FENCE}\n{transcript.strip()}\n{_FENCE}\n\n"
        "Respond **only** with the fully populated JSON.\n"
        "Every critical claim must quote the part of the conversation it refers to "
        "and the specific passage of a book that supports it. Whenever you criticise "
        "something, also state a concrete, better way of doing it.\n"
        "Your analysis must be based on these books and their content:\n"
        "Here are the books to use (delimited by triple-backticks):\n"
        f"{_FENCE}\n{_render_books(references)}\n{_FENCE}\n\n"
        "List the titles of the books you relied on in \"referencesUsed\".\n"
        "It is VERY important that you respond in English."
    )


__all__ = ["COACHING_RESPONSE_SCHEMA", "ReferenceText", "build_coaching_prompt"]
