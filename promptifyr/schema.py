"""
Purpose: Typed schemas for oracle (LLM) outputs.
Description: Defines strict Pydantic models for evaluation, suggestion and quiz responses, plus parsers
that never raise: unparseable evaluation output becomes an explicit "malformed" outcome carrying the
neutral fallback score.
Key Functions/Classes: OracleEvaluation, EvaluationOutcome, Quiz, parse_llm_json, parse_evaluation,
parse_suggestions, parse_quiz, get_evaluation_json_schema.
"""

from __future__ import annotations

import json
import math
from typing import Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from .calculator import clamp_score
from .constants import FALLBACK_FEEDBACK, FALLBACK_SUBSCORE, FALLBACK_SUGGESTIONS
from .feedback import normalize_flags, trim_text
from .models import SubScores


# AIDEV-NOTE: Keep the wire keys camelCase; they are what the evaluation prompt asks the model for.


class OracleEvaluation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    clarity: float
    correctness: float
    hallucination_free: float = Field(..., alias="hallucinationFree")
    feedback: str = "No feedback provided"
    hallucination_flags: List[str] = Field(default_factory=list, alias="hallucinationFlags")

    @field_validator("clarity", "correctness", "hallucination_free", mode="before")
    @classmethod
    def _reject_non_numeric(cls, value: Any) -> Any:
        # bool is an int subclass; "true" is not a score
        if isinstance(value, bool) or value is None:
            raise ValueError("sub-score must be a number")
        return value

    @field_validator("clarity", "correctness", "hallucination_free")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("sub-score must be finite")
        return value

    @field_validator("feedback", mode="before")
    @classmethod
    def _normalize_feedback(cls, value: Any) -> str:
        text = trim_text(str(value)) if value is not None else ""
        return text or "No feedback provided"

    @field_validator("hallucination_flags", mode="before")
    @classmethod
    def _normalize_flags(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ValueError("hallucinationFlags must be a list")
        return normalize_flags(value)

    def to_subscores(self) -> SubScores:
        return SubScores(
            clarity=clamp_score(self.clarity),
            correctness=clamp_score(self.correctness),
            hallucination_free=clamp_score(self.hallucination_free),
        )

    def out_of_range(self) -> bool:
        return any(not 0 <= v <= 100 for v in (self.clarity, self.correctness, self.hallucination_free))


NEUTRAL_SUBSCORES = SubScores(
    clarity=FALLBACK_SUBSCORE,
    correctness=FALLBACK_SUBSCORE,
    hallucination_free=FALLBACK_SUBSCORE,
)


class EvaluationOutcome(BaseModel):
    """Either validated sub-scores (status="ok") or the neutral fallback (status="malformed")."""

    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "malformed"]
    subscores: SubScores
    feedback: str
    hallucination_flags: Tuple[str, ...] = ()
    response: str = ""
    reason: Optional[str] = None
    clamped: bool = False

    @property
    def degraded(self) -> bool:
        return self.status == "malformed"

    @classmethod
    def neutral(cls, reason: str, response: str = "") -> "EvaluationOutcome":
        return cls(
            status="malformed",
            subscores=NEUTRAL_SUBSCORES,
            feedback=FALLBACK_FEEDBACK,
            hallucination_flags=(),
            response=response,
            reason=reason,
        )


class Quiz(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2, max_length=6)
    correct_answer: int = Field(..., alias="correctAnswer", ge=0)
    explanation: str = ""

    @field_validator("correct_answer")
    @classmethod
    def _answer_in_range(cls, value: int, info: ValidationInfo) -> int:
        options = info.data.get("options") or []
        if value >= len(options):
            raise ValueError("correctAnswer must index into options")
        return value


FALLBACK_QUIZ = Quiz(
    question="What could be improved about this prompt?",
    options=[
        "Add more specific instructions",
        "Remove unnecessary complexity",
        "Include output format requirements",
        "All of the above",
    ],
    correct_answer=3,
    explanation="Good prompts should be specific, clear, and include format requirements.",
)


def parse_llm_json(raw_text: str) -> Any:
    # AIDEV-NOTE: Strict JSON parse; one simple repair attempt if wrapped in code fences.
    text = raw_text.strip()
    if text.startswith("```") and text.endswith("```"):
        text = text.strip("`")
        # Remove optional language tag lines
        if "\n" in text:
            parts = text.split("\n", 1)
            text = parts[1] if len(parts) > 1 else parts[0]
    return json.loads(text)


def parse_evaluation(raw_text: Optional[str], response: str = "") -> EvaluationOutcome:
    """Parse an evaluation completion. Never raises; malformed content yields the neutral fallback."""
    if not raw_text or not raw_text.strip():
        return EvaluationOutcome.neutral("empty_content", response)
    try:
        obj = parse_llm_json(raw_text)
    except json.JSONDecodeError as e:
        return EvaluationOutcome.neutral(f"invalid_json: {e.msg}", response)
    if not isinstance(obj, dict):
        return EvaluationOutcome.neutral("not_an_object", response)
    try:
        parsed = OracleEvaluation.model_validate(obj)
    except PydanticValidationError as e:
        fields = ",".join(sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")}))
        return EvaluationOutcome.neutral(f"schema_mismatch: {fields}", response)
    return EvaluationOutcome(
        status="ok",
        subscores=parsed.to_subscores(),
        feedback=parsed.feedback,
        hallucination_flags=tuple(parsed.hallucination_flags),
        response=response,
        clamped=parsed.out_of_range(),
    )


def parse_suggestions(raw_text: Optional[str]) -> List[str]:
    """Accept a JSON array or an object with a "suggestions" array; otherwise the fixed fallback."""
    try:
        obj = parse_llm_json(raw_text or "")
    except json.JSONDecodeError:
        return list(FALLBACK_SUGGESTIONS)
    if isinstance(obj, dict):
        obj = obj.get("suggestions")
    if not isinstance(obj, list):
        return list(FALLBACK_SUGGESTIONS)
    suggestions = normalize_flags(obj, max_items=5, max_len=300)
    return suggestions or list(FALLBACK_SUGGESTIONS)


def parse_quiz(raw_text: Optional[str]) -> Quiz:
    try:
        obj = parse_llm_json(raw_text or "")
        return Quiz.model_validate(obj)
    except (json.JSONDecodeError, PydanticValidationError):
        return FALLBACK_QUIZ


def get_evaluation_json_schema() -> str:
    """Return a compact JSON schema snippet for inclusion in the prompt text."""
    # Using a hand-authored snippet for clarity in prompts.
    return (
        '{\n'
        '  "clarity": 0-100,\n'
        '  "correctness": 0-100,\n'
        '  "hallucinationFree": 0-100,\n'
        '  "feedback": "Detailed feedback explaining the scores and suggestions for improvement",\n'
        '  "hallucinationFlags": ["list", "of", "specific", "hallucination", "issues", "if", "any"]\n'
        '}'
    )
