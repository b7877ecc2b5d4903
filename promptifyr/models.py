"""
Purpose: Shared Pydantic models for the promptifyr package.
Description: Centralizes the persisted shapes (Challenge, PromptVersion, User, Badge) and the
result objects returned by the pipeline to the CLI and API callers.
Key Functions/Classes: `RubricWeights`, `SubScores`, `Challenge`, `VersionDraft`, `PromptVersion`,
`User`, `Badge`, `LeaderboardEntry`, `SubmissionResult`, `DraftResult`.
Note: Derived values (grade letter, level) are properties computed from stored fields, never persisted.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, confloat, conint, field_validator, model_validator

from .calculator import grade_letter, level_for_points, performance_level, points_to_next_level
from .constants import COMPLETION_THRESHOLD, DIFFICULTY_POINTS


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


Difficulty = Literal["beginner", "intermediate", "advanced"]
BadgeMetric = Literal["completed_challenges", "submissions_at_80", "submissions_at_90", "total_versions"]


class RubricWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    clarity: conint(ge=0, le=100)
    correctness: conint(ge=0, le=100)
    hallucination_free: conint(ge=0, le=100)

    @property
    def total(self) -> int:
        return self.clarity + self.correctness + self.hallucination_free


class SubScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Kept unrounded; combine() rounds the weighted total once.
    clarity: confloat(ge=0, le=100)
    correctness: confloat(ge=0, le=100)
    hallucination_free: confloat(ge=0, le=100)


class Challenge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    task: str = Field(..., min_length=1)
    difficulty: Difficulty = "beginner"
    category: str = "General"
    icon: str = "🎯"
    input_content: str = ""
    expected_output: str = ""
    rubric: RubricWeights = RubricWeights(clarity=30, correctness=50, hallucination_free=20)
    points: conint(ge=1)
    is_active: bool = True
    order: int = 0
    hints: Tuple[str, ...] = ()
    flawed_prompt_example: Optional[str] = None
    completion_threshold: conint(ge=0, le=100) = COMPLETION_THRESHOLD

    @model_validator(mode="before")
    @classmethod
    def _default_points_from_tier(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("points") is None:
            data = dict(data)
            data["points"] = DIFFICULTY_POINTS.get(data.get("difficulty", "beginner"), 10)
        return data

    @model_validator(mode="after")
    def _rubric_sums_to_100(self) -> "Challenge":
        if self.rubric.total != 100:
            raise ValueError(f"rubric weights for {self.id!r} sum to {self.rubric.total}, expected 100")
        return self


class VersionDraft(BaseModel):
    """Everything about an attempt except its ledger-assigned version number."""

    model_config = ConfigDict(frozen=True)

    prompt_text: str
    response: str = ""
    subscores: Optional[SubScores] = None
    total: conint(ge=0, le=100) = 0
    feedback: str = ""
    hallucination_flags: Tuple[str, ...] = ()
    submitted: bool = False
    degraded: bool = False

    @model_validator(mode="after")
    def _submitted_needs_scores(self) -> "VersionDraft":
        if self.submitted and self.subscores is None:
            raise ValueError("submitted attempts must carry sub-scores")
        return self


class PromptVersion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    user_id: str
    challenge_id: str
    version: conint(ge=1)
    prompt_text: str
    response: str = ""
    subscores: Optional[SubScores] = None
    total: conint(ge=0, le=100) = 0
    feedback: str = ""
    hallucination_flags: Tuple[str, ...] = ()
    submitted: bool = False
    degraded: bool = False
    submitted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="before")
    @classmethod
    def _stamp_submission(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("submitted") and not data.get("submitted_at"):
            data = dict(data)
            data["submitted_at"] = _utcnow()
        return data

    @classmethod
    def from_draft(cls, user_id: str, challenge_id: str, version: int, draft: VersionDraft) -> "PromptVersion":
        return cls(user_id=user_id, challenge_id=challenge_id, version=version, **draft.model_dump())

    @property
    def grade_letter(self) -> str:
        return grade_letter(self.total)

    @property
    def performance_level(self) -> str:
        return performance_level(self.total)


class User(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1, max_length=50)
    points: conint(ge=0) = 0
    badges: List[str] = Field(default_factory=list)
    completed_challenges: List[str] = Field(default_factory=list)
    joined_at: datetime = Field(default_factory=_utcnow)
    last_active: datetime = Field(default_factory=_utcnow)
    # Bumped by the store on every successful write; used for compare-and-set.
    revision: int = 0

    @field_validator("badges", "completed_challenges")
    @classmethod
    def _no_duplicates(cls, value: List[str]) -> List[str]:
        if len(set(value)) != len(value):
            raise ValueError("ids must be unique")
        return value

    @property
    def level(self) -> int:
        return level_for_points(self.points)

    @property
    def points_to_next_level(self) -> int:
        return points_to_next_level(self.points)


class Badge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    icon: str = ""
    metric: BadgeMetric
    minimum: conint(ge=1)
    points: conint(ge=0)


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    name: str
    points: int
    level: int
    badge_count: int
    completed_count: int


class ProgressUpdate(BaseModel):
    user: User
    completion_awarded: bool = False
    points_awarded: int = 0
    badges_awarded: List[str] = Field(default_factory=list)


class SubmissionResult(BaseModel):
    version: PromptVersion
    completion_awarded: bool = False
    points_awarded: int = 0
    badges_awarded: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    degraded: bool = False


class DraftResult(BaseModel):
    version: PromptVersion
    response: str


class Profile(BaseModel):
    user: User
    level: int
    points_to_next_level: int
    submitted_count: int
    version_count: int
