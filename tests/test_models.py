"""
Purpose: Unit tests for the persisted model shapes.
Description: Field bounds on challenges, drafts, versions and users, plus derived grade/level properties.
Key Tests: test_submitted_draft_requires_subscores, test_user_rejects_duplicate_ids.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from promptifyr.models import Challenge, PromptVersion, SubScores, User, VersionDraft


def test_challenge_title_length_and_defaults():
    c = Challenge(id="c", title="T", task="do it", difficulty="intermediate")
    assert c.points == 20
    assert c.rubric.total == 100
    assert c.completion_threshold == 60
    with pytest.raises(PydanticValidationError):
        Challenge(id="c", title="x" * 101, task="do it")


def test_subscores_bounds():
    with pytest.raises(PydanticValidationError):
        SubScores(clarity=101, correctness=0, hallucination_free=0)
    with pytest.raises(PydanticValidationError):
        SubScores(clarity=-1, correctness=0, hallucination_free=0)


def test_submitted_draft_requires_subscores():
    with pytest.raises(PydanticValidationError):
        VersionDraft(prompt_text="p", submitted=True)
    assert VersionDraft(prompt_text="p").subscores is None


def test_version_from_draft_and_grades():
    draft = VersionDraft(
        prompt_text="p",
        subscores=SubScores(clarity=90, correctness=90, hallucination_free=90),
        total=90,
        submitted=True,
    )
    v = PromptVersion.from_draft("u", "c", 3, draft)
    assert v.version == 3
    assert v.grade_letter == "A"
    assert v.performance_level == "Excellent"
    assert v.submitted_at is not None
    with pytest.raises(PydanticValidationError):
        PromptVersion.from_draft("u", "c", 0, draft)


def test_versions_are_immutable():
    v = PromptVersion.from_draft("u", "c", 1, VersionDraft(prompt_text="p"))
    with pytest.raises(PydanticValidationError):
        v.total = 99


def test_user_rejects_duplicate_ids():
    with pytest.raises(PydanticValidationError):
        User(name="Ada", badges=["a", "a"])
    with pytest.raises(PydanticValidationError):
        User(name="Ada", completed_challenges=["c", "c"])
    with pytest.raises(PydanticValidationError):
        User(name="")


def test_user_level_properties():
    u = User(name="Ada", points=350)
    assert u.level == 3
    assert u.points_to_next_level == 251
