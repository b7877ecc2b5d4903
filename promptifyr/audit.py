"""
Purpose: Rebuild a user's derived progress from the version ledger and compare it to the stored aggregate.
Description: Replays the user's versions in insertion order, applying the same completion rule and badge
rules the live pipeline applies after each submitted attempt. The stored points, completed set and
badges should always equal the replayed ones.
Key Functions/Classes: ReconstructedProgress, AuditReport, reconstruct_progress, audit_user.
"""

from __future__ import annotations

from typing import Iterable, List

from pydantic import BaseModel, Field

from .badges import count_activity, evaluate_badges
from .catalog import ChallengeCatalog
from .models import PromptVersion
from .store import Store


class ReconstructedProgress(BaseModel):
    points: int = 0
    completed_challenges: List[str] = Field(default_factory=list)
    badges: List[str] = Field(default_factory=list)


class AuditReport(BaseModel):
    user_id: str
    expected: ReconstructedProgress
    stored_points: int
    stored_completed: List[str]
    stored_badges: List[str]
    differences: List[str] = Field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.differences


def reconstruct_progress(versions: Iterable[PromptVersion], catalog: ChallengeCatalog) -> ReconstructedProgress:
    state = ReconstructedProgress()
    seen: List[PromptVersion] = []
    for v in versions:
        seen.append(v)
        if not v.submitted:
            continue
        challenge = catalog.get(v.challenge_id)
        earlier_submitted = any(
            p.submitted and p.challenge_id == v.challenge_id and p.version < v.version for p in seen
        )
        if (
            v.total >= challenge.completion_threshold
            and not earlier_submitted
            and challenge.id not in state.completed_challenges
        ):
            state.completed_challenges.append(challenge.id)
            state.points += challenge.points
        counts = count_activity(len(state.completed_challenges), seen)
        for badge in evaluate_badges(catalog.badges, counts, state.badges):
            state.badges.append(badge.id)
            state.points += badge.points
    return state


def audit_user(store: Store, catalog: ChallengeCatalog, user_id: str) -> AuditReport:
    user = store.get_user(user_id)
    expected = reconstruct_progress(store.versions_for_user(user_id), catalog)
    differences: List[str] = []
    if expected.points != user.points:
        differences.append(f"points: stored={user.points} expected={expected.points}")
    if set(expected.completed_challenges) != set(user.completed_challenges):
        differences.append(
            f"completed_challenges: stored={sorted(user.completed_challenges)} "
            f"expected={sorted(expected.completed_challenges)}"
        )
    if set(expected.badges) != set(user.badges):
        differences.append(f"badges: stored={sorted(user.badges)} expected={sorted(expected.badges)}")
    return AuditReport(
        user_id=user_id,
        expected=expected,
        stored_points=user.points,
        stored_completed=list(user.completed_challenges),
        stored_badges=list(user.badges),
        differences=differences,
    )
