"""
Purpose: Badge rule evaluation over a user's aggregate activity.
Description: Counts completed challenges, high-scoring submissions and total versions from the ledger,
then returns the badges whose predicates hold and that the user does not already hold. Evaluation is
in catalog order, and re-evaluating a held badge is a no-op.
Key Functions/Classes: BadgeCounts, count_activity, evaluate_badges, apply_badges.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .constants import EXCELLENT_SCORE_THRESHOLD, HIGH_SCORE_THRESHOLD
from .models import Badge, PromptVersion, User


@dataclass(frozen=True)
class BadgeCounts:
    completed_challenges: int = 0
    submissions_at_80: int = 0
    submissions_at_90: int = 0
    total_versions: int = 0

    def metric(self, name: str) -> int:
        return getattr(self, name)


def count_activity(completed_challenges: int, versions: Iterable[PromptVersion]) -> BadgeCounts:
    at_80 = at_90 = total = 0
    for v in versions:
        total += 1
        if not v.submitted:
            continue
        if v.total >= HIGH_SCORE_THRESHOLD:
            at_80 += 1
        if v.total >= EXCELLENT_SCORE_THRESHOLD:
            at_90 += 1
    return BadgeCounts(
        completed_challenges=completed_challenges,
        submissions_at_80=at_80,
        submissions_at_90=at_90,
        total_versions=total,
    )


def is_satisfied(badge: Badge, counts: BadgeCounts) -> bool:
    return counts.metric(badge.metric) >= badge.minimum


def evaluate_badges(rules: Sequence[Badge], counts: BadgeCounts, held: Iterable[str]) -> List[Badge]:
    held_ids = set(held)
    return [b for b in rules if b.id not in held_ids and is_satisfied(b, counts)]


def apply_badges(user: User, rules: Sequence[Badge], counts: BadgeCounts) -> Tuple[User, List[str]]:
    """Return a copy of user with newly earned badges and their points added."""
    earned = evaluate_badges(rules, counts, user.badges)
    if not earned:
        return user, []
    updated = user.model_copy(
        update={
            "badges": [*user.badges, *(b.id for b in earned)],
            "points": user.points + sum(b.points for b in earned),
        }
    )
    return updated, [b.id for b in earned]
