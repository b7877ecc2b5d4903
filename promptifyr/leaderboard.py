"""
Purpose: Read-only leaderboard projection over user point totals.
Description: Orders users by points (desc), then join time, then id, so equal scores always rank the
same way; truncates to a page size. Reads straight from the store, no caching.
Key Functions/Classes: rank_users, Leaderboard.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .constants import LEADERBOARD_PAGE_SIZE
from .models import LeaderboardEntry, User
from .store import Store


def _sort_key(user: User):
    return (-user.points, user.joined_at, user.id)


def rank_users(users: Iterable[User], limit: Optional[int] = LEADERBOARD_PAGE_SIZE) -> List[LeaderboardEntry]:
    ordered = sorted(users, key=_sort_key)
    if limit is not None:
        ordered = ordered[: max(0, limit)]
    return [
        LeaderboardEntry(
            rank=rank,
            user_id=u.id,
            name=u.name,
            points=u.points,
            level=u.level,
            badge_count=len(u.badges),
            completed_count=len(u.completed_challenges),
        )
        for rank, u in enumerate(ordered, start=1)
    ]


class Leaderboard:
    def __init__(self, store: Store, page_size: int = LEADERBOARD_PAGE_SIZE) -> None:
        self.store = store
        self.page_size = page_size

    def top(self, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        return rank_users(self.store.list_users(), limit if limit is not None else self.page_size)

    def rank_of(self, user_id: str) -> Optional[int]:
        for entry in rank_users(self.store.list_users(), limit=None):
            if entry.user_id == user_id:
                return entry.rank
        return None
