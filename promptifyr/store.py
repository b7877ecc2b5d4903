"""
Purpose: Keyed store abstraction for users and the prompt version ledger.
Description: Declares the two atomic primitives the pipeline relies on (allocate-and-append of a
version number, compare-and-set of a user aggregate) and a thread-safe in-memory implementation.
Key Functions/Classes: Store, MemoryStore.

AIDEV-NOTE: Never call the oracle (or any slow I/O) while holding a store lock.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List, Tuple

from .errors import ConcurrencyError, ConflictError, NotFoundError, ValidationError
from .models import PromptVersion, User, VersionDraft

PairKey = Tuple[str, str]


class Store(ABC):
    # Users

    @abstractmethod
    def create_user(self, user: User) -> User:
        """Insert a new user; ValidationError if the id is taken."""

    @abstractmethod
    def get_user(self, user_id: str) -> User:
        """Return a private copy of the user; NotFoundError if absent."""

    @abstractmethod
    def list_users(self) -> List[User]:
        ...

    @abstractmethod
    def compare_and_set_user(self, user: User, expected_revision: int) -> User:
        """Replace the stored user only if its revision still equals expected_revision.

        Raises ConcurrencyError otherwise. Returns the stored copy with the bumped revision.
        """

    # Versions

    @abstractmethod
    def append_version(self, version: PromptVersion) -> PromptVersion:
        """Insert a version with a caller-chosen number; ConflictError if already taken."""

    @abstractmethod
    def append_next_version(self, user_id: str, challenge_id: str, draft: VersionDraft) -> PromptVersion:
        """Allocate max+1 for the pair and insert it in one atomic step."""

    @abstractmethod
    def max_version(self, user_id: str, challenge_id: str) -> int:
        ...

    @abstractmethod
    def versions(self, user_id: str, challenge_id: str) -> List[PromptVersion]:
        """All versions for the pair, ascending by version number."""

    @abstractmethod
    def versions_for_user(self, user_id: str) -> List[PromptVersion]:
        """All versions of a user across challenges, in insertion order."""


class MemoryStore(Store):
    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._pairs: Dict[PairKey, List[PromptVersion]] = defaultdict(list)
        self._by_user: Dict[str, List[PromptVersion]] = defaultdict(list)
        self._users_lock = threading.Lock()
        self._versions_lock = threading.Lock()

    # Persistence hooks, called with the relevant lock held.

    def _on_user_written(self, user: User) -> None:
        pass

    def _on_version_appended(self, version: PromptVersion) -> None:
        pass

    # Users

    def create_user(self, user: User) -> User:
        with self._users_lock:
            if user.id in self._users:
                raise ValidationError(f"User already exists: {user.id}")
            stored = user.model_copy(deep=True)
            self._users[user.id] = stored
            self._on_user_written(stored)
            return stored.model_copy(deep=True)

    def get_user(self, user_id: str) -> User:
        with self._users_lock:
            try:
                return self._users[user_id].model_copy(deep=True)
            except KeyError:
                raise NotFoundError(f"User not found: {user_id}") from None

    def list_users(self) -> List[User]:
        with self._users_lock:
            return [u.model_copy(deep=True) for u in self._users.values()]

    def compare_and_set_user(self, user: User, expected_revision: int) -> User:
        with self._users_lock:
            current = self._users.get(user.id)
            if current is None:
                raise NotFoundError(f"User not found: {user.id}")
            if current.revision != expected_revision:
                raise ConcurrencyError(
                    f"User {user.id} changed concurrently (expected revision {expected_revision}, "
                    f"found {current.revision})"
                )
            stored = user.model_copy(update={"revision": expected_revision + 1}, deep=True)
            self._users[user.id] = stored
            self._on_user_written(stored)
            return stored.model_copy(deep=True)

    # Versions

    def _index_locked(self, version: PromptVersion) -> None:
        self._pairs[(version.user_id, version.challenge_id)].append(version)
        self._by_user[version.user_id].append(version)

    def _insert_locked(self, version: PromptVersion) -> PromptVersion:
        self._index_locked(version)
        self._on_version_appended(version)
        return version

    def append_version(self, version: PromptVersion) -> PromptVersion:
        with self._versions_lock:
            key = (version.user_id, version.challenge_id)
            if any(v.version == version.version for v in self._pairs.get(key, ())):
                raise ConflictError(
                    f"Version {version.version} already exists for user={version.user_id} "
                    f"challenge={version.challenge_id}"
                )
            expected = self._max_version_locked(key) + 1
            if version.version != expected:
                raise ConflictError(f"Version {version.version} is not the next version ({expected})")
            return self._insert_locked(version)

    def append_next_version(self, user_id: str, challenge_id: str, draft: VersionDraft) -> PromptVersion:
        with self._versions_lock:
            number = self._max_version_locked((user_id, challenge_id)) + 1
            version = PromptVersion.from_draft(user_id, challenge_id, number, draft)
            return self._insert_locked(version)

    def _max_version_locked(self, key: PairKey) -> int:
        existing = self._pairs.get(key)
        return existing[-1].version if existing else 0

    def max_version(self, user_id: str, challenge_id: str) -> int:
        with self._versions_lock:
            return self._max_version_locked((user_id, challenge_id))

    def versions(self, user_id: str, challenge_id: str) -> List[PromptVersion]:
        with self._versions_lock:
            return list(self._pairs.get((user_id, challenge_id), ()))

    def versions_for_user(self, user_id: str) -> List[PromptVersion]:
        with self._versions_lock:
            return list(self._by_user.get(user_id, ()))
