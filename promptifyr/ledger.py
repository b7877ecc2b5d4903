"""
Purpose: Append-only prompt version ledger per (user, challenge) pair.
Description: Owns version numbering. Versions for a pair are contiguous from 1 and never edited.
New attempts go through the store's atomic allocate-and-append; a ConflictError from the store is
retried a bounded number of times before it reaches the caller.
Key Functions/Classes: PromptLedger.
"""

from __future__ import annotations

from typing import List

from .errors import ConflictError, NotFoundError
from .models import PromptVersion, VersionDraft
from .scoring_logging import log_event
from .store import Store


class PromptLedger:
    def __init__(self, store: Store, max_attempts: int = 3) -> None:
        self.store = store
        self.max_attempts = max(1, max_attempts)

    def next_version(self, user_id: str, challenge_id: str) -> int:
        """Informational only; use record() to actually claim a number."""
        return self.store.max_version(user_id, challenge_id) + 1

    def append(self, user_id: str, challenge_id: str, version: int, draft: VersionDraft) -> PromptVersion:
        """Persist a record under a caller-chosen version number; ConflictError if it is taken."""
        record = PromptVersion.from_draft(user_id, challenge_id, version, draft)
        return self.store.append_version(record)

    def record(self, user_id: str, challenge_id: str, draft: VersionDraft) -> PromptVersion:
        attempts = 0
        while True:
            attempts += 1
            try:
                version = self.store.append_next_version(user_id, challenge_id, draft)
            except ConflictError as e:
                if attempts >= self.max_attempts:
                    raise
                log_event(
                    "version_conflict_retry",
                    user_id=user_id,
                    challenge_id=challenge_id,
                    attempt=attempts,
                    error=str(e),
                )
                continue
            log_event(
                "version_recorded",
                user_id=user_id,
                challenge_id=challenge_id,
                version=version.version,
                submitted=version.submitted,
                total=version.total,
            )
            return version

    def history(self, user_id: str, challenge_id: str) -> List[PromptVersion]:
        """Newest first."""
        return list(reversed(self.store.versions(user_id, challenge_id)))

    def get(self, user_id: str, challenge_id: str, version: int) -> PromptVersion:
        for v in self.store.versions(user_id, challenge_id):
            if v.version == version:
                return v
        raise NotFoundError(f"Prompt version not found: {challenge_id} v{version}")

    def versions_for_user(self, user_id: str) -> List[PromptVersion]:
        return self.store.versions_for_user(user_id)

    def has_earlier_submission(self, version: PromptVersion) -> bool:
        """True if a submitted attempt with a lower version number exists for the same pair."""
        return any(
            v.submitted and v.version < version.version
            for v in self.store.versions(version.user_id, version.challenge_id)
        )
