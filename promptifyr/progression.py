"""
Purpose: Completion credit and badge awards for a scored submission.
Description: Decides first-time completion for a (user, challenge) pair, then runs the badge rules, and
commits both as one compare-and-set on the user aggregate (retried on lost races).
Key Functions/Classes: ProgressionTracker.

AIDEV-NOTE: Completion is gated on "no earlier submitted attempt exists", not "no earlier passing attempt".
A first submission below the threshold therefore blocks completion credit for that pair for good.
This is current product behaviour pending clarification; do not "fix" silently.
"""

from __future__ import annotations

from datetime import datetime, timezone

from .badges import apply_badges, count_activity
from .catalog import ChallengeCatalog
from .errors import ConcurrencyError
from .ledger import PromptLedger
from .models import ProgressUpdate, PromptVersion
from .scoring_logging import log_event
from .store import Store


class ProgressionTracker:
    def __init__(self, store: Store, ledger: PromptLedger, catalog: ChallengeCatalog, max_attempts: int = 5) -> None:
        self.store = store
        self.ledger = ledger
        self.catalog = catalog
        self.max_attempts = max(1, max_attempts)

    def qualifies_for_completion(self, version: PromptVersion) -> bool:
        challenge = self.catalog.get(version.challenge_id)
        if not version.submitted or version.total < challenge.completion_threshold:
            return False
        return not self.ledger.has_earlier_submission(version)

    def apply(self, version: PromptVersion) -> ProgressUpdate:
        """Apply completion credit and badges for a committed, submitted version."""
        if not version.submitted:
            raise ValueError("draft attempts do not take part in progression")
        challenge = self.catalog.get(version.challenge_id)
        qualifies = self.qualifies_for_completion(version)

        attempts = 0
        while True:
            attempts += 1
            user = self.store.get_user(version.user_id)
            expected_revision = user.revision
            updated = user
            completion_awarded = False

            # Guarded: a retried or duplicated submission must not grant credit twice.
            if qualifies and challenge.id not in user.completed_challenges:
                updated = updated.model_copy(
                    update={
                        "completed_challenges": [*user.completed_challenges, challenge.id],
                        "points": user.points + challenge.points,
                    }
                )
                completion_awarded = True

            counts = count_activity(
                len(updated.completed_challenges),
                self.ledger.versions_for_user(user.id),
            )
            updated, badges_awarded = apply_badges(updated, self.catalog.badges, counts)
            updated = updated.model_copy(update={"last_active": datetime.now(timezone.utc)})

            try:
                stored = self.store.compare_and_set_user(updated, expected_revision)
            except ConcurrencyError as e:
                if attempts >= self.max_attempts:
                    raise
                log_event("user_update_retry", user_id=user.id, attempt=attempts, error=str(e))
                continue
            break

        if completion_awarded:
            log_event(
                "completion_awarded",
                user_id=stored.id,
                challenge_id=challenge.id,
                version=version.version,
                points=challenge.points,
            )
        for badge_id in badges_awarded:
            log_event("badge_awarded", user_id=stored.id, badge_id=badge_id)

        return ProgressUpdate(
            user=stored,
            completion_awarded=completion_awarded,
            points_awarded=stored.points - user.points,
            badges_awarded=badges_awarded,
        )
