"""
Purpose: Submission -> scoring -> progression orchestration.
Description: Validates a prompt, asks the oracle for a response and an evaluation (before any write),
combines sub-scores into a weighted total, appends the attempt to the ledger, then applies completion
credit and badges atomically. Draft ("test") attempts only record the generated response.
Key Functions/Classes: SubmissionPipeline.

AIDEV-NOTE: Oracle calls happen before any store mutation and outside every lock. An unavailable oracle
aborts the submission with nothing written.
"""

from __future__ import annotations

from typing import List, Optional

from .calculator import combine
from .catalog import ChallengeCatalog
from .config import PromptifyrConfig
from .constants import PROMPT_MAX_LENGTH, PROMPT_MIN_LENGTH, SUGGESTION_THRESHOLD, UNAVAILABLE_SUGGESTIONS
from .errors import EvaluationUnavailable, NotFoundError, ValidationError
from .leaderboard import Leaderboard
from .ledger import PromptLedger
from .models import (
    Challenge,
    DraftResult,
    LeaderboardEntry,
    Profile,
    PromptVersion,
    SubmissionResult,
    User,
    VersionDraft,
)
from .oracle import EvaluationOracle, EvaluationRequest
from .progression import ProgressionTracker
from .schema import Quiz
from .scoring_logging import log_event
from .store import Store


def validate_prompt(prompt_text: object) -> str:
    if not isinstance(prompt_text, str) or not prompt_text.strip():
        raise ValidationError("Prompt is required")
    text = prompt_text.strip()
    if not PROMPT_MIN_LENGTH <= len(text) <= PROMPT_MAX_LENGTH:
        raise ValidationError(
            f"Prompt must be between {PROMPT_MIN_LENGTH} and {PROMPT_MAX_LENGTH} characters"
        )
    return text


class SubmissionPipeline:
    def __init__(
        self,
        store: Store,
        catalog: ChallengeCatalog,
        oracle: EvaluationOracle,
        *,
        ledger_attempts: int = 3,
        user_update_attempts: int = 5,
        leaderboard_page_size: int = 50,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.oracle = oracle
        self.ledger = PromptLedger(store, max_attempts=ledger_attempts)
        self.tracker = ProgressionTracker(store, self.ledger, catalog, max_attempts=user_update_attempts)
        self.leaderboard = Leaderboard(store, page_size=leaderboard_page_size)

    @classmethod
    def from_config(
        cls, cfg: PromptifyrConfig, store: Store, catalog: ChallengeCatalog, oracle: EvaluationOracle
    ) -> "SubmissionPipeline":
        return cls(
            store,
            catalog,
            oracle,
            ledger_attempts=cfg.ledger_attempts,
            user_update_attempts=cfg.user_update_attempts,
            leaderboard_page_size=cfg.leaderboard_page_size,
        )

    # Users

    def register_user(self, name: str, user_id: Optional[str] = None) -> User:
        if not name or not name.strip():
            raise ValidationError("Name is required")
        fields = {"name": name.strip()}
        if user_id:
            fields["id"] = user_id
        return self.store.create_user(User(**fields))

    def profile(self, user_id: str) -> Profile:
        user = self.store.get_user(user_id)
        versions = self.ledger.versions_for_user(user_id)
        return Profile(
            user=user,
            level=user.level,
            points_to_next_level=user.points_to_next_level,
            submitted_count=sum(1 for v in versions if v.submitted),
            version_count=len(versions),
        )

    # Attempts

    def _resolve(self, user_id: str, challenge_id: str) -> Challenge:
        challenge = self.catalog.get(challenge_id)
        # Existence check only; the identity boundary has already authenticated the id.
        self.store.get_user(user_id)
        return challenge

    def submit(self, user_id: str, challenge_id: str, prompt_text: str) -> SubmissionResult:
        prompt = validate_prompt(prompt_text)
        challenge = self._resolve(user_id, challenge_id)
        log_event("submission_started", user_id=user_id, challenge_id=challenge_id, mode="submit")

        request = EvaluationRequest.for_challenge(challenge, prompt)
        response = self.oracle.generate_response(request)
        outcome = self.oracle.evaluate(request, response)
        if outcome.degraded:
            log_event("evaluation_degraded", user_id=user_id, challenge_id=challenge_id, reason=outcome.reason)
        elif outcome.clamped:
            log_event("subscores_clamped", user_id=user_id, challenge_id=challenge_id)

        total = combine(challenge.rubric, outcome.subscores)
        draft = VersionDraft(
            prompt_text=prompt,
            response=response,
            subscores=outcome.subscores,
            total=total,
            feedback=outcome.feedback,
            hallucination_flags=outcome.hallucination_flags,
            submitted=True,
            degraded=outcome.degraded,
        )
        version = self.ledger.record(user_id, challenge_id, draft)
        progress = self.tracker.apply(version)

        suggestions: List[str] = []
        if total < SUGGESTION_THRESHOLD:
            try:
                suggestions = self.oracle.suggest(request, total)
            except EvaluationUnavailable:
                suggestions = list(UNAVAILABLE_SUGGESTIONS)

        return SubmissionResult(
            version=version,
            completion_awarded=progress.completion_awarded,
            points_awarded=progress.points_awarded,
            badges_awarded=progress.badges_awarded,
            suggestions=suggestions,
            degraded=outcome.degraded,
        )

    def test(self, user_id: str, challenge_id: str, prompt_text: str) -> DraftResult:
        """Run the prompt and keep the response as a draft version; nothing is scored."""
        prompt = validate_prompt(prompt_text)
        challenge = self._resolve(user_id, challenge_id)
        log_event("submission_started", user_id=user_id, challenge_id=challenge_id, mode="test")

        response = self.oracle.generate_response(EvaluationRequest.for_challenge(challenge, prompt))
        draft = VersionDraft(prompt_text=prompt, response=response, submitted=False)
        version = self.ledger.record(user_id, challenge_id, draft)
        return DraftResult(version=version, response=response)

    # Reads

    def history(self, user_id: str, challenge_id: str) -> List[PromptVersion]:
        self.catalog.get(challenge_id)
        return self.ledger.history(user_id, challenge_id)

    def get_version(self, user_id: str, challenge_id: str, version: int) -> PromptVersion:
        if version < 1:
            raise ValidationError("Version must be a positive integer")
        return self.ledger.get(user_id, challenge_id, version)

    def quiz(self, challenge_id: str) -> Quiz:
        challenge = self.catalog.get(challenge_id)
        if not challenge.flawed_prompt_example:
            raise NotFoundError(f"Quiz not available for challenge: {challenge_id}")
        return self.oracle.quiz(challenge)

    def top(self, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        return self.leaderboard.top(limit)
