"""
Purpose: Shared fixtures for the promptifyr test suite.
Description: Provides a deterministic stub oracle, the packaged catalog, an in-memory store and a
ready-to-use pipeline with one registered user.
Key Fixtures: stub_oracle, catalog, store, pipeline, user.
"""

from __future__ import annotations

import threading
from typing import Iterable, List, Optional, Tuple

import pytest

from promptifyr.catalog import ChallengeCatalog, load_catalog
from promptifyr.errors import EvaluationUnavailable
from promptifyr.models import Challenge, SubScores, User
from promptifyr.oracle import EvaluationRequest
from promptifyr.pipeline import SubmissionPipeline
from promptifyr.schema import FALLBACK_QUIZ, EvaluationOutcome, Quiz, parse_evaluation
from promptifyr.store import MemoryStore

Scores = Tuple[float, float, float]


class StubOracle:
    """Deterministic oracle: hands out queued sub-scores, then the default."""

    def __init__(
        self,
        scores: Optional[Iterable[Scores]] = None,
        *,
        default: Scores = (80, 90, 70),
        malformed: bool = False,
        unavailable: bool = False,
        suggestions_unavailable: bool = False,
    ) -> None:
        self.scores: List[Scores] = list(scores or [])
        self.default = default
        self.malformed = malformed
        self.unavailable = unavailable
        self.suggestions_unavailable = suggestions_unavailable
        self.generate_calls = 0
        self.evaluate_calls = 0
        self.suggest_calls = 0
        self._lock = threading.Lock()

    def generate_response(self, request: EvaluationRequest) -> str:
        if self.unavailable:
            raise EvaluationUnavailable("oracle down")
        with self._lock:
            self.generate_calls += 1
        return f"response to: {request.prompt_text}"

    def evaluate(self, request: EvaluationRequest, response_text: str) -> EvaluationOutcome:
        with self._lock:
            self.evaluate_calls += 1
            c, o, h = self.scores.pop(0) if self.scores else self.default
        if self.malformed:
            return parse_evaluation("this is not json", response_text)
        return EvaluationOutcome(
            status="ok",
            subscores=SubScores(clarity=c, correctness=o, hallucination_free=h),
            feedback="Clear prompt with a precise task.",
            hallucination_flags=(),
            response=response_text,
        )

    def suggest(self, request: EvaluationRequest, total: int) -> List[str]:
        with self._lock:
            self.suggest_calls += 1
        if self.suggestions_unavailable:
            raise EvaluationUnavailable("oracle down")
        return ["Be more specific about the output length"]

    def quiz(self, challenge: Challenge) -> Quiz:
        return FALLBACK_QUIZ


@pytest.fixture
def stub_oracle() -> StubOracle:
    return StubOracle()


@pytest.fixture
def catalog() -> ChallengeCatalog:
    return load_catalog()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def pipeline(store: MemoryStore, catalog: ChallengeCatalog, stub_oracle: StubOracle) -> SubmissionPipeline:
    return SubmissionPipeline(store, catalog, stub_oracle, user_update_attempts=100)


@pytest.fixture
def user(pipeline: SubmissionPipeline) -> User:
    return pipeline.register_user("Ada", user_id="ada")


@pytest.fixture
def make_pipeline(store: MemoryStore, catalog: ChallengeCatalog):
    """Build a pipeline over the shared store with a custom stub oracle; returns (pipeline, oracle)."""

    def _make(**oracle_kwargs) -> Tuple[SubmissionPipeline, StubOracle]:
        oracle = StubOracle(**oracle_kwargs)
        return SubmissionPipeline(store, catalog, oracle, user_update_attempts=100), oracle

    return _make
