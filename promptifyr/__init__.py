"""
Purpose: promptifyr package for prompt-engineering challenges scored by an LLM.
Description: Submission -> scoring -> progression pipeline with a versioned prompt ledger, badge rules
and a leaderboard.
Key Functions/Classes: `SubmissionPipeline`, `build_pipeline`, `combine`.
"""

from .calculator import combine
from .catalog import ChallengeCatalog, load_catalog
from .errors import (
    ConcurrencyError,
    ConflictError,
    EvaluationUnavailable,
    NotFoundError,
    PromptifyrError,
    ValidationError,
)
from .pipeline import SubmissionPipeline
from .run import build_pipeline
from .store import MemoryStore, Store

__all__ = [
    "ChallengeCatalog",
    "ConcurrencyError",
    "ConflictError",
    "EvaluationUnavailable",
    "MemoryStore",
    "NotFoundError",
    "PromptifyrError",
    "Store",
    "SubmissionPipeline",
    "ValidationError",
    "build_pipeline",
    "combine",
    "load_catalog",
]
