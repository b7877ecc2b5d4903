"""
Purpose: Constants for the promptifyr package.
Description: Centralizes simple immutable values to avoid magic numbers across the pipeline.
Key Constants: COMPLETION_THRESHOLD, LEVEL_THRESHOLDS, PROMPT_MIN_LENGTH, FALLBACK_SUBSCORE.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

COMPLETION_THRESHOLD: int = 60
HIGH_SCORE_THRESHOLD: int = 80
EXCELLENT_SCORE_THRESHOLD: int = 90
SUGGESTION_THRESHOLD: int = 80

PROMPT_MIN_LENGTH: int = 10
PROMPT_MAX_LENGTH: int = 5000

SCORE_MIN: int = 0
SCORE_MAX: int = 100

# Lower bound (inclusive) of points for levels 1..5.
LEVEL_THRESHOLDS: List[int] = [0, 101, 301, 601, 1001]
MAX_LEVEL: int = len(LEVEL_THRESHOLDS)

DIFFICULTY_ORDER: Tuple[str, ...] = ("beginner", "intermediate", "advanced")
DIFFICULTY_POINTS: Dict[str, int] = {
    "beginner": 10,
    "intermediate": 20,
    "advanced": 30,
}

LEADERBOARD_PAGE_SIZE: int = 50

FALLBACK_SUBSCORE: int = 50
FALLBACK_FEEDBACK: str = "Unable to generate detailed evaluation. Please try again."
FALLBACK_SUGGESTIONS: List[str] = [
    "Be more specific in your instructions",
    "Add context about the desired output format",
    "Include constraints to prevent off-topic responses",
]
UNAVAILABLE_SUGGESTIONS: List[str] = ["Unable to generate suggestions. Please try again."]

MAX_FEEDBACK_LENGTH: int = 2000
MAX_HALLUCINATION_FLAGS: int = 10
MAX_FLAG_LENGTH: int = 200
