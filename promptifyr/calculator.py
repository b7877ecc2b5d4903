"""
Purpose: Weighted scoring for oracle sub-scores, plus derived grade/level helpers.
Description: Combines clarity, correctness and hallucination-free sub-scores (0-100) into a single
total using a challenge's rubric weights. Pure functions only; no I/O.
Key Functions: combine, score_breakdown, clamp_score, grade_letter, performance_level,
level_for_points, points_to_next_level.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Dict

from .constants import LEVEL_THRESHOLDS, MAX_LEVEL, SCORE_MAX, SCORE_MIN

if TYPE_CHECKING:
    from .models import RubricWeights, SubScores


RUBRIC_FIELDS = ("clarity", "correctness", "hallucination_free")


def clamp_score(value: float) -> float:
    """Clamp a raw sub-score into [0, 100]. Fractions are kept; only the weighted total is rounded."""
    return float(max(SCORE_MIN, min(SCORE_MAX, value)))


def combine(weights: "RubricWeights", subscores: "SubScores") -> int:
    """
    Weighted total: round(c*wc/100 + o*wo/100 + h*wh/100).

    Sub-scores are used as given (fractions included) and the sum is rounded once, half up.
    Weights are not checked to sum to 100; the catalog enforces that when challenges load.
    """
    weighted = sum(getattr(subscores, f) * getattr(weights, f) for f in RUBRIC_FIELDS)
    return int(math.floor(weighted / 100 + 0.5))


def score_breakdown(weights: "RubricWeights", subscores: "SubScores") -> Dict[str, Any]:
    breakdown: Dict[str, Any] = {"field_scores": {}, "final_score": 0}
    for field_name in RUBRIC_FIELDS:
        weight = getattr(weights, field_name)
        value = getattr(subscores, field_name)
        breakdown["field_scores"][field_name] = {
            "value": value,
            "weight": weight,
            "points": value * weight / 100,
        }
    breakdown["final_score"] = combine(weights, subscores)
    return breakdown


def grade_letter(total: int) -> str:
    if total >= 90:
        return "A"
    if total >= 80:
        return "B"
    if total >= 70:
        return "C"
    if total >= 60:
        return "D"
    return "F"


def performance_level(total: int) -> str:
    if total >= 90:
        return "Excellent"
    if total >= 80:
        return "Good"
    if total >= 70:
        return "Fair"
    if total >= 60:
        return "Poor"
    return "Needs Improvement"


def level_for_points(points: int) -> int:
    level = 1
    for idx, lower in enumerate(LEVEL_THRESHOLDS, start=1):
        if points >= lower:
            level = idx
    return level


def points_to_next_level(points: int) -> int:
    level = level_for_points(points)
    if level >= MAX_LEVEL:
        return 0
    return max(0, LEVEL_THRESHOLDS[level] - points)
