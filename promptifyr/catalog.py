"""
Purpose: Read-only challenge catalog and badge rule set.
Description: Loads challenges and badges from YAML, validates them (rubric weights must sum to 100)
and serves lookups to the pipeline. Never mutated by the pipeline.
Key Functions/Classes: ChallengeCatalog, load_catalog, DEFAULT_CATALOG_PATH.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from .constants import DIFFICULTY_ORDER
from .errors import NotFoundError, ValidationError
from .models import Badge, Challenge


DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "catalog.yaml"

# Global cache for the packaged catalog
_default_catalog: Optional["ChallengeCatalog"] = None


class ChallengeCatalog:
    def __init__(self, challenges: Iterable[Challenge], badges: Iterable[Badge] = ()) -> None:
        self._challenges: Dict[str, Challenge] = {}
        for challenge in challenges:
            if challenge.id in self._challenges:
                raise ValidationError(f"duplicate challenge id: {challenge.id}")
            self._challenges[challenge.id] = challenge
        self._badges: Tuple[Badge, ...] = tuple(badges)
        badge_ids = [b.id for b in self._badges]
        if len(set(badge_ids)) != len(badge_ids):
            raise ValidationError("duplicate badge id in rule set")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChallengeCatalog":
        try:
            challenges = [Challenge.model_validate(c) for c in data.get("challenges") or []]
            badges = [Badge.model_validate(b) for b in data.get("badges") or []]
        except PydanticValidationError as e:
            raise ValidationError(f"invalid catalog: {e}") from e
        return cls(challenges, badges)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ChallengeCatalog":
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Challenge catalog not found: {p}")
        with p.open("r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValidationError(f"invalid catalog YAML in {p}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"catalog {p} must be a mapping with 'challenges' and 'badges'")
        return cls.from_dict(data)

    def get(self, challenge_id: str) -> Challenge:
        try:
            return self._challenges[challenge_id]
        except KeyError:
            raise NotFoundError(f"Challenge not found: {challenge_id}") from None

    def list(self, difficulty: Optional[str] = None, category: Optional[str] = None) -> List[Challenge]:
        """Active challenges, filtered, sorted by difficulty tier then display order."""
        selected = [
            c
            for c in self._challenges.values()
            if c.is_active
            and (difficulty is None or c.difficulty == difficulty)
            and (category is None or c.category == category)
        ]
        return sorted(selected, key=lambda c: (DIFFICULTY_ORDER.index(c.difficulty), c.order, c.id))

    @property
    def badges(self) -> Tuple[Badge, ...]:
        return self._badges

    def badge(self, badge_id: str) -> Badge:
        for b in self._badges:
            if b.id == badge_id:
                return b
        raise NotFoundError(f"Badge not found: {badge_id}")

    def __contains__(self, challenge_id: object) -> bool:
        return challenge_id in self._challenges

    def __len__(self) -> int:
        return len(self._challenges)


def load_catalog(path: Optional[str | Path] = None) -> ChallengeCatalog:
    """Load a catalog from YAML; the packaged default is loaded once and cached."""
    global _default_catalog

    if path is not None and Path(path) != DEFAULT_CATALOG_PATH:
        return ChallengeCatalog.from_yaml(path)
    if _default_catalog is None:
        _default_catalog = ChallengeCatalog.from_yaml(DEFAULT_CATALOG_PATH)
    return _default_catalog
