"""
Purpose: Centralized configuration helpers for the promptifyr package.
Description: Loads environment variables and builds the runtime configuration used by the pipeline and CLI.
Key Functions/Classes: `get_openrouter_api_key`, `get_openrouter_endpoint`, `get_default_model`,
`PromptifyrConfig`, `load_config`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .constants import LEADERBOARD_PAGE_SIZE


# AIDEV-NOTE: Load env from .env if present to ease local dev.
load_dotenv()


def get_openrouter_api_key() -> Optional[str]:
    # Support both common env var names
    return os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENROUTER_KEY")


def get_openrouter_endpoint() -> str:
    return os.getenv("OPENROUTER_ENDPOINT", "https://openrouter.ai/api/v1")


def get_default_model() -> str:
    """Get the default LLM model from environment variables."""
    return os.getenv("CUSTOM_MODEL") or os.getenv("DEFAULT_LLM_MODEL", "openai/gpt-4o-mini")


def get_data_dir() -> Path:
    return Path(os.getenv("PROMPTIFYR_DATA_DIR", ".promptifyr"))


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class PromptifyrConfig:
    model: str
    endpoint: str
    timeout_seconds: int = 90
    oracle_attempts: int = 3
    ledger_attempts: int = 3
    user_update_attempts: int = 5
    leaderboard_page_size: int = LEADERBOARD_PAGE_SIZE
    data_dir: Path = Path(".promptifyr")
    catalog_path: Optional[Path] = None

    def with_overrides(self, **overrides: Any) -> "PromptifyrConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(**overrides: Any) -> PromptifyrConfig:
    """Build the runtime configuration from the environment, then apply non-None overrides."""
    catalog = os.getenv("PROMPTIFYR_CATALOG")
    cfg = PromptifyrConfig(
        model=get_default_model(),
        endpoint=get_openrouter_endpoint(),
        timeout_seconds=_env_int("PROMPTIFYR_TIMEOUT_SECONDS", 90),
        oracle_attempts=_env_int("PROMPTIFYR_ORACLE_ATTEMPTS", 3),
        ledger_attempts=_env_int("PROMPTIFYR_LEDGER_ATTEMPTS", 3),
        user_update_attempts=_env_int("PROMPTIFYR_USER_UPDATE_ATTEMPTS", 5),
        leaderboard_page_size=_env_int("PROMPTIFYR_LEADERBOARD_SIZE", LEADERBOARD_PAGE_SIZE),
        data_dir=get_data_dir(),
        catalog_path=Path(catalog) if catalog else None,
    )
    return cfg.with_overrides(**overrides)
