"""
Purpose: Wiring helpers for pipeline runs.
Description: Builds the http client with the OpenRouter key, the oracle, the JSONL store and the catalog
from a PromptifyrConfig, and assembles them into a SubmissionPipeline.
Key Functions/Classes: build_http_client, build_oracle, build_store, build_pipeline.
"""

from __future__ import annotations

from typing import Optional

import httpx

from .catalog import ChallengeCatalog, load_catalog
from .config import PromptifyrConfig, get_openrouter_api_key, load_config
from .jsonl_store import JsonlStore
from .oracle import EvaluationOracle, LlmConfig, OpenRouterOracle
from .pipeline import SubmissionPipeline
from .store import Store


def build_http_client(cfg: PromptifyrConfig) -> httpx.Client:
    headers = {
        "Content-Type": "application/json",
    }
    key = get_openrouter_api_key()
    if key:
        headers["Authorization"] = f"Bearer {key}"
        headers["HTTP-Referer"] = "promptifyr"
        headers["X-Title"] = "promptifyr"
    return httpx.Client(headers=headers, timeout=cfg.timeout_seconds)


def build_oracle(cfg: PromptifyrConfig, client: Optional[httpx.Client] = None) -> OpenRouterOracle:
    """The http client is built on the first oracle call unless one is passed in."""
    llm = LlmConfig(model=cfg.model, timeout_seconds=cfg.timeout_seconds, attempts=cfg.oracle_attempts)
    return OpenRouterOracle(
        llm,
        endpoint=cfg.endpoint,
        client=client,
        client_factory=lambda: build_http_client(cfg),
    )


def build_store(cfg: PromptifyrConfig) -> JsonlStore:
    return JsonlStore(cfg.data_dir)


def build_pipeline(
    cfg: Optional[PromptifyrConfig] = None,
    *,
    store: Optional[Store] = None,
    oracle: Optional[EvaluationOracle] = None,
    catalog: Optional[ChallengeCatalog] = None,
) -> SubmissionPipeline:
    cfg = cfg or load_config()
    return SubmissionPipeline.from_config(
        cfg,
        store if store is not None else build_store(cfg),
        catalog if catalog is not None else load_catalog(cfg.catalog_path),
        oracle if oracle is not None else build_oracle(cfg),
    )
