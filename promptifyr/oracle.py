"""
Purpose: Evaluation oracle contract and its OpenRouter (LLM) binding.
Description: Runs the user's prompt against the challenge input, grades the response on clarity,
correctness and hallucination-freedom, and produces improvement suggestions and flawed-prompt quizzes.
Transport failures are retried, then surface as EvaluationUnavailable; unparseable content never raises
and degrades to the neutral fallback instead.
Key Functions/Classes: `EvaluationRequest`, `EvaluationOracle`, `LlmConfig`, `OpenRouterOracle`.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

import httpx

from .config import get_default_model, get_openrouter_api_key, get_openrouter_endpoint
from .constants import UNAVAILABLE_SUGGESTIONS
from .errors import EvaluationUnavailable, NotFoundError
from .models import Challenge, RubricWeights
from .schema import EvaluationOutcome, Quiz, get_evaluation_json_schema, parse_evaluation, parse_quiz, parse_suggestions
from .scoring_logging import log_error, log_event, log_info


@dataclass(frozen=True)
class EvaluationRequest:
    prompt_text: str
    task: str
    rubric: RubricWeights
    title: str = ""
    expected_output: str = ""
    input_content: str = ""

    @classmethod
    def for_challenge(cls, challenge: Challenge, prompt_text: str) -> "EvaluationRequest":
        return cls(
            prompt_text=prompt_text,
            task=challenge.task,
            rubric=challenge.rubric,
            title=challenge.title,
            expected_output=challenge.expected_output,
            input_content=challenge.input_content,
        )


class EvaluationOracle(Protocol):
    def generate_response(self, request: EvaluationRequest) -> str:
        ...

    def evaluate(self, request: EvaluationRequest, response_text: str) -> EvaluationOutcome:
        ...

    def suggest(self, request: EvaluationRequest, total: int) -> List[str]:
        ...

    def quiz(self, challenge: Challenge) -> Quiz:
        ...


@dataclass
class LlmConfig:
    model: Optional[str] = None  # Will be set from environment if None
    top_p: float = 1.0
    timeout_seconds: int = 90
    attempts: int = 3
    backoff_seconds: float = 0.8

    def __post_init__(self):
        if self.model is None:
            self.model = get_default_model()


def _build_generation_messages(request: EvaluationRequest) -> List[Dict[str, str]]:
    return [{"role": "user", "content": f"{request.prompt_text}\n\nInput: {request.input_content}"}]


def _build_evaluation_messages(request: EvaluationRequest, response_text: str) -> List[Dict[str, str]]:
    rubric = request.rubric
    user = (
        "You are an expert prompt engineering evaluator. Evaluate the following prompt and AI response "
        "against the challenge requirements.\n\n"
        "CHALLENGE:\n"
        f"Title: {request.title}\n"
        f"Task: {request.task}\n"
        f"Expected Output: {request.expected_output}\n\n"
        f'USER PROMPT: "{request.prompt_text}"\n'
        f'AI RESPONSE: "{response_text}"\n\n'
        "EVALUATION CRITERIA:\n"
        f"1. Clarity ({rubric.clarity}%): How clear and well-structured is the prompt?\n"
        f"2. Correctness ({rubric.correctness}%): How well does the response match the expected output?\n"
        f"3. Hallucination-Free ({rubric.hallucination_free}%): Is the response factual and free from "
        "made-up information?\n\n"
        "Respond in the following JSON format:\n"
        f"{get_evaluation_json_schema()}\n\n"
        "Be specific in your feedback and mention what worked well and what could be improved."
    )
    return [
        {
            "role": "system",
            "content": "You are a precise prompt engineering evaluator. Always respond with valid JSON only.",
        },
        {"role": "user", "content": user},
    ]


def _build_suggestion_messages(request: EvaluationRequest, total: int) -> List[Dict[str, str]]:
    user = (
        "Based on this prompt engineering challenge and the user's attempt, provide 3-5 specific "
        "suggestions for improvement.\n\n"
        f"CHALLENGE: {request.title}\n"
        f"TASK: {request.task}\n"
        f'USER\'S PROMPT: "{request.prompt_text}"\n'
        f"CURRENT SCORE: {total}/100\n\n"
        "Focus on making the prompt more specific, adding context or constraints, improving structure, "
        "reducing ambiguity and preventing hallucinations.\n"
        'Respond as JSON: {"suggestions": ["Be more specific about...", "Add constraints for..."]}'
    )
    return [
        {
            "role": "system",
            "content": "You are a helpful prompt engineering tutor. Provide practical, actionable suggestions as JSON.",
        },
        {"role": "user", "content": user},
    ]


def _build_quiz_messages(challenge: Challenge) -> List[Dict[str, str]]:
    user = (
        "Create a multiple-choice quiz question about what's wrong with this flawed prompt for the given "
        "challenge.\n\n"
        f"CHALLENGE: {challenge.title}\n"
        f"TASK: {challenge.task}\n"
        f'FLAWED PROMPT: "{challenge.flawed_prompt_example}"\n\n'
        "Generate a quiz question in this JSON format:\n"
        '{\n  "question": "What is the main issue with this prompt?",\n'
        '  "options": ["Option A", "Option B", "Option C", "Option D"],\n'
        '  "correctAnswer": 0,\n'
        '  "explanation": "Why this is correct and what the issue is"\n}'
    )
    return [
        {
            "role": "system",
            "content": "Generate educational quiz questions about prompt engineering. Respond with valid JSON only.",
        },
        {"role": "user", "content": user},
    ]


def _extract_content(data: Any) -> Optional[str]:
    """Pull choices[0].message.content out of a chat-completions body; None if the envelope is off."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


def _call_openrouter_sync(
    client: httpx.Client,
    cfg: LlmConfig,
    endpoint: str,
    api_key: str,
    messages: List[Dict[str, str]],
    *,
    temperature: float,
    max_tokens: int,
    json_mode: bool,
) -> tuple[Optional[str], dict]:
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    payload: Dict[str, Any] = {
        "model": cfg.model,
        "messages": messages,
        "temperature": temperature,
        "top_p": cfg.top_p,
        "max_tokens": max_tokens,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}
    started = time.monotonic()
    resp = client.post(
        f"{endpoint}/chat/completions",
        json=payload,
        headers=headers,
        timeout=cfg.timeout_seconds,
    )
    elapsed_ms = int((time.monotonic() - started) * 1000)
    resp.raise_for_status()
    try:
        data = resp.json()
    except ValueError:
        return None, {"request_ms": elapsed_ms}
    usage = data.get("usage", {}) if isinstance(data, dict) else {}
    return _extract_content(data), {"request_ms": elapsed_ms, "token_counts": usage}


class OpenRouterOracle:
    def __init__(
        self,
        cfg: Optional[LlmConfig] = None,
        *,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        client_factory: Callable[[], httpx.Client] = httpx.Client,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cfg = cfg or LlmConfig()
        self.api_key = api_key if api_key is not None else (get_openrouter_api_key() or "")
        self.endpoint = (endpoint or get_openrouter_endpoint()).rstrip("/")
        # An owned client is only opened on the first oracle call.
        self._client = client
        self._client_factory = client_factory
        self._owns_client = client is None
        self._client_lock = threading.Lock()
        self._sleep = sleep

    @property
    def client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                self._client = self._client_factory()
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._owns_client and self._client is not None:
                self._client.close()
                self._client = None

    def __enter__(self) -> "OpenRouterOracle":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _complete(
        self,
        purpose: str,
        messages: List[Dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> Optional[str]:
        # Simple sync retries on transient errors.
        attempts = 0
        last_exc: Optional[Exception] = None
        while attempts < self.cfg.attempts:
            attempts += 1
            try:
                log_info(f"Calling LLM for {purpose} (attempt {attempts}/{self.cfg.attempts})")
                content, meta = _call_openrouter_sync(
                    self.client,
                    self.cfg,
                    self.endpoint,
                    self.api_key,
                    messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    json_mode=json_mode,
                )
                log_event("oracle_call", purpose=purpose, attempt=attempts, **meta)
                return content
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if 400 <= status < 500 and status != 429:
                    log_error(f"HTTP error from oracle: {status}")
                    raise EvaluationUnavailable(f"Oracle rejected {purpose} request: HTTP {status}") from e
                last_exc = e
                log_error(f"Retryable oracle error: {status}")
            except httpx.HTTPError as e:
                last_exc = e
                log_error(f"Oracle network error: {type(e).__name__}")
            if attempts < self.cfg.attempts:
                log_event("oracle_retry", purpose=purpose, attempt=attempts)
                self._sleep(self.cfg.backoff_seconds * attempts)
        log_error(f"Oracle failed after {attempts} attempts")
        raise EvaluationUnavailable(f"Oracle unavailable for {purpose}: {last_exc}") from last_exc

    def generate_response(self, request: EvaluationRequest) -> str:
        content = self._complete(
            "generation",
            _build_generation_messages(request),
            temperature=0.7,
            max_tokens=1000,
            json_mode=False,
        )
        return content or "No response generated"

    def evaluate(self, request: EvaluationRequest, response_text: str) -> EvaluationOutcome:
        content = self._complete(
            "evaluation",
            _build_evaluation_messages(request, response_text),
            temperature=0.3,
            max_tokens=800,
            json_mode=True,
        )
        if content is None:
            return EvaluationOutcome.neutral("malformed_envelope", response_text)
        return parse_evaluation(content, response_text)

    def suggest(self, request: EvaluationRequest, total: int) -> List[str]:
        try:
            content = self._complete(
                "suggestions",
                _build_suggestion_messages(request, total),
                temperature=0.5,
                max_tokens=400,
                json_mode=True,
            )
        except EvaluationUnavailable:
            return list(UNAVAILABLE_SUGGESTIONS)
        return parse_suggestions(content)

    def quiz(self, challenge: Challenge) -> Quiz:
        if not challenge.flawed_prompt_example:
            raise NotFoundError(f"Quiz not available for challenge: {challenge.id}")
        content = self._complete(
            "quiz",
            _build_quiz_messages(challenge),
            temperature=0.4,
            max_tokens=500,
            json_mode=True,
        )
        return parse_quiz(content)
