"""
Purpose: Tests for the OpenRouter-backed evaluation oracle.
Description: Uses httpx.MockTransport to stand in for the chat-completions endpoint and checks retries,
non-retryable client errors, malformed envelopes and the suggestion/quiz fallbacks.
Key Tests: test_evaluate_valid, test_retries_server_error_then_succeeds, test_client_error_is_not_retried.
"""

from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from promptifyr.catalog import load_catalog
from promptifyr.constants import UNAVAILABLE_SUGGESTIONS
from promptifyr.errors import EvaluationUnavailable, NotFoundError
from promptifyr.oracle import EvaluationRequest, LlmConfig, OpenRouterOracle
from promptifyr.schema import FALLBACK_QUIZ


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}], "usage": {"total_tokens": 12}}


def _oracle(handler: Callable[[httpx.Request], httpx.Response]) -> OpenRouterOracle:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return OpenRouterOracle(
        LlmConfig(model="test/model", attempts=3),
        api_key="k",
        endpoint="https://oracle.test/api/v1",
        client=client,
        sleep=lambda s: None,
    )


@pytest.fixture
def request_for_news() -> EvaluationRequest:
    challenge = load_catalog().get("news-summarizer")
    return EvaluationRequest.for_challenge(challenge, "Summarize this article in three bullet points.")


EVALUATION = json.dumps(
    {
        "clarity": 80,
        "correctness": 90,
        "hallucinationFree": 70,
        "feedback": "Good structure.",
        "hallucinationFlags": [],
    }
)


def test_evaluate_valid(request_for_news):
    seen: List[dict] = []

    def handler(req: httpx.Request) -> httpx.Response:
        seen.append(json.loads(req.content))
        assert req.headers["Authorization"] == "Bearer k"
        assert req.url.path.endswith("/chat/completions")
        return httpx.Response(200, json=_completion(EVALUATION))

    outcome = _oracle(handler).evaluate(request_for_news, "some response")
    assert outcome.status == "ok"
    assert outcome.subscores.correctness == 90
    assert outcome.response == "some response"
    assert seen[0]["model"] == "test/model"
    assert seen[0]["response_format"] == {"type": "json_object"}


def test_generate_response(request_for_news):
    def handler(req: httpx.Request) -> httpx.Response:
        body = json.loads(req.content)
        assert "Summarize this article" in body["messages"][0]["content"]
        return httpx.Response(200, json=_completion("- point one"))

    assert _oracle(handler).generate_response(request_for_news) == "- point one"


def test_generate_response_without_content(request_for_news):
    def handler(req: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    assert _oracle(handler).generate_response(request_for_news) == "No response generated"


def test_retries_server_error_then_succeeds(request_for_news):
    calls = {"n": 0}

    def handler(req: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(500, json={"error": "boom"})
        return httpx.Response(200, json=_completion(EVALUATION))

    outcome = _oracle(handler).evaluate(request_for_news, "resp")
    assert outcome.status == "ok"
    assert calls["n"] == 2


def test_rate_limit_is_retried(request_for_news):
    calls = {"n": 0}

    def handler(req: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(429)
        return httpx.Response(200, json=_completion(EVALUATION))

    assert _oracle(handler).evaluate(request_for_news, "resp").status == "ok"
    assert calls["n"] == 3


def test_client_error_is_not_retried(request_for_news):
    calls = {"n": 0}

    def handler(req: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(401, json={"error": "bad key"})

    with pytest.raises(EvaluationUnavailable) as exc:
        _oracle(handler).evaluate(request_for_news, "resp")
    assert calls["n"] == 1
    assert exc.value.retryable


def test_network_errors_exhaust_attempts(request_for_news):
    calls = {"n": 0}

    def handler(req: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ConnectError("unreachable", request=req)

    with pytest.raises(EvaluationUnavailable):
        _oracle(handler).generate_response(request_for_news)
    assert calls["n"] == 3


def test_malformed_envelope_degrades(request_for_news):
    def handler(req: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    outcome = _oracle(handler).evaluate(request_for_news, "resp")
    assert outcome.degraded
    assert outcome.reason == "malformed_envelope"
    assert outcome.subscores.clarity == 50


def test_non_json_evaluation_degrades(request_for_news):
    def handler(req: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("I think this prompt is great!"))

    outcome = _oracle(handler).evaluate(request_for_news, "resp")
    assert outcome.degraded


def test_suggest_parses_object(request_for_news):
    def handler(req: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion('{"suggestions": ["Set a word limit"]}'))

    assert _oracle(handler).suggest(request_for_news, 55) == ["Set a word limit"]


def test_suggest_falls_back_when_unavailable(request_for_news):
    def handler(req: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    assert _oracle(handler).suggest(request_for_news, 55) == UNAVAILABLE_SUGGESTIONS


def test_quiz_valid_and_fallback():
    challenge = load_catalog().get("news-summarizer")
    quiz_json = json.dumps(
        {
            "question": "What is the main issue?",
            "options": ["No format", "Too polite", "Too short", "Nothing"],
            "correctAnswer": 0,
            "explanation": "It never says how long the summary should be.",
        }
    )

    def good(req: httpx.Request) -> httpx.Response:
        body = json.loads(req.content)
        assert challenge.flawed_prompt_example in body["messages"][1]["content"]
        return httpx.Response(200, json=_completion(quiz_json))

    def garbage(req: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("not a quiz"))

    assert _oracle(good).quiz(challenge).correct_answer == 0
    assert _oracle(garbage).quiz(challenge) == FALLBACK_QUIZ


def test_quiz_requires_flawed_example():
    challenge = load_catalog().get("news-summarizer").model_copy(update={"flawed_prompt_example": None})

    def handler(req: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no call expected")

    with pytest.raises(NotFoundError):
        _oracle(handler).quiz(challenge)


def test_client_is_opened_lazily_and_closed(request_for_news):
    opened: List[httpx.Client] = []

    def factory() -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(lambda req: httpx.Response(200, json=_completion("ok"))))
        opened.append(client)
        return client

    oracle = OpenRouterOracle(LlmConfig(model="m"), api_key="k", endpoint="https://x", client_factory=factory)
    oracle.close()
    assert opened == []

    assert oracle.generate_response(request_for_news) == "ok"
    assert oracle.generate_response(request_for_news) == "ok"
    assert len(opened) == 1
    oracle.close()
    assert opened[0].is_closed


def test_injected_client_is_left_open(request_for_news):
    client = httpx.Client(transport=httpx.MockTransport(lambda req: httpx.Response(200, json=_completion("ok"))))
    with OpenRouterOracle(LlmConfig(model="m"), api_key="k", endpoint="https://x", client=client) as oracle:
        oracle.generate_response(request_for_news)
    assert not client.is_closed
    client.close()
