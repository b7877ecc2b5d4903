"""
Purpose: Tests for rebuilding user progress from the ledger.
Description: After normal pipeline use the stored aggregate matches the replay; tampering is reported.
Key Tests: test_audit_consistent_after_pipeline_use, test_audit_detects_drift.
"""

from __future__ import annotations

from promptifyr.audit import audit_user, reconstruct_progress

PROMPT = "Summarize the article in exactly three bullet points for a busy reader."


def test_audit_consistent_after_pipeline_use(make_pipeline, user, store, catalog):
    pipeline, _ = make_pipeline(scores=[(40, 40, 40)], default=(100, 100, 100))
    pipeline.submit(user.id, "news-summarizer", PROMPT)
    pipeline.test(user.id, "science-explainer", PROMPT)
    pipeline.submit(user.id, "science-explainer", PROMPT)
    pipeline.submit(user.id, "python-function-generator", PROMPT)

    report = audit_user(store, catalog, user.id)
    assert report.consistent, report.differences
    assert sorted(report.expected.completed_challenges) == ["python-function-generator", "science-explainer"]
    # science 15 + python 15 + prompt_novice 10; the failed first news attempt blocks its credit
    assert report.expected.points == store.get_user(user.id).points == 40


def test_audit_detects_drift(pipeline, user, store, catalog):
    pipeline.submit(user.id, "news-summarizer", PROMPT)
    current = store.get_user(user.id)
    store.compare_and_set_user(current.model_copy(update={"points": 999}), current.revision)

    report = audit_user(store, catalog, user.id)
    assert not report.consistent
    assert report.differences == ["points: stored=999 expected=20"]


def test_reconstruct_empty(catalog):
    assert reconstruct_progress([], catalog).points == 0
