"""
Purpose: Unit tests for feedback trimming and hallucination flag normalization.
Description: Covers trimming at natural boundaries, flag stripping, deduplication and capping.
Key Tests: test_trim_boundaries, test_normalize_flags_dedup, test_normalize_flags_cap.
"""

from __future__ import annotations

from promptifyr.feedback import normalize_flags, trim_text


def test_trim_short_text_untouched():
    assert trim_text("  Nice prompt.  ") == "Nice prompt."


def test_trim_boundaries():
    long_text = "This is a very long sentence that should be trimmed nicely at some point without breaking words. " * 10
    trimmed = trim_text(long_text, max_len=80)
    assert len(trimmed) <= 80
    assert trimmed[-1] in ".!? " or long_text.startswith(trimmed)
    assert not trimmed.endswith("wor")


def test_trim_prefers_sentence_end():
    text = "First sentence. Second sentence runs on and on and on"
    assert trim_text(text, max_len=30) == "First sentence."


def test_normalize_flags_dedup():
    flags = ["  Invented statistic ", "invented statistic", "", None, "Wrong date"]
    assert normalize_flags(flags) == ["Invented statistic", "Wrong date"]


def test_normalize_flags_cap():
    flags = [f"issue {i}" for i in range(20)]
    assert normalize_flags(flags, max_items=3) == ["issue 0", "issue 1", "issue 2"]


def test_normalize_flags_empty():
    assert normalize_flags([]) == []
