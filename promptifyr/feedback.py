"""
Purpose: Normalization utilities for oracle feedback and hallucination flags.
Description: Trims feedback to a configured length at sentence/word boundary, strips and
deduplicates hallucination flags, and caps how many are kept.
Key Functions/Classes: trim_text, normalize_flags.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Set

from .constants import MAX_FEEDBACK_LENGTH, MAX_FLAG_LENGTH, MAX_HALLUCINATION_FLAGS


def trim_text(text: str, max_len: int = MAX_FEEDBACK_LENGTH) -> str:
    """Trim text to <= max_len at a natural boundary.

    Priority: last sentence end punctuation (., !, ?), else last whitespace, else hard cut.
    """
    text = text.strip()
    if len(text) <= max_len:
        return text
    slice_text = text[: max_len + 1]
    # Try sentence-ending punctuation within the window
    sentence_match = re.search(r"[.!?](?=[^.!?]*$)", slice_text)
    if sentence_match and sentence_match.end() <= max_len:
        return slice_text[: sentence_match.end()].strip()
    last_space = slice_text.rfind(" ")
    if last_space > 0:
        return slice_text[:last_space].strip()
    return text[:max_len].strip()


def normalize_flags(
    flags: Iterable[object],
    max_items: int = MAX_HALLUCINATION_FLAGS,
    max_len: int = MAX_FLAG_LENGTH,
) -> List[str]:
    """Strip, drop empties, trim, deduplicate case-insensitively and cap the flag list.

    Order of first appearance is preserved.
    """
    seen: Set[str] = set()
    ordered: List[str] = []
    for raw in flags or []:
        if raw is None:
            continue
        flag = trim_text(str(raw), max_len)
        if not flag:
            continue
        key = flag.casefold()
        if key in seen:
            continue
        seen.add(key)
        ordered.append(flag)
    return ordered[:max_items]
