"""
Purpose: CSV writer for leaderboard exports.
Description: Flattens leaderboard entries into a stable set of columns.
Key Functions/Classes: ensure_csv_header, append_row, write_leaderboard_csv.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .models import LeaderboardEntry


COLUMNS: List[str] = [
    "rank",
    "user_id",
    "name",
    "points",
    "level",
    "badge_count",
    "completed_count",
]


def ensure_csv_header(path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if not p.exists() or p.stat().st_size == 0:
        with p.open("w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(COLUMNS)


def append_row(path: str | Path, row: Dict[str, Any]) -> None:
    ensure_csv_header(path)
    values = [row.get(col, "") for col in COLUMNS]
    with Path(path).open("a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(values)


def write_leaderboard_csv(path: str | Path, entries: Iterable[LeaderboardEntry]) -> int:
    """Overwrite path with a header plus one row per entry; returns the row count."""
    p = Path(path)
    if p.exists():
        p.unlink()
    ensure_csv_header(p)
    count = 0
    for entry in entries:
        append_row(p, entry.model_dump())
        count += 1
    return count
