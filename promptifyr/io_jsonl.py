"""
Purpose: JSONL read/write helpers for the durable store.
Description: Small utilities to append compact, key-sorted JSON lines and to read back the lines added since a byte offset.
Key Functions/Classes: `append_jsonl`, `append_model_jsonl`, `read_jsonl_from`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel


def _dumps(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def append_jsonl(path: str | Path, obj: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("a", encoding="utf-8") as f:
        f.write(_dumps(obj))
        f.write("\n")


def append_model_jsonl(path: str | Path, model: BaseModel) -> None:
    append_jsonl(path, model.model_dump(mode="json"))


def read_jsonl_from(path: str | Path, offset: int) -> Tuple[List[Dict[str, Any]], int]:
    """Read the complete lines written after byte `offset`.

    Returns the parsed objects and the offset just past the last newline, so a line another
    writer has only partly flushed is picked up on the next call.
    """
    p = Path(path)
    if not p.exists():
        return [], offset
    with p.open("rb") as f:
        f.seek(offset)
        chunk = f.read()
    end = chunk.rfind(b"\n") + 1
    objs = [json.loads(line) for line in chunk[:end].decode("utf-8").splitlines() if line.strip()]
    return objs, offset + end
