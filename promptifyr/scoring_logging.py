"""
Purpose: Structured logging helpers for the submission pipeline.
Description: JSON-line messages on a single stdout handler so pipeline events can be grepped or
loaded for later analysis.
Key Functions: get_logger, log_info, log_error, log_event

AIDEV-NOTE: Avoid reconfiguring the root logger elsewhere; use this factory.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

LOGGER_NAME = "promptifyr"


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter("%(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_json(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), sort_keys=True, default=str)


def log_info(message: str) -> None:
    get_logger().info(_to_json({"ts": _iso_now(), "level": "info", "message": message}))


def log_error(message: str) -> None:
    get_logger().error(_to_json({"ts": _iso_now(), "level": "error", "message": message}))


def log_event(event: str, **fields: Any) -> None:
    payload: Dict[str, Any] = {"ts": _iso_now(), "type": "event", "event": event, **fields}
    get_logger().info(_to_json(payload))
