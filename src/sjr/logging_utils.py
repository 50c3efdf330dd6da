"""Structured logging helpers."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

JSON_LOGS_ENV = "SJR_JSON_LOGS"


def _json_logs_enabled(json_logs: bool | None) -> bool:
    if json_logs is None:
        return os.getenv(JSON_LOGS_ENV, "false").lower() == "true"
    return json_logs


def configure_logging(level: str = "INFO", json_logs: bool | None = None) -> None:
    """Configure global logging. Respects the SJR_JSON_LOGS env override."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s" if _json_logs_enabled(json_logs) else "%(levelname)s:%(name)s:%(message)s",
    )


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    json_logs: bool | None = None,
    **fields: Any,
) -> None:
    """Emit a structured log event."""

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    if _json_logs_enabled(json_logs):
        logger.log(level, json.dumps(payload, default=str))
    else:
        logger.log(level, payload)
