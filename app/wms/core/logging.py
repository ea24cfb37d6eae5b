from __future__ import annotations

import json
import logging

from app.wms.core.config import settings


def configure_logging(level: str | None = None) -> None:
    """Plain ``%(message)s`` output; structured events are pre-rendered JSON."""
    resolved = logging.getLevelName((level or settings.LOG_LEVEL).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(level=resolved, format="%(message)s")


def log_json(logger: logging.Logger, payload: dict, *, level: int = logging.INFO) -> None:
    if not logger.isEnabledFor(level):
        return
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
