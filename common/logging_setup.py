from __future__ import annotations

import enum
import json
import logging
import os
import sys
import time
from typing import Any, Mapping, Optional

import numpy as np

from common.types import Found, InputError, NotFound, Point2D, Quadrilateral, result_to_dict

_CONFIGURED_FLAG = "_hgcore_configured"


def _to_jsonable(o: Any) -> Any:
    """json.dumps fallback for the values detection code puts in `extra`."""
    if isinstance(o, np.ndarray):
        return o.tolist()
    if isinstance(o, np.generic):
        return o.item()
    if isinstance(o, enum.Enum):
        return o.value
    if isinstance(o, (Found, NotFound, InputError)):
        return result_to_dict(o)
    if isinstance(o, Point2D):
        return list(o.as_tuple())
    if isinstance(o, Quadrilateral):
        return list(o.flatten())
    return str(o)


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:
      { "t": 1700000000000, "lvl": "DEBUG", "name": "anchor.match", "msg": "text", "extra": {...} }
    numpy arrays/scalars, enums, points, quads and detection results in
    `extra` are serialised structurally.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):  # type: ignore[attr-defined]
            payload["extra"] = record.extra  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=_to_jsonable)


def setup_logging(level: Optional[str] = None, stream=None) -> None:
    """
    Configure root logger once with JSON formatting.
    Level precedence:
      - explicit `level` arg
      - env LOG_LEVEL (e.g., DEBUG/INFO/WARN/ERROR)
      - default INFO
    Records go to `stream` (stdout by default). The CLIs pass stderr so that
    stdout carries only the JSON report.
    """
    root = logging.getLogger()
    if getattr(root, _CONFIGURED_FLAG, False):  # idempotent
        return

    lvl_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    lvl = getattr(logging, lvl_name, None)
    if not isinstance(lvl, int):
        lvl = logging.INFO

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(lvl)
    setattr(root, _CONFIGURED_FLAG, True)


def setup_from_params(P: Mapping[str, Any], stream=None) -> None:
    """setup_logging with the `logging.level` of loaded params."""
    setup_logging((P.get("logging") or {}).get("level"), stream=stream)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger; ensures root is configured."""
    setup_logging()
    return logging.getLogger(name)


def log_result(logger: logging.Logger, msg: str, result: Any, level: int = logging.INFO, **fields: Any) -> None:
    """Log a DetectionResult summary plus caller fields (latency, paths, ...)."""
    extra = {"result": result_to_dict(result)}
    extra.update(fields)
    logger.log(level, msg, extra={"extra": extra})
