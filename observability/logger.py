"""Structured event logging for practice sessions.

Each event becomes one human-readable line on stdout. With file logs
enabled it is also written as a JSON line to ``LOG_FILE`` and as a human
line to the matching ``-human.log`` file, both rotated by size.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "1") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/practice.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# Event fields worth surfacing on the one-line human rendering
HUMAN_KEYS = (
    "from_stage",
    "to_stage",
    "interview_stage",
    "route",
    "model",
    "source",
    "overall_score",
    "count",
    "ms",
    "outcome",
)

_logger = logging.getLogger("practice")


def _is_json(record: logging.LogRecord) -> bool:
    return getattr(record, "is_json", False) is True


def _human_formatter() -> logging.Formatter:
    return logging.Formatter(HUMAN_FORMAT, datefmt=DATE_FORMAT)


def human_log_path(path: str) -> str:
    root, _ = os.path.splitext(path)
    return f"{root}-human.log"


def _rotating(path: str, *, json_lines: bool) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s") if json_lines else _human_formatter())
    handler.addFilter(lambda record: _is_json(record) is json_lines)
    return handler


def configure_logging(level: Optional[str] = None) -> None:
    """Attach the event handlers once and give module loggers a console."""

    level = (level or LOG_LEVEL).upper()
    _logger.setLevel(level)
    _logger.propagate = False
    if _logger.handlers:
        return

    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=HUMAN_FORMAT, datefmt=DATE_FORMAT, stream=sys.stdout)

    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(_human_formatter())
    console.addFilter(lambda record: not _is_json(record))
    _logger.addHandler(console)

    if not ENABLE_FILE_LOGS:
        return
    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    _logger.addHandler(_rotating(LOG_FILE, json_lines=True))
    _logger.addHandler(_rotating(human_log_path(LOG_FILE), json_lines=False))


def _format_human(evt: dict[str, Any]) -> str:
    parts = [f"session={evt.get('session_id')}", f"kind={evt.get('kind')}"]
    parts.extend(f"{key}={evt[key]}" for key in HUMAN_KEYS if key in evt)
    return " ".join(parts)


def _emit(message: str, *, is_json: bool) -> None:
    record = _logger.makeRecord(
        _logger.name,
        logging.INFO,
        "",
        0,
        message,
        (),
        None,
        extra={"is_json": is_json},
    )
    _logger.handle(record)


def log_event(kind: str, session_id: str, **fields: Any) -> None:
    """Emit one session event: a human line everywhere, a JSON line to the JSON file."""

    configure_logging()
    payload: dict[str, Any] = {
        "ts": time.time(),
        "trace": uuid.uuid4().hex,
        "kind": kind,
        "session_id": session_id,
    }
    payload.update(fields)

    _emit(_format_human(payload), is_json=False)
    if ENABLE_FILE_LOGS:
        _emit(json.dumps(payload, ensure_ascii=False, default=str), is_json=True)


__all__ = ["configure_logging", "human_log_path", "log_event"]
