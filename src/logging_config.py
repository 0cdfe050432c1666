"""Logging setup for the CLI and the API process.

Console + daily-rotated tracker.log under <data_dir>/logs. Every record
carries a request_id: one per CLI run, one per HTTP request (set by the API
middleware through bind_request_id).
"""

from __future__ import annotations

import contextvars
import json
import logging
import logging.handlers
import os
import uuid
from pathlib import Path

from src.config import settings

LOG_DIR = settings.resolved_data_dir() / "logs"
LOG_FILE = "tracker.log"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def bind_request_id(request_id: str | None = None) -> str:
    """Set the request_id stamped on records from this context."""
    rid = request_id or new_request_id()
    _request_id.set(rid)
    return rid


def current_request_id() -> str:
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", ""):
            record.request_id = _request_id.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        doc = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
        }
        if record.exc_info:
            doc["exc"] = self.formatException(record.exc_info)
        return json.dumps(doc, ensure_ascii=False)


def _use_structured(structured: bool) -> bool:
    return (
        structured
        or settings.structured_logging
        or os.environ.get("STRUCTURED_LOGGING", "").lower() in ("true", "1")
    )


def setup_logging(
    structured: bool = False,
    log_dir: Path | str | None = None,
    level: int = logging.INFO,
) -> str:
    """Configure the root logger and bind a fresh request_id.

    Args:
        structured: JSON lines in tracker.log. Also enabled by STRUCTURED_LOGGING.
        log_dir: Override log directory. Defaults to <data_dir>/logs/.
        level: Root level.

    Returns:
        The request_id bound for this run.
    """
    log_path = Path(log_dir) if log_dir else LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    rid_filter = RequestIdFilter()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(TEXT_FORMAT))
    console.addFilter(rid_filter)
    root.addHandler(console)

    # 30日分保持
    file_handler = logging.handlers.TimedRotatingFileHandler(
        log_path / LOG_FILE,
        when="midnight",
        backupCount=30,
        encoding="utf-8",
    )
    if _use_structured(structured):
        file_handler.setFormatter(JSONFormatter())
    else:
        file_handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    file_handler.addFilter(rid_filter)
    root.addHandler(file_handler)

    return bind_request_id()
