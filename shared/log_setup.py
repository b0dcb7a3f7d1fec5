"""Logging configuration shared by the API and dashboard processes.

Text output for local work, JSON lines when the process runs behind a
log collector.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "requests", "watchdog", "httpx")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        if record.funcName:
            data["function"] = record.funcName
        if record.lineno:
            data["line"] = record.lineno
        return json.dumps(data, default=str)


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure the root logger with a single stdout handler.

    Safe to call more than once (Streamlit re-runs the script on every
    interaction); the handler list is replaced, not appended to.
    """
    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = [handler]

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
