"""Structured JSON logging for the Whereabouts service."""
import json
import logging
import sys
from typing import Any, Dict

from whereabouts.config import LOG_LEVEL


class _JSONFormatter(logging.Formatter):
    """One JSON object per log line.

    Carries timestamp, level, logger, message, module and funcName, plus
    ``exception`` with the formatted traceback when the record has one.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
        }
        for key in ("route", "method", "status"):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: str | None = None) -> None:
    """Install the JSON formatter on the root logger.

    Existing handlers are removed first to prevent duplicate output
    when running under uvicorn.
    """
    root = logging.getLogger()

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JSONFormatter())

    root.addHandler(handler)
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))

    # Suppress noisy third-party loggers.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
