"""Structured Logging - JSON log lines for engine, store and migration events.

Invariants:
    - Every line has timestamp, level, logger and message
    - Lifecycle extras (operation, state, migration_version, size_bytes, error_code, path)
      are copied onto the line only when set
    - setup_logging() is safe to call again: it replaces the handler it installed before

Design Decisions:
    - stdlib logging + a small JSONFormatter, no logging dependency
    - Driver loggers (aiosqlite, sqlalchemy.engine) pinned to WARNING: the store opens
      a connection per call and would otherwise flood DEBUG output
"""

import json
import logging
from datetime import datetime, timezone

LIFECYCLE_FIELDS = (
    "operation", "state", "migration_version", "size_bytes", "error_code", "path",
)
_NOISY_LOGGERS = ("aiosqlite", "sqlalchemy.engine")
_HANDLER_NAME = "finora"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_lifecycle_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _lifecycle_fields(record: logging.LogRecord) -> dict:
    fields = {}
    for name in LIFECYCLE_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the application handler on the root logger."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        ))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
