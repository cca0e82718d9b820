"""
Structured JSON Logging Module.

Provides an injectable ``StructuredLogger`` whose records are emitted as
one JSON object per line, to stdout and to a rotating log file.

A line looks like::

    {"timestamp": "2024-05-01T10:00:00+00:00", "level": "INFO",
     "logger_name": "services", "message": "User authenticated: ...",
     "extra": {"event": "LOGIN", "user_id": "..."}}
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO

# Every attribute a bare LogRecord carries; the rest were passed via ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
}


def _jsonable(value: Any) -> Any:
    """Keep JSON scalars as they are and stringify anything else."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: ``timestamp`` (UTC ISO-8601), ``level``, ``logger_name``,
    ``message``; ``extra`` when the call passed context and ``exception``
    when a traceback is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        context = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        }
        if context:
            entry["extra"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


class StructuredLogger:
    """Injectable logger.

    Usage::

        log = StructuredLogger(name="auth")
        log.info("User signed in", extra={"event": "LOGIN"})

    Pass ``log_file=""`` to keep output on the console only (tests and
    read-only installs).  When *log_file* is ``None`` the configured
    ``LOG_FILE`` is used.
    """

    def __init__(
        self,
        name: str = "star_limpiezas",
        level: int = logging.INFO,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)

        # Same name reused: handlers are already attached.
        if self._logger.handlers:
            return

        formatter = JSONFormatter()
        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        if log_file == "":
            return

        # Lazy import: config's validator logs through the stdlib logger.
        from star_limpiezas.config import get_config
        cfg = get_config()

        path = Path(log_file or cfg.LOG_FILE)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            rotating = RotatingFileHandler(
                filename=str(path),
                maxBytes=cfg.LOG_MAX_BYTES if max_bytes is None else max_bytes,
                backupCount=cfg.LOG_BACKUP_COUNT if backup_count is None else backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Log file %s unavailable (%s); logging to the console only.", path, exc,
            )
            return
        rotating.setFormatter(formatter)
        self._logger.addHandler(rotating)

    def _log(self, level: int, msg: str, args: tuple[object, ...], kwargs: dict[str, Any]) -> None:
        # Keep the caller's frame as the record origin.
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)


def get_logger(name: str = "star_limpiezas") -> StructuredLogger:
    """``StructuredLogger`` named *name*, writing to console and ``LOG_FILE``."""
    return StructuredLogger(name=name)
