from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .paths import get_logs_dir

_STANDARD_ATTRS = set(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class ExcludeLoggers(logging.Filter):
    """Drop records from loggers that keep their own log file."""

    def __init__(self, *names: str) -> None:
        super().__init__()
        self._names = tuple(names)

    def filter(self, record: logging.LogRecord) -> bool:
        return not any(record.name == name or record.name.startswith(name + ".") for name in self._names)


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "ts": time.time(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in getattr(record, "__dict__", {}).items():
            if key.startswith("_") or key in _STANDARD_ATTRS:
                continue
            if key in payload:
                continue
            try:
                json.dumps(value)
            except TypeError:
                continue
            payload[key] = value
        return json.dumps(payload, ensure_ascii=False)


def configure_json_logging(
    config_dir: Optional[Path] = None,
    *,
    name: str = "tblbk",
    level: str | int = logging.INFO,
    console: bool = True,
    exclude_from_file: Tuple[str, ...] = ("tblbk.backup",),
) -> logging.Logger:
    """Attach a JSONL file handler (and optionally stderr) to the *name* logger.

    Calling it twice for the same directory does not duplicate handlers.
    Loggers in *exclude_from_file* write their own file (``backup.jsonl``)
    and only reach the console.
    """

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if config_dir is not None:
        logs_dir = get_logs_dir(config_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_path = logs_dir / "tblbk.log.jsonl"
        for handler in list(logger.handlers):
            if isinstance(handler, logging.FileHandler) and getattr(handler, "baseFilename", None) == str(log_path):
                break
        else:
            handler = logging.FileHandler(log_path, encoding="utf-8")
            handler.setFormatter(JsonLogFormatter())
            if exclude_from_file:
                handler.addFilter(ExcludeLoggers(*exclude_from_file))
            logger.addHandler(handler)
    if console and not any(getattr(h, "_tblbk_console", False) for h in logger.handlers):
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        stream._tblbk_console = True  # type: ignore[attr-defined]
        logger.addHandler(stream)
    logger.propagate = False
    return logger


__all__ = ["ExcludeLoggers", "JsonLogFormatter", "configure_json_logging"]
