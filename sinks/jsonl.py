"""Local ledger sink: one JSON line per published backup."""
from __future__ import annotations

import json
import logging
import queue
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock

from backup.types import BackupResult

from .base import ResultSink

LOGGER = logging.getLogger("tblbk.sinks.jsonl")


class JsonlSink(ResultSink):
    name = "jsonl"

    def __init__(self, results: "queue.Queue[BackupResult]", ledger_path: Path, **kwargs) -> None:
        super().__init__(results, **kwargs)
        self._ledger_path = Path(ledger_path)
        self._ledger_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = Lock()

    @property
    def ledger_path(self) -> Path:
        return self._ledger_path

    def handle(self, result: BackupResult) -> None:
        payload = result.to_dict()
        payload["recorded_utc"] = datetime.now(timezone.utc).isoformat()
        line = json.dumps(payload, sort_keys=True)
        with self._write_lock:
            with self._ledger_path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        LOGGER.info("recorded backup %s", result.path)


__all__ = ["JsonlSink"]
