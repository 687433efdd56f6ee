"""Background worker draining the scheduler's result queue."""
from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Optional

from backup.types import BackupResult

LOGGER = logging.getLogger("tblbk.sinks")


class ResultSink:
    """Pull ``BackupResult`` items off *results* and hand each to ``handle``.

    Subclasses implement ``handle``. An exception raised by ``handle`` is
    logged and the worker moves on to the next result.
    """

    name = "sink"

    def __init__(self, results: "queue.Queue[BackupResult]", *, poll_interval: float = 0.5) -> None:
        self._results = results
        self._poll_interval = max(0.05, float(poll_interval))
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.handled = 0

    def handle(self, result: BackupResult) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name=f"{self.name}-sink", daemon=True)
            self._thread.start()

    def stop(self, timeout: float = 2.0) -> bool:
        """Signal the worker and wait for it. False if it is still running."""

        self._stop_event.set()
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout=timeout)
        if thread.is_alive():
            LOGGER.warning("%s sink still busy after %.1fs", self.name, timeout)
            return False
        with self._lock:
            if self._thread is thread:
                self._thread = None
        return True

    def drain(self) -> int:
        """Handle everything currently queued on the calling thread."""

        count = 0
        while True:
            try:
                result = self._results.get_nowait()
            except queue.Empty:
                return count
            self._dispatch(result)
            count += 1

    # ------------------------------------------------------------------
    def _run(self) -> None:
        LOGGER.info("%s sink started", self.name)
        try:
            while not self._stop_event.is_set():
                try:
                    result = self._results.get(timeout=self._poll_interval)
                except queue.Empty:
                    continue
                self._dispatch(result)
        finally:
            LOGGER.info("%s sink stopped", self.name)

    def _dispatch(self, result: BackupResult) -> None:
        try:
            self.handle(result)
        except Exception as exc:
            LOGGER.exception("%s sink failed on %s: %s", self.name, result.path, exc)
        else:
            self.handled += 1
        finally:
            self._results.task_done()


class LogSink(ResultSink):
    """Consume results by logging them; used when no ledger is configured."""

    name = "log"

    def handle(self, result: BackupResult) -> None:
        LOGGER.info("backup published: %s", json.dumps(result.to_dict(), sort_keys=True))


__all__ = ["LogSink", "ResultSink"]
