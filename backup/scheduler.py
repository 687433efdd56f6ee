"""Interval driven backup scheduler."""
from __future__ import annotations

import queue
import threading
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from .backuper import Backuper
from .errors import BackupCancelledError, InvalidFrequencyError, SchedulerInitError
from .logs import BackupLogger
from .timing import next_tick_at, next_wait
from .types import BackuperOptions, BackupResult

MIN_FREQUENCY_MINUTES = 1
MAX_FREQUENCY_MINUTES = 1440
_PUT_POLL_S = 0.5

BackuperFactory = Callable[[BackuperOptions, BackupLogger], Backuper]


def _default_factory(options: BackuperOptions, logger: BackupLogger) -> Backuper:
    return Backuper(options.source_path, options.backup_dir, *options.opts, logger=logger)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SchedulerState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    SHUTDOWN = "shutdown"


class Scheduler:
    """Run one backup per tick and publish successful results to a queue.

    Ticks are aligned to multiples of the frequency and paced by subtracting
    the time spent on the previous tick. A failed backup is logged and the
    loop carries on; only ``shutdown()`` ends it.
    """

    def __init__(
        self,
        frequency: int,
        results: "queue.Queue[BackupResult]",
        options: BackuperOptions,
        *,
        logger: Optional[BackupLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        backuper_factory: Optional[BackuperFactory] = None,
    ) -> None:
        if isinstance(frequency, bool) or not isinstance(frequency, int):
            raise InvalidFrequencyError(f"frequency must be an integer number of minutes, got {frequency!r}")
        if frequency < MIN_FREQUENCY_MINUTES or frequency >= MAX_FREQUENCY_MINUTES:
            raise InvalidFrequencyError(
                f"frequency should be in [{MIN_FREQUENCY_MINUTES},{MAX_FREQUENCY_MINUTES}), got {frequency}"
            )
        self._logger = logger or BackupLogger()
        factory = backuper_factory or _default_factory
        try:
            self._backuper = factory(options, self._logger)
        except Exception as exc:
            raise SchedulerInitError(f"new backuper: {exc}") from exc

        self._frequency = timedelta(minutes=frequency)
        self._results = results
        self._clock = clock or _utcnow
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._state = SchedulerState.CREATED
        self._shutdown_requested = False
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    @property
    def frequency(self) -> timedelta:
        return self._frequency

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    @property
    def backuper(self) -> Backuper:
        return self._backuper

    # ------------------------------------------------------------------
    def start(self) -> threading.Thread:
        """Run the loop on a daemon thread and return it."""

        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(target=self.run, name="backup-scheduler", daemon=True)
                self._thread.start()
            return self._thread

    def join(self, timeout: Optional[float] = None) -> bool:
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def run(self) -> None:
        """Block until ``shutdown()``; returns at once if already shut down."""

        with self._lock:
            if self._state is not SchedulerState.CREATED:
                return
            self._state = SchedulerState.RUNNING

        now = self._clock()
        wait = next_wait(now, self._frequency)
        self._logger.event(
            event="scheduler_start",
            phase="scheduler",
            ok=True,
            frequency_min=int(self._frequency.total_seconds() // 60),
            next_tick=next_tick_at(now, self._frequency).isoformat(),
        )
        try:
            while not self._stop_event.wait(wait.total_seconds()):
                started = time.monotonic()
                self._tick()
                elapsed = timedelta(seconds=time.monotonic() - started)
                wait = next_wait(self._clock(), self._frequency, elapsed)
        finally:
            self._close_backuper()
            with self._lock:
                self._state = SchedulerState.SHUTDOWN
            self._logger.event(event="scheduler_stop", phase="scheduler", ok=True)

    def shutdown(self) -> None:
        """Ask the loop to exit. Safe to call repeatedly and before ``run()``."""

        with self._lock:
            if self._shutdown_requested:
                return
            self._shutdown_requested = True
            self._stop_event.set()
            never_ran = self._state is SchedulerState.CREATED
            if never_ran:
                self._state = SchedulerState.SHUTDOWN
        if never_ran:
            self._close_backuper()
        self._logger.info("scheduler_shutdown_requested", never_ran=never_ran)

    # ------------------------------------------------------------------
    def _tick(self) -> Optional[BackupResult]:
        try:
            result = self._backuper.backup(cancel=self._stop_event)
        except BackupCancelledError as exc:
            self._logger.warning("backup_cancelled", phase="scheduler", err_msg=str(exc))
            return None
        except Exception as exc:
            self._logger.event(
                event="backup_failed",
                phase="scheduler",
                ok=False,
                kind=getattr(exc, "kind", "unexpected"),
                err=type(exc).__name__,
                err_msg=str(exc),
            )
            return None

        self._logger.event(event="backup_succeeded", phase="scheduler", ok=True, **result.to_dict())
        self._publish(result)
        return result

    def _publish(self, result: BackupResult) -> bool:
        # Blocks while the consumer lags, but keeps watching for shutdown.
        while not self._stop_event.is_set():
            try:
                self._results.put(result, timeout=_PUT_POLL_S)
                return True
            except queue.Full:
                continue
        self._logger.warning("result_dropped", path=str(result.path), reason="shutdown")
        return False

    def _close_backuper(self) -> None:
        try:
            self._backuper.close()
        except Exception as exc:
            self._logger.error("backuper_close_failed", err=type(exc).__name__, err_msg=str(exc))


__all__ = [
    "MAX_FREQUENCY_MINUTES",
    "MIN_FREQUENCY_MINUTES",
    "Scheduler",
    "SchedulerState",
]
