"""Turn a live SQLite database into finished backup artifacts."""
from __future__ import annotations

import sqlite3
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple

import zstandard

from core.db import connect, vacuum

from .compress import compress_file
from .copier import Copier, SqliteCopier
from .errors import (
    BackupCancelledError,
    BackupClosedError,
    BackupError,
    CompressionFailedError,
    CopyFailedError,
    PruneFailedError,
    SourceUnavailableError,
    VacuumFailedError,
)
from .logs import BackupLogger
from .naming import backup_path, compressed_path, parse_backup_name, utc_seconds
from .retention import prune_backups
from .types import BackupConfig, BackupResult, Option, RetentionSummary, build_config


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _discard(path: Path) -> None:
    for candidate in (path, path.with_name(path.name + "-journal")):
        try:
            candidate.unlink(missing_ok=True)
        except OSError:
            continue


class Backuper:
    """Copy, vacuum, compress and prune backups of one source database.

    The source is opened read-only once and reused by every ``backup()``
    call until ``close()``. The backup directory must not be written by
    anything else while a backup runs.
    """

    def __init__(
        self,
        source_path: str | Path,
        backup_dir: str | Path,
        *options: Option,
        copier: Optional[Copier] = None,
        logger: Optional[BackupLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._source_path = Path(source_path)
        self._backup_dir = Path(backup_dir)
        self._config = build_config(options)
        self._copier: Copier = copier or SqliteCopier()
        self._logger = logger or BackupLogger()
        self._clock = clock or _utcnow
        self._last_timestamp: Optional[datetime] = None
        self._source: Optional[sqlite3.Connection] = self._open_source()
        try:
            self._backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._source.close()
            self._source = None
            raise BackupError(f"create backup dir {self._backup_dir}: {exc}") from exc

    # ------------------------------------------------------------------
    @property
    def config(self) -> BackupConfig:
        return self._config

    @property
    def backup_dir(self) -> Path:
        return self._backup_dir

    @property
    def source_path(self) -> Path:
        return self._source_path

    @property
    def closed(self) -> bool:
        return self._source is None

    def __enter__(self) -> "Backuper":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    def _open_source(self) -> sqlite3.Connection:
        try:
            conn = connect(self._source_path, read_only=True)
        except sqlite3.Error as exc:
            raise SourceUnavailableError(f"open source {self._source_path}: {exc}") from exc
        try:
            conn.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error as exc:
            conn.close()
            raise SourceUnavailableError(f"read source {self._source_path}: {exc}") from exc
        return conn

    def _name_taken(self, moment: datetime) -> bool:
        path = backup_path(self._backup_dir, moment)
        return path.exists() or compressed_path(path).exists()

    def _next_timestamp(self) -> datetime:
        candidate = utc_seconds(self._clock())
        if self._last_timestamp is not None and candidate <= self._last_timestamp:
            candidate = self._last_timestamp + timedelta(seconds=1)
        while self._name_taken(candidate):
            candidate += timedelta(seconds=1)
        self._last_timestamp = candidate
        return candidate

    def _check_cancel(self, cancel: Optional[threading.Event], stage: str) -> None:
        if cancel is not None and cancel.is_set():
            self._logger.warning("backup_cancelled", stage=stage)
            raise BackupCancelledError(f"backup cancelled before {stage}")

    # ------------------------------------------------------------------
    def _copy(self, source: sqlite3.Connection, timestamp: datetime) -> Tuple[Path, int]:
        expected = backup_path(self._backup_dir, timestamp)
        self._logger.info("copy_sqlite", source=str(self._source_path), dest=str(expected))
        try:
            path = Path(self._copier.create_snapshot(source, self._backup_dir, timestamp))
            size = path.stat().st_size
        except Exception as exc:
            _discard(expected)
            self._logger.event(event="copy", phase="copy", ok=False, err=type(exc).__name__, err_msg=str(exc))
            raise CopyFailedError(f"copy {self._source_path}: {exc}") from exc
        if size <= 0:
            _discard(path)
            self._logger.event(event="copy", phase="copy", ok=False, err_msg="empty snapshot")
            raise CopyFailedError(f"copy {self._source_path}: snapshot is empty")
        return path, size

    def _vacuum(self, path: Path) -> Tuple[int, float]:
        start = time.perf_counter()
        try:
            vacuum(path)
            size = path.stat().st_size
        except (sqlite3.Error, OSError) as exc:
            self._logger.event(event="vacuum", phase="vacuum", ok=False, path=str(path), err_msg=str(exc))
            raise VacuumFailedError(f"vacuum {path}: {exc}") from exc
        elapsed = time.perf_counter() - start
        self._logger.info("vacuum", path=str(path), size=size, duration_ms=int(elapsed * 1000))
        return size, elapsed

    def _compress(self, path: Path) -> Tuple[Path, int, float]:
        start = time.perf_counter()
        try:
            target = compress_file(path)
            size = target.stat().st_size
        except (zstandard.ZstdError, OSError) as exc:
            self._logger.event(event="compress", phase="compress", ok=False, path=str(path), err_msg=str(exc))
            raise CompressionFailedError(f"compress {path}: {exc}") from exc
        elapsed = time.perf_counter() - start
        self._logger.info("compress", path=str(target), size=size, duration_ms=int(elapsed * 1000))
        return target, size, elapsed

    def prune(self) -> RetentionSummary:
        """Apply the keep-count to whatever is currently in the backup directory."""

        return prune_backups(self._backup_dir, self._config.keep_files, logger=self._logger)

    def _prune_best_effort(self) -> Optional[RetentionSummary]:
        try:
            return self.prune()
        except OSError as exc:
            self._logger.error(
                "backup_prune_failed",
                kind=PruneFailedError.kind,
                dir=str(self._backup_dir),
                err=type(exc).__name__,
                err_msg=str(exc),
            )
            return None

    # ------------------------------------------------------------------
    def backup(self, cancel: Optional[threading.Event] = None) -> BackupResult:
        """Run copy, vacuum, compress and prune in that order.

        Raises ``CopyFailedError``, ``VacuumFailedError`` or
        ``CompressionFailedError`` when a stage fails; the artifact of the
        last completed stage stays on disk. Pruning runs whenever the copy
        succeeded and never raises.
        """

        source = self._source
        if source is None:
            raise BackupClosedError(f"backuper for {self._source_path} is closed")

        started = time.perf_counter()
        self._check_cancel(cancel, "copy")
        timestamp = self._next_timestamp()
        path, size = self._copy(source, timestamp)
        parsed = parse_backup_name(path.name)
        if parsed is not None and parsed.timestamp is not None:
            timestamp = parsed.timestamp

        size_after_vacuum = 0
        vacuum_elapsed = 0.0
        size_after_compression = 0
        compression_elapsed = 0.0
        try:
            if self._config.vacuum:
                self._check_cancel(cancel, "vacuum")
                size_after_vacuum, vacuum_elapsed = self._vacuum(path)
            if self._config.compression:
                self._check_cancel(cancel, "compression")
                path, size_after_compression, compression_elapsed = self._compress(path)
        finally:
            if self._config.pruning:
                self._prune_best_effort()

        result = BackupResult(
            path=path,
            timestamp=timestamp,
            size=size,
            size_after_vacuum=size_after_vacuum,
            size_after_compression=size_after_compression,
            elapsed_time=time.perf_counter() - started,
            vacuum_elapsed_time=vacuum_elapsed,
            compression_elapsed_time=compression_elapsed,
        )
        self._logger.event(event="backup_complete", phase="backup", ok=True, **result.to_dict())
        return result

    def close(self) -> None:
        """Release the source connection. Later ``backup()`` calls raise."""

        source, self._source = self._source, None
        if source is None:
            return
        try:
            source.close()
        except sqlite3.Error as exc:
            raise BackupError(f"close source {self._source_path}: {exc}") from exc
        self._logger.info("backuper_closed", source=str(self._source_path))


__all__ = ["Backuper"]
