"""Periodic SQLite backups: copy, vacuum, compress and prune."""
from __future__ import annotations

from .backuper import Backuper
from .copier import Copier, SqliteCopier
from .errors import (
    BackupCancelledError,
    BackupClosedError,
    BackupError,
    CompressionFailedError,
    CopyFailedError,
    InvalidFrequencyError,
    PruneFailedError,
    SchedulerError,
    SchedulerInitError,
    SourceUnavailableError,
    VacuumFailedError,
)
from .logs import BackupLogger
from .scheduler import Scheduler, SchedulerState
from .timing import next_wait
from .types import (
    BackupConfig,
    BackupResult,
    BackuperOptions,
    RetentionSummary,
    with_compression,
    with_pruning,
    with_vacuum,
)

__all__ = [
    "BackupCancelledError",
    "BackupClosedError",
    "BackupConfig",
    "BackupError",
    "BackupLogger",
    "BackupResult",
    "Backuper",
    "BackuperOptions",
    "CompressionFailedError",
    "Copier",
    "CopyFailedError",
    "InvalidFrequencyError",
    "PruneFailedError",
    "RetentionSummary",
    "Scheduler",
    "SchedulerError",
    "SchedulerInitError",
    "SchedulerState",
    "SourceUnavailableError",
    "SqliteCopier",
    "VacuumFailedError",
    "next_wait",
    "with_compression",
    "with_pruning",
    "with_vacuum",
]
