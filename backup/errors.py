"""Error hierarchy for backup operations."""
from __future__ import annotations


class BackupError(RuntimeError):
    """Base exception for backup related failures."""

    kind = "backup_error"


class SourceUnavailableError(BackupError):
    """Raised when the source database cannot be opened."""

    kind = "source_unavailable"


class CopyFailedError(BackupError):
    """Raised when the snapshot copy cannot be produced."""

    kind = "copy_failed"


class VacuumFailedError(BackupError):
    """Raised when vacuuming the copied artifact fails; the copy is kept."""

    kind = "vacuum_failed"


class CompressionFailedError(BackupError):
    """Raised when compressing the artifact fails; the uncompressed file is kept."""

    kind = "compression_failed"


class PruneFailedError(BackupError):
    """Reported (never raised to callers) when an old artifact cannot be removed."""

    kind = "prune_failed"


class BackupClosedError(BackupError):
    """Raised by ``Backuper.backup`` once the backuper has been closed."""

    kind = "closed"


class BackupCancelledError(BackupError):
    """Raised when a backup is cancelled between two pipeline stages."""

    kind = "cancelled"


class SchedulerError(BackupError):
    """Base exception for scheduler construction failures."""

    kind = "scheduler_error"


class InvalidFrequencyError(SchedulerError, ValueError):
    """Raised when the tick frequency is outside ``[1, 1440)`` minutes."""

    kind = "invalid_frequency"


class SchedulerInitError(SchedulerError):
    """Raised when the scheduler cannot build its backuper."""

    kind = "scheduler_init_failed"


__all__ = [
    "BackupCancelledError",
    "BackupClosedError",
    "BackupError",
    "CompressionFailedError",
    "CopyFailedError",
    "InvalidFrequencyError",
    "PruneFailedError",
    "SchedulerError",
    "SchedulerInitError",
    "SourceUnavailableError",
    "VacuumFailedError",
]
