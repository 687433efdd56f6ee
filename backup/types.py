"""Common dataclasses shared across backup modules."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Sequence


@dataclass(frozen=True, slots=True)
class BackupConfig:
    """Per-backuper pipeline toggles; built once from options."""

    vacuum: bool = False
    compression: bool = False
    pruning: bool = False
    keep_files: int = 0


Option = Callable[[BackupConfig], BackupConfig]


def with_vacuum(enabled: bool) -> Option:
    def apply(config: BackupConfig) -> BackupConfig:
        return replace(config, vacuum=bool(enabled))

    return apply


def with_compression(enabled: bool) -> Option:
    def apply(config: BackupConfig) -> BackupConfig:
        return replace(config, compression=bool(enabled))

    return apply


def with_pruning(enabled: bool, keep_files: int) -> Option:
    def apply(config: BackupConfig) -> BackupConfig:
        return replace(config, pruning=bool(enabled), keep_files=int(keep_files))

    return apply


def build_config(options: Sequence[Option]) -> BackupConfig:
    config = BackupConfig()
    for option in options:
        config = option(config)
    return config


@dataclass(frozen=True, slots=True)
class BackupResult:
    """Outcome of one successful ``Backuper.backup`` call.

    Durations are seconds. Vacuum and compression fields stay at zero when
    the matching stage is disabled.
    """

    path: Path
    timestamp: datetime
    size: int
    size_after_vacuum: int = 0
    size_after_compression: int = 0
    elapsed_time: float = 0.0
    vacuum_elapsed_time: float = 0.0
    compression_elapsed_time: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "path": str(self.path),
            "file_timestamp": self.timestamp.isoformat(),
            "size": self.size,
            "size_vacuum": self.size_after_vacuum,
            "size_compression": self.size_after_compression,
            "elapsed_time_ms": int(self.elapsed_time * 1000),
            "elapsed_time_vacuum_ms": int(self.vacuum_elapsed_time * 1000),
            "elapsed_time_compression_ms": int(self.compression_elapsed_time * 1000),
        }


@dataclass(slots=True)
class BackuperOptions:
    """Everything a scheduler needs to build its backuper."""

    source_path: Path
    backup_dir: Path
    opts: List[Option] = field(default_factory=list)


@dataclass(slots=True)
class RetentionSummary:
    removed: List[str]
    kept: List[str]
    freed_bytes: int
    skipped: List[str] = field(default_factory=list)


__all__ = [
    "BackupConfig",
    "BackupResult",
    "BackuperOptions",
    "Option",
    "RetentionSummary",
    "build_config",
    "with_compression",
    "with_pruning",
    "with_vacuum",
]
