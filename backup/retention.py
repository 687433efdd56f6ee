"""Retention policy enforcement for backups."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Tuple

from .errors import PruneFailedError
from .logs import BackupLogger
from .naming import parse_backup_name
from .types import RetentionSummary


@dataclass(slots=True)
class _BackupMeta:
    name: str
    created: datetime
    size_bytes: int
    path: Path


def _load_backups(base: Path, *, logger: BackupLogger) -> Tuple[List[_BackupMeta], List[str]]:
    items: List[_BackupMeta] = []
    skipped: List[str] = []
    if not base.exists():
        return items, skipped
    for child in base.iterdir():
        parsed = parse_backup_name(child.name)
        if parsed is None or not child.is_file():
            continue
        if parsed.timestamp is None:
            skipped.append(child.name)
            logger.warning("prune_skipped", file=child.name, reason="unparsable_timestamp")
            continue
        try:
            size = child.stat().st_size
        except OSError:
            size = 0
        items.append(_BackupMeta(name=child.name, created=parsed.timestamp, size_bytes=size, path=child))
    # Newest first; the name breaks ties so .db and .db.zst of one stamp order deterministically.
    items.sort(key=lambda meta: (meta.created, meta.name), reverse=True)
    return items, skipped


def prune_backups(backup_dir: Path, keep_files: int, *, logger: BackupLogger) -> RetentionSummary:
    """Delete all but the *keep_files* newest artifacts in *backup_dir*.

    Ordering comes from the timestamp embedded in each file name only.
    ``keep_files <= 0`` removes every artifact. A file that cannot be
    deleted is logged and stays in ``kept``.
    """

    items, skipped = _load_backups(Path(backup_dir), logger=logger)
    keep_count = max(int(keep_files), 0)

    removed: List[str] = []
    kept: List[str] = [meta.name for meta in items[:keep_count]]
    freed = 0
    for meta in items[keep_count:]:
        try:
            meta.path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            kept.append(meta.name)
            logger.error(
                "backup_prune_failed",
                file=meta.name,
                kind=PruneFailedError.kind,
                err=type(exc).__name__,
                err_msg=str(exc),
            )
            continue
        removed.append(meta.name)
        freed += meta.size_bytes
        logger.info("backup_removed", file=meta.name, reason="retention")

    logger.event(
        event="retention_applied",
        phase="prune",
        ok=True,
        removed=len(removed),
        kept=len(kept),
        skipped=len(skipped),
        freed_bytes=freed,
    )
    return RetentionSummary(removed=removed, kept=kept, freed_bytes=freed, skipped=skipped)


__all__ = ["prune_backups"]
