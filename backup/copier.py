"""Snapshot strategies producing the raw copy of the source database."""
from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Protocol

from core.db import backup_sqlite, connect

from .naming import backup_path


class Copier(Protocol):
    """Produce a consistent snapshot of *source* inside *dest_dir*."""

    def create_snapshot(self, source: sqlite3.Connection, dest_dir: Path, timestamp: datetime) -> Path:
        ...


class SqliteCopier:
    """Copy through the SQLite online backup API.

    Writers on other connections may keep modifying the source; the backup
    API yields a page-consistent image as of the end of the copy.
    """

    def create_snapshot(self, source: sqlite3.Connection, dest_dir: Path, timestamp: datetime) -> Path:
        dest = backup_path(dest_dir, timestamp)
        destination = connect(dest, read_only=False)
        try:
            backup_sqlite(source, destination)
        finally:
            destination.close()
        return dest


__all__ = ["Copier", "SqliteCopier"]
