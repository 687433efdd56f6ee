from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Callable, Optional

__all__ = [
    "DEFAULT_BUSY_TIMEOUT_MS",
    "backup_sqlite",
    "connect",
    "configure_connection",
    "vacuum",
]

DEFAULT_BUSY_TIMEOUT_MS = 5000


def connect(
    db_path: str | Path,
    *,
    read_only: bool = False,
    timeout: float = 5.0,
    isolation_level: Optional[str] = None,
    check_same_thread: bool = False,
    wal: bool = False,
) -> sqlite3.Connection:
    """Return a configured SQLite connection with sane defaults.

    Read-only connections go through a ``mode=ro`` URI, so a missing file is
    an error instead of silently creating an empty database.
    """

    path = Path(db_path)
    if read_only:
        uri = f"file:{path.resolve().as_posix()}?mode=ro"
        conn = sqlite3.connect(
            uri,
            uri=True,
            timeout=timeout,
            isolation_level=isolation_level,
            check_same_thread=check_same_thread,
        )
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(path),
            timeout=timeout,
            isolation_level=isolation_level,
            check_same_thread=check_same_thread,
        )
    configure_connection(conn, enable_wal=wal and not read_only)
    return conn


def configure_connection(conn: sqlite3.Connection, *, enable_wal: bool = False) -> None:
    conn.execute(f"PRAGMA busy_timeout={int(DEFAULT_BUSY_TIMEOUT_MS)}")
    if enable_wal:
        try:
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.DatabaseError:
            pass


def backup_sqlite(
    source: sqlite3.Connection | str | Path,
    destination: sqlite3.Connection | str | Path,
    *,
    pages: int = -1,
    progress: Optional[Callable[[int, int, int], None]] = None,
) -> None:
    """Perform a SQLite backup using the built-in online backup API.

    The backup API restarts the copy when another connection writes to the
    source mid-way, so the destination is always a consistent snapshot.
    """

    own_source = False
    own_destination = False
    if isinstance(source, (str, Path)):
        source_conn = connect(source, read_only=True)
        own_source = True
    else:
        source_conn = source
    try:
        if isinstance(destination, (str, Path)):
            destination_conn = connect(destination, read_only=False)
            own_destination = True
        else:
            destination_conn = destination
        try:
            source_conn.backup(destination_conn, pages=pages, progress=progress)
        finally:
            if own_destination:
                destination_conn.close()
    finally:
        if own_source:
            source_conn.close()


def vacuum(db_path: str | Path) -> None:
    """Rewrite the database at *db_path* in place, dropping free pages."""

    conn = sqlite3.connect(str(db_path), isolation_level=None)
    try:
        configure_connection(conn)
        conn.execute("VACUUM")
    finally:
        conn.close()
