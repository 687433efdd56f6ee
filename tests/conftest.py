import sqlite3
from pathlib import Path

import pytest


class StubLogger:
    def __init__(self) -> None:
        self.events = []

    def info(self, event: str, **extra):  # pragma: no cover - recorder
        self.events.append(("info", event, extra))

    def warning(self, event: str, **extra):  # pragma: no cover - recorder
        self.events.append(("warning", event, extra))

    def error(self, event: str, **extra):  # pragma: no cover - recorder
        self.events.append(("error", event, extra))

    def event(self, *, event: str, phase: str, ok: bool, **extra):  # pragma: no cover - recorder
        self.events.append(("event", event, phase, ok, extra))

    def names(self, level: str = None):
        return [entry[1] for entry in self.events if level is None or entry[0] == level]


def create_control_db(path: Path, *, rows: int = 600, keep: int = 300) -> Path:
    """Fill a table, then delete the tail so the file carries free pages."""

    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        conn.execute("CREATE TABLE items(id INTEGER PRIMARY KEY, payload TEXT NOT NULL)")
        conn.executemany(
            "INSERT INTO items(payload) VALUES (?)",
            ((f"row-{index:05d}-" + "x" * 500,) for index in range(rows)),
        )
        conn.commit()
        conn.execute("DELETE FROM items WHERE id > ?", (keep,))
        conn.commit()
    finally:
        conn.close()
    return path


def count_rows(path: Path) -> int:
    conn = sqlite3.connect(path)
    try:
        return conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
    finally:
        conn.close()


@pytest.fixture
def control_db(tmp_path):
    return create_control_db(tmp_path / "source" / "control.db")


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture
def stub_logger():
    return StubLogger()
