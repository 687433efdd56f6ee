from datetime import datetime, timedelta, timezone
from pathlib import Path

from backup.naming import backup_filename
from backup.retention import prune_backups


def _seed(base: Path, count: int, *, compressed_every: int = 0):
    base.mkdir(parents=True, exist_ok=True)
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    names = []
    for index in range(count):
        name = backup_filename(start + timedelta(hours=index))
        if compressed_every and index % compressed_every == 0:
            name += ".zst"
        (base / name).write_bytes(b"x" * (index + 1))
        names.append(name)
    # newest first
    return list(reversed(names))


def test_prune_keeps_most_recent(tmp_path, stub_logger):
    base = tmp_path / "backups"
    names = _seed(base, 5, compressed_every=2)

    summary = prune_backups(base, 2, logger=stub_logger)

    assert summary.kept == names[:2]
    assert set(summary.removed) == set(names[2:])
    assert summary.freed_bytes == 1 + 2 + 3
    assert sorted(p.name for p in base.iterdir()) == sorted(names[:2])
    assert "retention_applied" in stub_logger.names("event")


def test_prune_non_positive_keep_removes_all(tmp_path, stub_logger):
    base = tmp_path / "backups"
    _seed(base, 3)
    summary = prune_backups(base, -1, logger=stub_logger)
    assert summary.kept == []
    assert len(summary.removed) == 3
    assert list(base.iterdir()) == []


def test_prune_ignores_foreign_and_skips_unparsable(tmp_path, stub_logger):
    base = tmp_path / "backups"
    names = _seed(base, 3)
    (base / "README.txt").write_text("keep me", encoding="utf-8")
    (base / "tbl_backup_garbage.db").write_bytes(b"??")
    (base / "tbl_backup_sub.db").mkdir()

    summary = prune_backups(base, 1, logger=stub_logger)

    assert summary.kept == names[:1]
    assert summary.skipped == ["tbl_backup_garbage.db"]
    assert (base / "README.txt").exists()
    assert (base / "tbl_backup_garbage.db").exists()
    assert "prune_skipped" in stub_logger.names("warning")


def test_prune_logs_unlink_failures(tmp_path, stub_logger, monkeypatch):
    base = tmp_path / "backups"
    names = _seed(base, 3)
    stuck = names[-1]
    original_unlink = Path.unlink

    def fake_unlink(self, *args, **kwargs):
        if self.name == stuck:
            raise PermissionError("read-only")
        return original_unlink(self, *args, **kwargs)

    monkeypatch.setattr(Path, "unlink", fake_unlink)
    summary = prune_backups(base, 1, logger=stub_logger)

    assert summary.removed == [names[1]]
    assert stuck in summary.kept
    assert "backup_prune_failed" in stub_logger.names("error")


def test_prune_missing_directory(tmp_path, stub_logger):
    summary = prune_backups(tmp_path / "nope", 3, logger=stub_logger)
    assert summary.kept == [] and summary.removed == []
