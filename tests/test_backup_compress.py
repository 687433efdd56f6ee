import os

import pytest
import zstandard

from backup.compress import compress_file, decompress_file


def test_compress_replaces_source(tmp_path):
    source = tmp_path / "tbl_backup_2024-01-01T000000Z.db"
    payload = b"sqlite page " * 4096
    source.write_bytes(payload)

    target = compress_file(source)

    assert target.name == "tbl_backup_2024-01-01T000000Z.db.zst"
    assert not source.exists()
    assert not (tmp_path / (target.name + ".tmp")).exists()
    assert target.stat().st_size < len(payload)
    assert zstandard.ZstdDecompressor().decompress(target.read_bytes()) == payload


def test_compress_failure_keeps_source(tmp_path, monkeypatch):
    source = tmp_path / "tbl_backup_2024-01-01T000000Z.db"
    source.write_bytes(b"data" * 100)

    def boom(src, dst):
        raise OSError("rename failed")

    monkeypatch.setattr(os, "replace", boom)
    with pytest.raises(OSError):
        compress_file(source)

    assert source.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == [source.name]


def test_decompress_restores_bytes(tmp_path):
    source = tmp_path / "a.db"
    source.write_bytes(b"abc" * 1000)
    target = compress_file(source)
    restored = decompress_file(target, tmp_path / "b.db")
    assert restored.read_bytes() == b"abc" * 1000
