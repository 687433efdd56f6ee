"""Tests for core.settings helpers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.settings import SettingsError, load_settings, merge_defaults, resolve_backuper_settings, save_settings


def test_merge_defaults_includes_backuper_block() -> None:
    merged = merge_defaults({})

    assert merged["backuper"] == {
        "dir": "backups",
        "frequency": 240,
        "enable_vacuum": True,
        "enable_compression": True,
    }
    assert merged["pruning"]["enabled"] is False
    assert merged["sinks"]["jsonl"]["enabled"] is True


def test_load_settings_fills_missing_keys(tmp_path: Path) -> None:
    (tmp_path / "config.json").write_text(json.dumps({"backuper": {"frequency": 30}}), encoding="utf-8")

    loaded = load_settings(tmp_path)

    assert loaded["backuper"]["frequency"] == 30
    assert loaded["backuper"]["enable_vacuum"] is True
    assert loaded["config_dir"] == str(tmp_path)


def test_load_settings_reports_unknown_keys(tmp_path: Path) -> None:
    payload = {"backuper": {"frequncy": 5}, "extra": 1}
    (tmp_path / "config.json").write_text(json.dumps(payload), encoding="utf-8")

    load_settings(tmp_path)

    report = json.loads((tmp_path / "logs" / "settings_unknown.json").read_text(encoding="utf-8"))
    assert report["unknown"] == ["backuper.frequncy", "extra"]


def test_load_settings_rejects_invalid_json(tmp_path: Path) -> None:
    (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(SettingsError):
        load_settings(tmp_path)


def test_save_settings_round_trip(tmp_path: Path) -> None:
    path = save_settings({"pruning": {"enabled": True, "keep_files": 3}}, tmp_path)
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["pruning"] == {"enabled": True, "keep_files": 3}
    assert "config_dir" not in saved
    assert load_settings(tmp_path)["pruning"]["keep_files"] == 3


def test_resolve_backuper_settings_anchors_relative_paths(tmp_path: Path) -> None:
    settings = merge_defaults({"pruning": {"enabled": "yes", "keep_files": "4"}, "sinks": {"jsonl": {"path": "ledger.jsonl"}}})
    resolved = resolve_backuper_settings(settings, tmp_path)

    assert resolved.backup_dir == (tmp_path / "backups").resolve()
    assert resolved.ledger_path == (tmp_path / "ledger.jsonl").resolve()
    assert resolved.pruning is True
    assert resolved.keep_files == 4
    assert resolved.frequency == 240


def test_resolve_backuper_settings_rejects_bad_numbers(tmp_path: Path) -> None:
    settings = merge_defaults({"backuper": {"frequency": "hourly"}})
    with pytest.raises(SettingsError):
        resolve_backuper_settings(settings, tmp_path)


def test_load_settings_reports_mismatched_types(tmp_path: Path) -> None:
    payload = {"backuper": {"frequency": "often", "enable_vacuum": 1}, "pruning": {"keep_files": True}}
    (tmp_path / "config.json").write_text(json.dumps(payload), encoding="utf-8")

    load_settings(tmp_path)

    report = json.loads((tmp_path / "logs" / "settings_unknown.json").read_text(encoding="utf-8"))
    assert report["unknown"] == []
    assert report["mismatched"] == ["backuper.enable_vacuum", "backuper.frequency", "pruning.keep_files"]


def test_default_settings_validate_cleanly(tmp_path: Path) -> None:
    load_settings(tmp_path)
    assert not (tmp_path / "logs" / "settings_unknown.json").exists()


@pytest.mark.parametrize("value", [True, False, 1.5, 1439.5, "often", [5]])
def test_resolve_backuper_settings_rejects_non_integer_frequency(tmp_path: Path, value) -> None:
    settings = merge_defaults({"backuper": {"frequency": value}})
    with pytest.raises(SettingsError, match="backuper.frequency"):
        resolve_backuper_settings(settings, tmp_path)


@pytest.mark.parametrize("value", [True, False, 2.5, "some"])
def test_resolve_backuper_settings_rejects_non_integer_keep_files(tmp_path: Path, value) -> None:
    settings = merge_defaults({"pruning": {"enabled": True, "keep_files": value}})
    with pytest.raises(SettingsError, match="pruning.keep_files"):
        resolve_backuper_settings(settings, tmp_path)


def test_resolve_backuper_settings_null_keep_files_uses_default(tmp_path: Path) -> None:
    settings = merge_defaults({"pruning": {"enabled": True, "keep_files": None}})
    resolved = resolve_backuper_settings(settings, tmp_path)
    assert resolved.keep_files == 5


def test_resolve_backuper_settings_accepts_whole_floats(tmp_path: Path) -> None:
    settings = merge_defaults({"backuper": {"frequency": 60.0}, "pruning": {"keep_files": 0}})
    resolved = resolve_backuper_settings(settings, tmp_path)
    assert resolved.frequency == 60
    assert resolved.keep_files == 0
