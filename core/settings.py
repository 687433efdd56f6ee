from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .paths import get_default_settings_paths, get_logs_dir, get_settings_path, resolve_relative_path
from .settings_schema import SETTINGS_VALIDATOR

__all__ = [
    "DEFAULT_SETTINGS",
    "SETTINGS_VERSION",
    "BackuperSettings",
    "SettingsError",
    "load_settings",
    "merge_defaults",
    "resolve_backuper_settings",
    "save_settings",
]

SETTINGS_VERSION = 1


DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": SETTINGS_VERSION,
    "backuper": {
        "dir": "backups",
        "frequency": 240,
        "enable_vacuum": True,
        "enable_compression": True,
    },
    "pruning": {
        "enabled": False,
        "keep_files": 5,
    },
    "sinks": {
        "jsonl": {
            "enabled": True,
            "path": None,
        },
    },
    "logging": {
        "level": "INFO",
        "json_file": True,
    },
}


class SettingsError(ValueError):
    """Raised when the config file exists but cannot be used."""


def merge_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    def _merge(default: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in default.items():
            if isinstance(value, dict):
                current = payload.get(key)
                if isinstance(current, dict):
                    result[key] = _merge(value, current)
                else:
                    result[key] = _merge(value, {})
            elif isinstance(value, list):
                current = payload.get(key)
                result[key] = list(current) if isinstance(current, list) else list(value)
            else:
                result[key] = payload.get(key, value)
        for key, value in payload.items():
            if key not in result:
                result[key] = value
        return result

    return _merge(DEFAULT_SETTINGS, data or {})


def _apply_migrations(settings: Dict[str, Any]) -> Dict[str, Any]:
    version = settings.get("version")
    try:
        version_int = int(version)
    except (TypeError, ValueError):
        version_int = 0
    if version_int < SETTINGS_VERSION:
        settings["version"] = SETTINGS_VERSION
    return settings


def _log_unknown_keys(settings: Dict[str, Any], config_dir: Path) -> None:
    unknown = SETTINGS_VALIDATOR.unknown_keys(settings)
    mismatched = SETTINGS_VALIDATOR.mismatched_types(settings)
    if not unknown and not mismatched:
        return
    logs_dir = get_logs_dir(config_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    payload = {
        "ts": time.time(),
        "unknown": unknown,
        "mismatched": mismatched,
    }
    target = logs_dir / "settings_unknown.json"
    try:
        with open(target, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
    except OSError:
        return


def load_settings(config_dir: Path) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for candidate in get_default_settings_paths(config_dir):
        try:
            with open(candidate, "r", encoding="utf-8") as handle:
                loaded = json.load(handle)
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as exc:
            raise SettingsError(f"invalid JSON in {candidate}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise SettingsError(f"{candidate} must contain a JSON object")
        data = loaded
        break
    merged = merge_defaults(data)
    merged = _apply_migrations(merged)
    merged.setdefault("config_dir", str(config_dir))
    _log_unknown_keys(merged, config_dir)
    return merged


def save_settings(settings: Dict[str, Any], config_dir: Path) -> Path:
    merged = merge_defaults(dict(settings))
    merged = _apply_migrations(merged)
    merged.pop("config_dir", None)
    path = get_settings_path(config_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(merged, handle, ensure_ascii=False, indent=2)
    return path


@dataclass(frozen=True)
class BackuperSettings:
    backup_dir: Path
    frequency: int
    vacuum: bool
    compression: bool
    pruning: bool
    keep_files: int
    ledger_enabled: bool
    ledger_path: Optional[Path]


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _as_int(value: Any, key: str, default: int) -> int:
    """Whole numbers only; bools and fractional values are config mistakes."""

    if value is None:
        return default
    if isinstance(value, bool):
        raise SettingsError(f"{key} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise SettingsError(f"{key} must be an integer, got {value!r}")


def resolve_backuper_settings(settings: Dict[str, Any], config_dir: Path) -> BackuperSettings:
    backuper = settings.get("backuper") or {}
    pruning = settings.get("pruning") or {}
    sinks = settings.get("sinks") or {}
    jsonl = sinks.get("jsonl") if isinstance(sinks, dict) else None
    if not isinstance(jsonl, dict):
        jsonl = {}
    frequency = _as_int(backuper.get("frequency"), "backuper.frequency", 240)
    keep_files = _as_int(pruning.get("keep_files"), "pruning.keep_files", 5)
    ledger_path = jsonl.get("path")
    return BackuperSettings(
        backup_dir=resolve_relative_path(config_dir, backuper.get("dir") or "backups"),
        frequency=frequency,
        vacuum=_as_bool(backuper.get("enable_vacuum"), True),
        compression=_as_bool(backuper.get("enable_compression"), True),
        pruning=_as_bool(pruning.get("enabled"), False),
        keep_files=keep_files,
        ledger_enabled=_as_bool(jsonl.get("enabled"), True),
        ledger_path=resolve_relative_path(config_dir, ledger_path) if ledger_path else None,
    )
