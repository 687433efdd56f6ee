from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

__all__ = [
    "CONFIG_FILENAME",
    "ensure_config_dir_structure",
    "get_default_settings_paths",
    "get_ledger_path",
    "get_logs_dir",
    "get_settings_path",
    "resolve_relative_path",
    "resolve_config_dir",
]

CONFIG_FILENAME = "config.json"
_HOME_ENV = "TBLBK_HOME"
_DEFAULT_DIRNAME = ".tblbk"


def _expand_path(value: str | os.PathLike[str]) -> Path:
    expanded = os.path.expandvars(os.path.expanduser(str(value)))
    return Path(expanded).resolve()


def _ensure_writable_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    test_file = path / f".write_test_{os.getpid()}"
    try:
        with open(test_file, "w", encoding="utf-8") as handle:
            handle.write("ok")
        test_file.unlink(missing_ok=True)
        return True
    except OSError:
        try:
            if test_file.exists():
                test_file.unlink()
        except OSError:  # pragma: no cover - cleanup only
            pass
        return False


def resolve_config_dir(explicit: Optional[str | os.PathLike[str]] = None) -> Path:
    """Resolve the directory holding ``config.json`` and logs.

    Order: *explicit* (the ``--dir`` flag), ``$TBLBK_HOME``, ``~/.tblbk``.
    """

    candidates = []
    if explicit:
        candidates.append(_expand_path(explicit))
    env_home = os.environ.get(_HOME_ENV)
    if env_home:
        candidates.append(_expand_path(env_home))
    candidates.append(Path.home() / _DEFAULT_DIRNAME)

    for candidate in candidates:
        if _ensure_writable_dir(candidate):
            return candidate
    raise OSError(f"no writable config directory among {[str(c) for c in candidates]}")


def get_settings_path(config_dir: Path) -> Path:
    return config_dir / CONFIG_FILENAME


def get_logs_dir(config_dir: Path) -> Path:
    return config_dir / "logs"


def get_ledger_path(config_dir: Path) -> Path:
    return get_logs_dir(config_dir) / "results.jsonl"


def resolve_relative_path(config_dir: Path, value: str | os.PathLike[str]) -> Path:
    """Relative paths are anchored at the config directory."""

    path = Path(os.path.expandvars(os.path.expanduser(str(value))))
    if not path.is_absolute():
        path = config_dir / path
    return path.resolve()


def ensure_config_dir_structure(config_dir: Path) -> None:
    for directory in (config_dir, get_logs_dir(config_dir)):
        directory.mkdir(parents=True, exist_ok=True)


def get_default_settings_paths(config_dir: Path) -> list[Path]:
    """Return the search order for config files."""

    return [get_settings_path(config_dir), config_dir / "settings.json"]
