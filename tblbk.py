"""Command line entry point: periodic SQLite backups."""
from __future__ import annotations

import argparse
import json
import logging
import queue
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from backup import (
    Backuper,
    BackupError,
    BackupLogger,
    BackuperOptions,
    Scheduler,
    with_compression,
    with_pruning,
    with_vacuum,
)
from backup.types import Option
from core.logging_utils import configure_json_logging
from core.paths import ensure_config_dir_structure, get_ledger_path, get_logs_dir, get_settings_path, resolve_config_dir
from core.settings import (
    DEFAULT_SETTINGS,
    BackuperSettings,
    SettingsError,
    load_settings,
    resolve_backuper_settings,
    save_settings,
)
from sinks import JsonlSink, LogSink, ResultSink

LOGGER = logging.getLogger("tblbk.cli")


def backuper_options(resolved: BackuperSettings) -> List[Option]:
    return [
        with_vacuum(resolved.vacuum),
        with_compression(resolved.compression),
        with_pruning(resolved.pruning, resolved.keep_files),
    ]


class App:
    """Wire a scheduler to the result sink."""

    def __init__(self, settings: Dict[str, Any], db_path: Path, config_dir: Path) -> None:
        self._resolved = resolve_backuper_settings(settings, config_dir)
        log_dir = get_logs_dir(config_dir) if settings.get("logging", {}).get("json_file", True) else None
        self._logger = BackupLogger(log_dir)
        self._results: "queue.Queue" = queue.Queue(maxsize=1)
        self.scheduler = Scheduler(
            self._resolved.frequency,
            self._results,
            BackuperOptions(
                source_path=Path(db_path),
                backup_dir=self._resolved.backup_dir,
                opts=backuper_options(self._resolved),
            ),
            logger=self._logger,
        )
        self.sink: ResultSink
        if self._resolved.ledger_enabled:
            ledger = self._resolved.ledger_path or get_ledger_path(config_dir)
            self.sink = JsonlSink(self._results, ledger)
        else:
            self.sink = LogSink(self._results)

    def run(self) -> None:
        self.sink.start()
        self.scheduler.start()

    def shutdown(self, timeout: float = 10.0) -> None:
        self.scheduler.shutdown()
        if not self.scheduler.join(timeout=timeout):
            LOGGER.warning("scheduler did not stop within %.1fs", timeout)
        if self.sink.stop():
            self.sink.drain()


# ----------------------------------------------------------------------
def _cmd_init(args: argparse.Namespace) -> int:
    config_dir = resolve_config_dir(args.dir)
    path = get_settings_path(config_dir)
    if path.exists() and not args.force:
        LOGGER.error("config already exists at %s (use --force to overwrite)", path)
        return 1
    ensure_config_dir_structure(config_dir)
    written = save_settings(dict(DEFAULT_SETTINGS), config_dir)
    print(str(written))
    return 0


def _load(args: argparse.Namespace) -> tuple[Path, Dict[str, Any]]:
    config_dir = resolve_config_dir(args.dir)
    settings = load_settings(config_dir)
    level = str(settings.get("logging", {}).get("level", "INFO")).upper()
    json_file = bool(settings.get("logging", {}).get("json_file", True))
    configure_json_logging(config_dir if json_file else None, level=level)
    return config_dir, settings


def _cmd_daemon(args: argparse.Namespace) -> int:
    config_dir, settings = _load(args)
    app = App(settings, Path(args.database), config_dir)

    done = threading.Event()

    def _on_signal(signum, _frame) -> None:
        LOGGER.info("received signal %s, shutting down", signum)
        done.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    app.run()
    while not done.wait(1.0):
        pass
    app.shutdown()
    return 0


def _cmd_once(args: argparse.Namespace) -> int:
    config_dir, settings = _load(args)
    resolved = resolve_backuper_settings(settings, config_dir)
    log_dir = get_logs_dir(config_dir) if settings.get("logging", {}).get("json_file", True) else None
    with Backuper(
        args.database,
        resolved.backup_dir,
        *backuper_options(resolved),
        logger=BackupLogger(log_dir),
    ) as backuper:
        result = backuper.backup()
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tblbk",
        description="Back up a SQLite database periodically",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="write a default config.json")
    init.add_argument("--dir", default=None, help="Config directory (default: $TBLBK_HOME or ~/.tblbk)")
    init.add_argument("--force", action="store_true", help="Overwrite an existing config")
    init.set_defaults(func=_cmd_init)

    for name, func, help_text in (
        ("daemon", _cmd_daemon, "run the backup scheduler until SIGINT/SIGTERM"),
        ("once", _cmd_once, "take a single backup and print the result"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--dir", default=None, help="Config directory (default: $TBLBK_HOME or ~/.tblbk)")
        cmd.add_argument("database", help="Path of the SQLite database to back up")
        cmd.set_defaults(func=func)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except (BackupError, SettingsError, OSError) as exc:
        LOGGER.error("%s failed: %s", args.command, exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
