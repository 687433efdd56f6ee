"""Backup artifact naming: ``tbl_backup_<RFC3339 without colons>.db[.zst]``."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

PREFIX = "tbl_backup_"
DB_SUFFIX = ".db"
ZST_SUFFIX = ".zst"

_NAME_PATTERN = re.compile(r"^tbl_backup_(?P<stamp>.+?)\.db(?P<zst>\.zst)?$")
_STAMP_FORMAT = "%Y-%m-%dT%H%M%S%z"


def utc_seconds(moment: datetime) -> datetime:
    """Return *moment* as an aware UTC datetime truncated to whole seconds."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).replace(microsecond=0)


def format_timestamp(moment: datetime) -> str:
    """RFC3339 at second precision with the colons stripped."""

    return utc_seconds(moment).strftime("%Y-%m-%dT%H%M%SZ")


def backup_filename(moment: datetime) -> str:
    return f"{PREFIX}{format_timestamp(moment)}{DB_SUFFIX}"


def backup_path(directory: Path, moment: datetime) -> Path:
    return Path(directory) / backup_filename(moment)


def compressed_path(path: Path) -> Path:
    return path.with_name(path.name + ZST_SUFFIX)


@dataclass(frozen=True, slots=True)
class ParsedName:
    name: str
    timestamp: Optional[datetime]
    compressed: bool


def parse_backup_name(name: str) -> Optional[ParsedName]:
    """Parse a directory entry name.

    Returns ``None`` when the name is not a backup artifact at all, and a
    ``ParsedName`` with ``timestamp=None`` when it looks like one but the
    embedded timestamp cannot be read. Stamps written with colons are
    accepted too.
    """

    match = _NAME_PATTERN.match(name)
    if not match:
        return None
    stamp = match.group("stamp").replace(":", "")
    try:
        parsed = datetime.strptime(stamp, _STAMP_FORMAT).astimezone(timezone.utc)
    except ValueError:
        parsed = None
    return ParsedName(name=name, timestamp=parsed, compressed=bool(match.group("zst")))


__all__ = [
    "DB_SUFFIX",
    "PREFIX",
    "ParsedName",
    "ZST_SUFFIX",
    "backup_filename",
    "backup_path",
    "compressed_path",
    "format_timestamp",
    "parse_backup_name",
    "utc_seconds",
]
