from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Tuple

ANY = object()

# Leaves are the accepted value types; nested dicts are sections.
_SCHEMA: Dict[str, Any] = {
    "version": (int,),
    "config_dir": (str,),
    "backuper": {
        "dir": (str,),
        "frequency": (int,),
        "enable_vacuum": (bool,),
        "enable_compression": (bool,),
    },
    "pruning": {
        "enabled": (bool,),
        "keep_files": (int,),
    },
    "sinks": {
        "jsonl": {
            "enabled": (bool,),
            "path": (str, type(None)),
        },
    },
    "logging": ANY,
}


def _type_ok(value: Any, accepted: Tuple[type, ...]) -> bool:
    if isinstance(value, bool) and bool not in accepted:
        return False
    return isinstance(value, accepted)


@dataclass(slots=True)
class SettingsValidator:
    """Walk a settings payload against a nested schema of accepted types."""

    schema: Mapping[str, Any]

    def unknown_keys(self, payload: Mapping[str, Any]) -> List[str]:
        return sorted(path for path, problem in self._walk(payload, self.schema, "") if problem == "unknown")

    def mismatched_types(self, payload: Mapping[str, Any]) -> List[str]:
        return sorted(path for path, problem in self._walk(payload, self.schema, "") if problem == "type")

    def _walk(self, payload: Mapping[str, Any], schema: Mapping[str, Any], prefix: str) -> Iterator[Tuple[str, str]]:
        for key, value in payload.items():
            path = f"{prefix}{key}"
            if key not in schema:
                yield path, "unknown"
                continue
            rule = schema[key]
            if rule is ANY:
                continue
            if isinstance(rule, Mapping):
                if isinstance(value, Mapping):
                    yield from self._walk(value, rule, f"{path}.")
                else:
                    yield path, "type"
            elif not _type_ok(value, rule):
                yield path, "type"


SETTINGS_VALIDATOR = SettingsValidator(_SCHEMA)

__all__ = ["SETTINGS_VALIDATOR", "SettingsValidator"]
