"""
Artifacts to lock automatically while scanning.

JSON format: an array of objects with ``name``, ``main_stat_name``,
``main_stat_value`` and ``sub_stat`` (exactly four strings, order matters)::

    [
      {
        "name": "杰作的序曲",
        "main_stat_name": "攻击力",
        "main_stat_value": "311",
        "sub_stat": ["生命值+15.2%", "暴击伤害+7.8%", "防御力+65", "元素精通+35"]
      }
    ]
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Tuple

from .types import ScanResult
from ..errors import ConfigurationError


@dataclass(frozen=True)
class LockListEntry:
    name: str
    main_stat_name: str
    main_stat_value: str
    sub_stat: Tuple[str, str, str, str]

    @classmethod
    def from_raw(cls, raw: Any) -> "LockListEntry":
        if not isinstance(raw, dict):
            raise ValueError("entry must be an object")
        fields = [raw.get(k) for k in ("name", "main_stat_name", "main_stat_value")]
        if not all(isinstance(f, str) for f in fields):
            raise ValueError("name, main_stat_name and main_stat_value must be strings")
        sub_stat = raw.get("sub_stat")
        if (
            not isinstance(sub_stat, list)
            or len(sub_stat) != 4
            or not all(isinstance(s, str) for s in sub_stat)
        ):
            raise ValueError("sub_stat must be an array of 4 strings")
        return cls(fields[0], fields[1], fields[2], tuple(sub_stat))  # type: ignore[arg-type]

    def matches(self, result: ScanResult) -> bool:
        if (
            self.name.strip() != result.name.strip()
            or self.main_stat_name.strip() != result.main_stat_name.strip()
            or self.main_stat_value.strip() != result.main_stat_value.strip()
        ):
            return False
        return all(a.strip() == b.strip() for a, b in zip(self.sub_stat, result.sub_stat))


class LockList:
    def __init__(self, entries: Iterable[LockListEntry]) -> None:
        self.entries: List[LockListEntry] = list(entries)

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def from_json_path(cls, path: Path) -> "LockList":
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"read lock list {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"parse lock list JSON {path}: {exc}") from exc

        if not isinstance(raw, list):
            raise ConfigurationError(
                f"lock list {path} must be an array of "
                "{ name, main_stat_name, main_stat_value, sub_stat: [4] }"
            )

        entries: List[LockListEntry] = []
        for idx, item in enumerate(raw):
            try:
                entries.append(LockListEntry.from_raw(item))
            except ValueError as exc:
                raise ConfigurationError(f"lock list {path} entry {idx}: {exc}") from exc
        return cls(entries)

    def contains(self, result: ScanResult) -> bool:
        """True if ``result`` matches one entry on every field (trimmed)."""
        return any(entry.matches(result) for entry in self.entries)
