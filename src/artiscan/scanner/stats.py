"""
Structured parsing of artifact stat lines such as ``暴击率+3.9%`` or
``CRIT DMG+7.8% (unactivated)``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

# (raw name, is_percent) -> canonical key
_STAT_NAMES: Dict[Tuple[str, bool], str] = {
    ("暴击率", True): "critical",
    ("暴击伤害", True): "critical_damage",
    ("攻击力", False): "attack_static",
    ("攻击力", True): "attack_percentage",
    ("生命值", False): "hp_static",
    ("生命值", True): "hp_percentage",
    ("防御力", False): "defend_static",
    ("防御力", True): "defend_percentage",
    ("元素精通", False): "elemental_mastery",
    ("元素充能效率", True): "recharge",
    ("critrate", True): "critical",
    ("critdmg", True): "critical_damage",
    ("atk", False): "attack_static",
    ("atk", True): "attack_percentage",
    ("hp", False): "hp_static",
    ("hp", True): "hp_percentage",
    ("def", False): "defend_static",
    ("def", True): "defend_percentage",
    ("elementalmastery", False): "elemental_mastery",
    ("energyrecharge", True): "recharge",
}

_PENDING_MARKERS = ("(待激活)", "（待激活）", "(unactivated)")

# OCR sometimes keeps the bullet in front of the stat name
_LEADING_NOISE = "·•.,-_ "

_VALUE_PATTERN = re.compile(r"^(\d+(?:[.,]\d+)?)(%?)$")


@dataclass(frozen=True)
class ArtifactStat:
    name: str
    value: float
    pending: bool = False

    @classmethod
    def parse(cls, raw: str) -> Optional["ArtifactStat"]:
        """
        Parse one stat line; None when it is not a recognizable stat.
        """
        text = "".join(raw.split())
        pending = False
        for marker in _PENDING_MARKERS:
            marker = "".join(marker.split())
            if marker.lower() in text.lower():
                pending = True
                idx = text.lower().index(marker.lower())
                text = text[:idx] + text[idx + len(marker) :]

        text = text.lstrip(_LEADING_NOISE)
        if "+" not in text:
            return None
        name_part, _, value_part = text.rpartition("+")

        match = _VALUE_PATTERN.match(value_part)
        if not match:
            return None
        is_percent = match.group(2) == "%"
        value = float(match.group(1).replace(",", "."))

        key = _STAT_NAMES.get((name_part.lower(), is_percent))
        if key is None:
            return None
        return cls(name=key, value=value, pending=pending)
