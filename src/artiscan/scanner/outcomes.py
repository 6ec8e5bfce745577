from __future__ import annotations

from typing import Optional

from .types import ScanResult

# Per-item outcome labels shown in the live view
SCANNED = "SCANNED"
LOCK = "LOCK"
ALREADY_LOCKED = "LOCKED"
UNREADABLE = "UNREADABLE"

OUTCOME_ORDER = (SCANNED, LOCK, ALREADY_LOCKED, UNREADABLE)


def _outcome_style(label: str) -> str:
    return {
        SCANNED: "green",
        LOCK: "magenta",
        ALREADY_LOCKED: "cyan",
        UNREADABLE: "yellow",
    }.get(label, "white")


def _describe_item(result: Optional[ScanResult]) -> str:
    """
    Label for the live view. The driver only sees results when a lock list
    is active; otherwise recognition happens out of sight on the worker.
    """
    if result is None:
        return ""
    return f"{result.name} +{result.level} {result.main_stat_name}"
