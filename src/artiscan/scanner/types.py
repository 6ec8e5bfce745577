from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class ScanItem:
    """
    One captured artifact handed from the driver to the worker.

    ``list_image`` is only present on the first artifact of a page.
    """

    panel_image: np.ndarray = field(repr=False)
    star: int
    list_image: Optional[np.ndarray] = field(default=None, repr=False)


@dataclass(frozen=True)
class ScanResult:
    """
    A recognized artifact. Equality and hashing cover the recognized content
    only, so the same artifact captured before and after locking compares equal.
    """

    name: str
    main_stat_name: str
    main_stat_value: str
    sub_stat: Tuple[str, str, str, str]
    level: int
    equip: str
    star: int = field(default=0, compare=False)
    lock: bool = field(default=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sub_stat"] = list(self.sub_stat)
        return data


@dataclass
class ScanStats:
    """
    Aggregate metrics for the scan useful for reporting.
    """

    items_expected: int = 0
    items_sent: int = 0
    results_kept: int = 0
    duplicates: int = 0
    failures: int = 0
    locks_clicked: int = 0
    status: str = "finished"
    stop_reason: Optional[str] = None
    processing_seconds: float = 0.0
