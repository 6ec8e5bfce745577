from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .engine import ArtifactScanner
    from .types import ScanResult, ScanStats

__all__ = ["ArtifactScanner", "ScanResult", "ScanStats"]


def __getattr__(name: str):
    if name == "ArtifactScanner":
        from .engine import ArtifactScanner as _artifact_scanner

        return _artifact_scanner
    if name == "ScanResult":
        from .types import ScanResult as _scan_result

        return _scan_result
    if name == "ScanStats":
        from .types import ScanStats as _scan_stats

        return _scan_stats
    raise AttributeError(f"module 'artiscan.scanner' has no attribute {name!r}")
