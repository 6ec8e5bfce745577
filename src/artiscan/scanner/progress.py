from __future__ import annotations

from .live_ui import _ScanLiveUI
from .rich_support import Console


class ScanProgress:
    """
    Receives scan milestones from ``ArtifactScanner``. Calls come from the
    driver thread only.
    """

    def start(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def begin(self, total: int, window_label: str) -> None:
        """The artifact count is known and the walk is about to start."""
        raise NotImplementedError

    def set_phase(self, phase: str) -> None:
        raise NotImplementedError

    def add_event(self, message: str, *, style: str = "dim") -> None:
        raise NotImplementedError

    def record_artifact(self, position: str, star: int, outcome: str, label: str) -> None:
        raise NotImplementedError


class NullScanProgress(ScanProgress):
    def start(self) -> None:
        return None

    def stop(self) -> None:
        return None

    def begin(self, total: int, window_label: str) -> None:
        return None

    def set_phase(self, phase: str) -> None:
        return None

    def add_event(self, message: str, *, style: str = "dim") -> None:
        return None

    def record_artifact(self, position: str, star: int, outcome: str, label: str) -> None:
        return None


class RichScanProgress(ScanProgress):
    def __init__(self) -> None:
        if Console is None:
            raise RuntimeError("Rich is required for the live scan UI.")
        self._ui = _ScanLiveUI()

    def start(self) -> None:
        self._ui.start()

    def stop(self) -> None:
        self._ui.stop()

    def begin(self, total: int, window_label: str) -> None:
        self._ui.begin(total, window_label)

    def set_phase(self, phase: str) -> None:
        self._ui.set_phase(phase)

    def add_event(self, message: str, *, style: str = "dim") -> None:
        self._ui.add_event(message, style=style)

    def record_artifact(self, position: str, star: int, outcome: str, label: str) -> None:
        self._ui.record_artifact(position, star, outcome, label)
