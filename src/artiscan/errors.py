from __future__ import annotations

from typing import Optional


class ScannerError(RuntimeError):
    """Base class for every failure raised by the scanner."""


class ConfigurationError(ScannerError):
    """No usable calibration or settings; fatal before scanning starts."""


class CaptureError(ScannerError):
    """Screen capture failed; fatal for the current session."""


class RecognitionError(ScannerError):
    """OCR of a single panel field failed."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"OCR {field}: {message}")
        self.field = field


class ParseError(ScannerError, ValueError):
    """Recognized text could not be turned into a structured value."""

    def __init__(self, message: str, raw: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw = raw


class ChannelClosedError(ScannerError):
    """The peer end of a channel is gone; the normal end-of-stream signal."""


class ScanInterrupted(ScannerError):
    """The user asked the scan to stop (right click / stop key)."""


class WorkerCrashedError(ScannerError):
    """The recognition worker thread died on an unexpected exception."""
