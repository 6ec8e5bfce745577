from __future__ import annotations

import pytest

from artiscan.config import ScanSettings
from artiscan.scanner.layout import ScannerWindowInfo

from fakes import make_window_info


@pytest.fixture
def window_info() -> ScannerWindowInfo:
    return make_window_info()


@pytest.fixture
def settings() -> ScanSettings:
    return ScanSettings(
        min_star=4,
        min_level=0,
        switch_delay_ms=0,
        scroll_delay_ms=0,
    )
