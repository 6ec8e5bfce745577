from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import Sequence

import pywinctl as pwc

from ..geometry.positioning import Pos
from ..geometry.window_info import UI, Platform

# Titles of the game client window (localized builds)
TARGET_TITLES = ("原神", "Genshin Impact")
WINDOW_TIMEOUT = 30.0
WINDOW_POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class GameInfo:
    """Where the game window is on screen and which layout it uses."""

    left: int
    top: int
    width: int
    height: int
    ui: UI
    platform: Platform

    @property
    def origin(self) -> Pos:
        return Pos(self.left, self.top)


def current_platform() -> Platform:
    if sys.platform == "win32":
        return Platform.WINDOWS
    if sys.platform == "darwin":
        return Platform.MACOS
    # On Linux the Windows client runs under Wine/Proton with the same layout
    return Platform.WINDOWS


def _matches(title: str, targets: Sequence[str]) -> bool:
    lowered = title.strip().lower()
    return any(lowered == t.lower() for t in targets)


def wait_for_target_window(
    titles: Sequence[str] = TARGET_TITLES,
    timeout: float = WINDOW_TIMEOUT,
    poll_interval: float = WINDOW_POLL_INTERVAL,
) -> pwc.Window:
    """
    Wait until the active window is the game client.
    """
    start = time.monotonic()

    while time.monotonic() - start < timeout:
        win = pwc.getActiveWindow()
        if win is not None and _matches(win.title or "", titles):
            return win
        time.sleep(poll_interval)

    joined = ", ".join(repr(t) for t in titles)
    raise TimeoutError(f"Timed out waiting for active window {joined}")


def game_info_from_window(win: pwc.Window, ui: UI = UI.DESKTOP) -> GameInfo:
    """
    Client-area geometry of the window, used as the origin for all captures.
    """
    try:
        left, top, right, bottom = win.getClientFrame()
    except (AttributeError, NotImplementedError):
        left, top = int(win.left), int(win.top)
        right, bottom = left + int(win.width), top + int(win.height)
    return GameInfo(
        left=int(left),
        top=int(top),
        width=int(right - left),
        height=int(bottom - top),
        ui=ui,
        platform=current_platform(),
    )
