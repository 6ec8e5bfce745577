from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Tuple

import mss
import numpy as np
from mss.exception import ScreenShotError

from ..errors import CaptureError
from ..geometry.positioning import Pos, Rect

if TYPE_CHECKING:
    from mss.base import MSSBase


class ScreenCapturer:
    """
    Live screen capture returning RGB uint8 arrays. Nothing is cached: every
    call grabs the screen as it is right now.

    The underlying mss handle is created lazily and must stay on the thread
    that drives the UI.
    """

    def __init__(self) -> None:
        self._sct: Optional["MSSBase"] = None

    def _get_mss(self) -> "MSSBase":
        if self._sct is None:
            try:
                self._sct = mss.mss()
            except ScreenShotError as exc:
                raise CaptureError(f"mss could not open the display: {exc}") from exc
        return self._sct

    def capture_rect(self, rect: Tuple[int, int, int, int]) -> np.ndarray:
        """
        Capture (left, top, width, height) in screen coordinates.
        """
        left, top, width, height = (int(v) for v in rect)
        if width <= 0 or height <= 0:
            raise CaptureError(f"Invalid capture region size: width={width}, height={height}")

        bbox = {"left": left, "top": top, "width": width, "height": height}
        try:
            shot = self._get_mss().grab(bbox)
        except ScreenShotError as exc:
            raise CaptureError(
                f"mss failed to capture the requested region {bbox}: {exc}"
            ) from exc

        frame = np.asarray(shot)
        # BGRA -> RGB
        return np.ascontiguousarray(frame[:, :, 2::-1])

    def capture_relative(self, rect: Rect, origin: Pos) -> np.ndarray:
        """
        Capture a window-relative rectangle given the window's screen origin.
        """
        left, top, width, height = rect.to_int()
        ox, oy = origin.to_int()
        return self.capture_rect((ox + left, oy + top, width, height))

    def capture_color(self, pos: Pos) -> Tuple[int, int, int]:
        x, y = pos.to_int()
        pixel = self.capture_rect((x, y, 1, 1))[0, 0]
        return int(pixel[0]), int(pixel[1]), int(pixel[2])
