from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import numpy as np

from artiscan.errors import ScanInterrupted
from artiscan.geometry.positioning import Pos, Rect, Size
from artiscan.ocr.recognizer import ImageToText
from artiscan.scanner.engine import STAR_COLORS
from artiscan.scanner.layout import ScannerWindowInfo
from artiscan.scanner.types import ScanItem

PANEL_HEIGHT = 220
PANEL_WIDTH = 120

# panel-local top of each field rect -> field name
FIELD_TOPS = {
    10: "title",
    30: "main_stat_name",
    45: "main_stat_value",
    60: "level",
    80: "sub_stat_1",
    95: "sub_stat_2",
    110: "sub_stat_3",
    125: "sub_stat_4",
    200: "equip",
}


def make_window_info(**overrides) -> ScannerWindowInfo:
    values = dict(
        window_size=Size(400, 300),
        row=4,
        col=5,
        scan_margin_pos=Pos(0, 20),
        item_gap_size=Size(2, 2),
        item_size=Size(15, 15),
        item_count_rect=Rect(300, 0, 50, 10),
        star_pos=Pos(110, 5),
        panel_rect=Rect(100, 0, PANEL_WIDTH, PANEL_HEIGHT),
        title_rect=Rect(105, 10, 100, 10),
        main_stat_name_rect=Rect(105, 30, 100, 10),
        main_stat_value_rect=Rect(105, 45, 100, 10),
        level_rect=Rect(105, 60, 30, 10),
        sub_stat_rects=(
            Rect(105, 80, 100, 10),
            Rect(105, 95, 100, 10),
            Rect(105, 110, 100, 10),
            Rect(105, 125, 100, 10),
        ),
        item_equip_rect=Rect(105, 200, 100, 10),
        lock_button_pos=Pos(210, 60),
        lock_icon_pos=Pos(3, 12),
        marker_detect_rect=Rect(105, 70, 20, 4),
        marker_offset_y=0.0,
    )
    values.update(overrides)
    return ScannerWindowInfo(**values)


def make_panel(item_id: int) -> np.ndarray:
    """
    Synthetic panel: channel 0 holds the panel-local row, channel 1 the item
    id, so a crop tells the recognizer which field of which item it sees.
    """
    panel = np.zeros((PANEL_HEIGHT, PANEL_WIDTH, 3), dtype=np.uint8)
    panel[:, :, 0] = np.arange(PANEL_HEIGHT, dtype=np.uint8)[:, None]
    panel[:, :, 1] = item_id
    return panel


def make_record(name: str, level: int = 20, sub_stat_4: str = "暴击率+3.9%") -> Dict[str, str]:
    return {
        "title": name,
        "main_stat_name": "攻击力",
        "main_stat_value": "311",
        "sub_stat_1": "暴击伤害+7.8%",
        "sub_stat_2": "防御力+65",
        "sub_stat_3": "元素精通+35",
        "sub_stat_4": sub_stat_4,
        "level": f"+{level}",
        "equip": "",
    }


class ScriptedRecognizer(ImageToText):
    """
    Returns canned text per (item id, field), decoded from the synthetic panel.
    """

    def __init__(self, records: Dict[int, Dict[str, str]], shift: int = 0) -> None:
        self.records = records
        self.shift = shift
        self.calls: List[Tuple[int, str]] = []
        self.pending_calls: List[Tuple[int, str]] = []

    def _field(self, image: np.ndarray) -> Tuple[int, str]:
        top = int(image[0, 0, 0])
        item = int(image[0, 0, 1])
        field = FIELD_TOPS.get(top)
        if field is None:
            field = FIELD_TOPS[top - self.shift]
        return item, field

    def image_to_text(self, image: np.ndarray, is_preprocessed: bool) -> str:
        item, field = self._field(image)
        self.calls.append((item, field))
        return self.records[item][field]

    def image_to_text_pending_line(self, image: np.ndarray) -> str:
        item, field = self._field(image)
        self.pending_calls.append((item, field))
        return self.records[item].get(field + "_pending", "")


class FakeGame:
    """
    Pointer and capturer in one: each click on a grid cell shows the next
    artifact, clicks on the lock button are recorded separately.
    """

    def __init__(
        self,
        window_info: ScannerWindowInfo,
        stars: List[int],
        cancel_after_clicks: Optional[int] = None,
        list_image: Optional[np.ndarray] = None,
    ) -> None:
        self.window_info = window_info
        self.stars = stars
        self.cancel_after_clicks = cancel_after_clicks
        self.list_image = list_image
        self.position = (0, 0)
        self.cell_clicks = 0
        self.lock_clicks: List[int] = []
        self.scrolls: List[int] = []
        self.moves: List[Tuple[int, int]] = []
        self.sleeps: List[float] = []
        self.cancelled = False

    # pointer
    def cancel_requested(self) -> bool:
        if self.cancel_after_clicks is not None and self.cell_clicks >= self.cancel_after_clicks:
            self.cancelled = True
        return self.cancelled

    def _check(self) -> None:
        if self.cancel_requested():
            raise ScanInterrupted("cancelled")

    def move_to(self, x: int, y: int) -> None:
        self._check()
        self.position = (x, y)
        self.moves.append((x, y))

    def click(self) -> None:
        self._check()
        if self.position == self.window_info.lock_button_pos.to_int():
            self.lock_clicks.append(self.cell_clicks - 1)
        else:
            self.cell_clicks += 1

    def scroll(self, ticks: int) -> None:
        self._check()
        self.scrolls.append(ticks)

    def sleep(self, seconds: Optional[float]) -> None:
        self.sleeps.append(seconds or 0.0)
        self._check()

    # capture
    @property
    def current(self) -> int:
        return self.cell_clicks - 1

    def capture_rect(self, rect: Tuple[int, int, int, int]) -> np.ndarray:
        _, _, w, h = rect
        return np.zeros((h, w, 3), dtype=np.uint8)

    def capture_relative(self, rect: Rect, origin: Pos) -> np.ndarray:
        if rect == self.window_info.panel_rect:
            return make_panel(self.current + 1)
        left, top, w, h = rect.to_int()
        if self.list_image is not None and left == int(self.window_info.scan_margin_pos.x):
            return self.list_image[: max(h, 0), : max(w, 0)].copy()
        return np.zeros((max(h, 1), max(w, 1), 3), dtype=np.uint8)

    def capture_color(self, pos: Pos) -> Tuple[int, int, int]:
        return STAR_COLORS[self.stars[self.current] - 1]


def item(item_id: int, star: int = 5, list_image: Optional[np.ndarray] = None) -> ScanItem:
    return ScanItem(panel_image=make_panel(item_id), star=star, list_image=list_image)
