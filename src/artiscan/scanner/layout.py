from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..geometry.positioning import Pos, Rect, Size
from ..geometry.window_info import UI, Platform, WindowInfo, WindowInfoRepository
from ..errors import ConfigurationError


@dataclass(frozen=True)
class ScannerWindowInfo:
    """
    Window-relative geometry of the artifact repository screen, already
    scaled to the live window.
    """

    window_size: Size
    row: int
    col: int
    scan_margin_pos: Pos
    item_gap_size: Size
    item_size: Size
    item_count_rect: Rect
    star_pos: Pos
    panel_rect: Rect
    title_rect: Rect
    main_stat_name_rect: Rect
    main_stat_value_rect: Rect
    level_rect: Rect
    sub_stat_rects: Tuple[Rect, Rect, Rect, Rect]
    item_equip_rect: Rect
    lock_button_pos: Pos
    lock_icon_pos: Pos
    marker_detect_rect: Optional[Rect] = None
    marker_offset_y: float = 0.0

    @property
    def page_size(self) -> int:
        return self.row * self.col

    @property
    def row_pitch(self) -> float:
        return self.item_size.height + self.item_gap_size.height

    @property
    def col_pitch(self) -> float:
        return self.item_size.width + self.item_gap_size.width

    @classmethod
    def from_window_info(cls, info: WindowInfo) -> "ScannerWindowInfo":
        marker_rect = info.rect("marker_detect_rect") if "marker_detect_rect" in info else None
        row = info.integer("row")
        col = info.integer("col")
        if row <= 0 or col <= 0:
            raise ConfigurationError(f"grid must have positive rows/cols, got {row}x{col}")
        return cls(
            window_size=info.size,
            row=row,
            col=col,
            scan_margin_pos=info.pos("scan_margin_pos"),
            item_gap_size=info.size_of("item_gap_size"),
            item_size=info.size_of("item_size"),
            item_count_rect=info.rect("item_count_rect"),
            star_pos=info.pos("star_pos"),
            panel_rect=info.rect("panel_rect"),
            title_rect=info.rect("title_rect"),
            main_stat_name_rect=info.rect("main_stat_name_rect"),
            main_stat_value_rect=info.rect("main_stat_value_rect"),
            level_rect=info.rect("level_rect"),
            sub_stat_rects=(
                info.rect("sub_stat_1"),
                info.rect("sub_stat_2"),
                info.rect("sub_stat_3"),
                info.rect("sub_stat_4"),
            ),
            item_equip_rect=info.rect("item_equip_rect"),
            lock_button_pos=info.pos("lock_button_pos"),
            lock_icon_pos=info.pos("lock_icon_pos"),
            marker_detect_rect=marker_rect,
            marker_offset_y=info.number("marker_offset_y", default=0.0),
        )

    @classmethod
    def from_repository(
        cls,
        repo: WindowInfoRepository,
        window_size: Tuple[int, int],
        ui: UI,
        platform: Platform,
    ) -> "ScannerWindowInfo":
        return cls.from_window_info(repo.resolve(window_size, ui, platform))
