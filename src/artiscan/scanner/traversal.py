"""
Cooperative walk over the artifact grid.

``RepositoryTraversal.step()`` performs the UI work for exactly one cell
(scrolling first when a new page starts) and hands control back to the
caller, which captures and recognizes that cell before asking for the next.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from .layout import ScannerWindowInfo
from ..errors import ScanInterrupted
from ..geometry.positioning import Pos


class Pointer(Protocol):
    def cancel_requested(self) -> bool: ...

    def move_to(self, x: int, y: int) -> None: ...

    def click(self) -> None: ...

    def scroll(self, ticks: int) -> None: ...

    def sleep(self, seconds: Optional[float]) -> None: ...


class TraversalState(Enum):
    YIELDED = "yielded"
    INTERRUPTED = "interrupted"
    FINISHED = "finished"


@dataclass(frozen=True)
class Checkpoint:
    index: int
    row: int
    col: int
    start_row: int
    page_first: bool


@dataclass(frozen=True)
class TraversalStep:
    state: TraversalState
    checkpoint: Optional[Checkpoint] = None


def start_row(count: int, index: int, rows: int, cols: int) -> int:
    """
    First occupied row of the page holding ``index`` once the list is
    scrolled as far as it goes. Only a partial final page starts below row 0.
    """
    remaining = count - index
    if remaining >= rows * cols:
        return 0
    needed = int(math.ceil(remaining / float(cols)))
    return rows - min(needed, rows)


def is_page_first(index: int, rows: int, cols: int) -> bool:
    return index % (rows * cols) == 0


class RepositoryTraversal:
    def __init__(
        self,
        window_info: ScannerWindowInfo,
        origin: Pos,
        pointer: Pointer,
        count: int,
        *,
        switch_delay: float = 0.08,
        scroll_delay: float = 0.2,
        scroll_ticks_per_row: int = 5,
    ) -> None:
        self.window_info = window_info
        self.origin = origin
        self.pointer = pointer
        self.count = max(0, int(count))
        self.switch_delay = switch_delay
        self.scroll_delay = scroll_delay
        self.scroll_ticks_per_row = scroll_ticks_per_row

        self._cursor = 0
        self._page_start_row = 0
        self._terminal: Optional[TraversalState] = None
        self._last: Optional[Checkpoint] = None

    @property
    def state(self) -> Optional[TraversalState]:
        """INTERRUPTED / FINISHED once terminal, otherwise None."""
        return self._terminal

    def cell_center(self, row: int, col: int) -> Pos:
        info = self.window_info
        x = (
            self.origin.x
            + info.scan_margin_pos.x
            + info.col_pitch * col
            + info.item_size.width / 2.0
        )
        y = (
            self.origin.y
            + info.scan_margin_pos.y
            + info.row_pitch * row
            + info.item_size.height / 2.0
        )
        return Pos(x, y)

    def _scroll_one_page(self) -> None:
        ticks = self.window_info.row * self.scroll_ticks_per_row
        self.pointer.scroll(ticks)
        self.pointer.sleep(self.scroll_delay)

    def _visit(self, row: int, col: int) -> None:
        x, y = self.cell_center(row, col).to_int()
        self.pointer.move_to(x, y)
        self.pointer.click()
        self.pointer.sleep(self.switch_delay)

    def step(self) -> TraversalStep:
        if self._terminal is not None:
            return TraversalStep(self._terminal)
        if self._cursor >= self.count:
            self._terminal = TraversalState.FINISHED
            return TraversalStep(self._terminal)
        if self.pointer.cancel_requested():
            self._terminal = TraversalState.INTERRUPTED
            return TraversalStep(self._terminal)

        rows, cols = self.window_info.row, self.window_info.col
        index = self._cursor
        page_first = is_page_first(index, rows, cols)

        try:
            if page_first and index > 0:
                self._scroll_one_page()
                self._page_start_row = start_row(self.count, index, rows, cols)

            offset = index % (rows * cols)
            row = self._page_start_row + offset // cols
            col = offset % cols
            self._visit(row, col)
        except ScanInterrupted:
            self._terminal = TraversalState.INTERRUPTED
            return TraversalStep(self._terminal)

        checkpoint = Checkpoint(
            index=index,
            row=row,
            col=col,
            start_row=self._page_start_row,
            page_first=page_first,
        )
        self._cursor += 1
        self._last = checkpoint
        return TraversalStep(TraversalState.YIELDED, checkpoint)

    def refocus(self) -> None:
        """
        Put the pointer back on the current cell after a corrective action.
        """
        if self._last is None:
            return
        x, y = self.cell_center(self._last.row, self._last.col).to_int()
        self.pointer.move_to(x, y)
