from __future__ import annotations

import re
import time
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Protocol, Tuple

import numpy as np

from .channel import Channel
from .layout import ScannerWindowInfo
from .lock_list import LockList
from .outcomes import ALREADY_LOCKED, LOCK, SCANNED, UNREADABLE, _describe_item
from .progress import NullScanProgress, RichScanProgress, ScanProgress
from .rich_support import Console
from .traversal import Pointer, RepositoryTraversal, TraversalState
from .types import ScanItem, ScanResult, ScanStats
from .worker import ArtifactScannerWorker, color_distance
from ..config import MAX_COUNT, ScanSettings
from ..errors import ChannelClosedError, ScanInterrupted, WorkerCrashedError
from ..geometry.positioning import Pos, Rect
from ..geometry.window_info import WindowInfoRepository, default_window_info_repository
from ..ocr.recognizer import ImageToText

if TYPE_CHECKING:
    from ..interaction.ui_windows import GameInfo

# Rarity frame colours, 1 to 5 stars
STAR_COLORS: Tuple[Tuple[int, int, int], ...] = (
    (113, 119, 139),
    (42, 143, 114),
    (81, 127, 203),
    (161, 86, 224),
    (188, 105, 50),
)

LOCK_CLICK_DELAY = 0.02
LOCK_SETTLE_DELAY = 0.03

_ITEM_COUNT_PATTERN = re.compile(r"(\d+)\s*/\s*\d+")


class Capturer(Protocol):
    def capture_rect(self, rect: Tuple[int, int, int, int]) -> np.ndarray: ...

    def capture_relative(self, rect: Rect, origin: Pos) -> np.ndarray: ...

    def capture_color(self, pos: Pos) -> Tuple[int, int, int]: ...


def star_from_color(color: Tuple[int, int, int]) -> int:
    """Nearest palette entry by squared RGB distance, as a 1-based tier."""
    best = min(range(len(STAR_COLORS)), key=lambda i: color_distance(STAR_COLORS[i], color))
    return best + 1


def parse_item_count(text: str) -> Optional[int]:
    """
    ``"圣遗物 1234/2400"`` -> 1234, capped at ``MAX_COUNT``.
    """
    match = _ITEM_COUNT_PATTERN.search(text.replace(" ", ""))
    if not match:
        return None
    return min(int(match.group(1)), MAX_COUNT)


def _build_progress_impl(show_progress: bool, progress: Optional[ScanProgress]) -> ScanProgress:
    if progress is not None:
        return progress
    if not show_progress or Console is None:
        return NullScanProgress()
    try:
        return RichScanProgress()
    except Exception:
        return NullScanProgress()


class ArtifactScanner:
    """
    Drives the artifact repository: walks the grid, captures every cell and
    feeds the recognition worker. Optionally locks artifacts named in a lock
    list as their results come back.
    """

    def __init__(
        self,
        window_info: ScannerWindowInfo,
        settings: ScanSettings,
        origin: Pos,
        capturer: Capturer,
        pointer: Pointer,
        image_to_text: ImageToText,
        *,
        progress: Optional[ScanProgress] = None,
        lock_list: Optional[LockList] = None,
    ) -> None:
        self.window_info = window_info
        self.settings = settings
        self.origin = origin
        self.capturer = capturer
        self.pointer = pointer
        self.image_to_text = image_to_text
        self.progress: ScanProgress = progress if progress is not None else NullScanProgress()

        if lock_list is None and settings.lock_list_path:
            lock_list = LockList.from_json_path(Path(settings.lock_list_path))
        self.lock_list = lock_list

        self.stats = ScanStats()

    @classmethod
    def for_game(
        cls,
        game_info: "GameInfo",
        settings: ScanSettings,
        *,
        repository: Optional[WindowInfoRepository] = None,
        show_progress: bool = True,
        progress: Optional[ScanProgress] = None,
    ) -> "ArtifactScanner":
        """
        Scanner wired to the live screen, pointer and tesseract.
        """
        from ..interaction.capture import ScreenCapturer
        from ..interaction.input_driver import PointerController
        from ..ocr.tesseract import TesseractImageToText

        repo = repository if repository is not None else default_window_info_repository()
        window_info = ScannerWindowInfo.from_repository(
            repo, (game_info.width, game_info.height), game_info.ui, game_info.platform
        )
        return cls(
            window_info,
            settings,
            game_info.origin,
            ScreenCapturer(),
            PointerController(),
            TesseractImageToText(settings.ocr_language),
            progress=_build_progress_impl(show_progress, progress),
        )

    # ------------------------------------------------------------------
    # Captures
    # ------------------------------------------------------------------

    def capture_panel(self) -> np.ndarray:
        return self.capturer.capture_relative(self.window_info.panel_rect, self.origin)

    def get_star(self) -> int:
        color = self.capturer.capture_color(self.window_info.star_pos.offset(self.origin.x, self.origin.y))
        return star_from_color(color)

    def capture_list(self, start_row: int) -> np.ndarray:
        """
        The grid from the first occupied row of the page down to the window
        bottom.
        """
        info = self.window_info
        shift = info.row_pitch * start_row
        rect = Rect(
            info.scan_margin_pos.x,
            info.scan_margin_pos.y + shift,
            info.window_size.width - info.scan_margin_pos.x,
            info.window_size.height - info.scan_margin_pos.y - shift,
        )
        return self.capturer.capture_relative(rect, self.origin)

    def get_item_count(self) -> int:
        if self.settings.number > 0:
            return min(self.settings.number, MAX_COUNT)

        image = self.capturer.capture_relative(self.window_info.item_count_rect, self.origin)
        text = self.image_to_text.image_to_text(image, False)
        print(f"[scanner] item count label: {text!r}", flush=True)
        count = parse_item_count(text)
        if count is None:
            self.progress.add_event(
                f"Could not read the artifact count ({text!r}); scanning up to {MAX_COUNT}.",
                style="yellow",
            )
            return MAX_COUNT
        return count

    # ------------------------------------------------------------------
    # Auto lock
    # ------------------------------------------------------------------

    def try_lock(self, traversal: RepositoryTraversal) -> None:
        """
        Click the panel's lock button, then put the pointer back on the
        current cell so the next step starts from the list again.
        """
        x, y = self.window_info.lock_button_pos.offset(self.origin.x, self.origin.y).to_int()
        self.pointer.move_to(x, y)
        self.pointer.sleep(LOCK_CLICK_DELAY)
        self.pointer.click()
        self.pointer.sleep(LOCK_CLICK_DELAY)
        traversal.refocus()
        self.pointer.sleep(LOCK_SETTLE_DELAY)

    def _handle_feedback(
        self, result: Optional[ScanResult], traversal: RepositoryTraversal
    ) -> str:
        if result is None:
            return UNREADABLE
        if self.lock_list is None or not self.lock_list.contains(result):
            if self.settings.verbose:
                print(f"[scanner] not in lock list: {result.name} {result.main_stat_value}", flush=True)
            return SCANNED
        if result.lock:
            print(f"[scanner] already locked: {result.name} {result.main_stat_value}", flush=True)
            return ALREADY_LOCKED
        self.try_lock(traversal)
        self.stats.locks_clicked += 1
        self.progress.add_event(f"Locked {result.name} {result.main_stat_value}", style="magenta")
        return LOCK

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def _drive(
        self,
        traversal: RepositoryTraversal,
        items: Channel,
        feedback: Optional[Channel],
        count: int,
    ) -> None:
        stats = self.stats
        while True:
            step = traversal.step()
            if step.state is TraversalState.INTERRUPTED:
                stats.status = "interrupted"
                stats.stop_reason = "cancelled by user input"
                self.progress.add_event("Scan interrupted by user.", style="yellow")
                return
            checkpoint = step.checkpoint
            if step.state is TraversalState.FINISHED or checkpoint is None:
                return

            panel = self.capture_panel()
            star = self.get_star()
            list_image = self.capture_list(checkpoint.start_row) if checkpoint.page_first else None

            if star < self.settings.min_star:
                stats.status = "stopped"
                stats.stop_reason = f"reached an artifact below {self.settings.min_star} stars"
                self.progress.add_event(stats.stop_reason.capitalize() + ".", style="yellow")
                return

            try:
                items.send(ScanItem(panel_image=panel, star=star, list_image=list_image))
            except ChannelClosedError:
                return
            stats.items_sent += 1

            result: Optional[ScanResult] = None
            outcome = SCANNED
            if feedback is not None:
                try:
                    result = feedback.recv()
                except ChannelClosedError:
                    return
                try:
                    outcome = self._handle_feedback(result, traversal)
                except ScanInterrupted:
                    stats.status = "interrupted"
                    stats.stop_reason = "cancelled by user input"
                    return

            page = checkpoint.index // self.window_info.page_size + 1
            self.progress.record_artifact(
                f"#{checkpoint.index + 1} page {page} r{checkpoint.row}c{checkpoint.col}",
                star,
                outcome,
                _describe_item(result),
            )

    def scan(self) -> List[ScanResult]:
        """
        Scan the repository from the current list position. Results below
        ``min_level`` are dropped; ``self.stats`` describes the run.
        """
        scan_start = time.perf_counter()
        self.stats = ScanStats()
        settings = self.settings

        self.progress.start()
        try:
            self.progress.set_phase("Reading artifact count…")
            count = self.get_item_count()
            self.stats.items_expected = count
            size = self.window_info.window_size
            self.progress.begin(count, f"{int(size.width)}x{int(size.height)}")
            if self.lock_list is not None:
                self.progress.add_event(f"Lock list loaded ({len(self.lock_list)} entries).")

            items: Channel[ScanItem] = Channel()
            feedback: Optional[Channel[Optional[ScanResult]]] = (
                Channel() if self.lock_list is not None else None
            )
            worker = ArtifactScannerWorker(self.window_info, settings, self.image_to_text)
            handle = worker.start(items, feedback)

            traversal = RepositoryTraversal(
                self.window_info,
                self.origin,
                self.pointer,
                count,
                switch_delay=settings.switch_delay_ms / 1000.0,
                scroll_delay=settings.scroll_delay_ms / 1000.0,
                scroll_ticks_per_row=settings.scroll_ticks_per_row,
            )

            self.progress.set_phase("Scanning…")
            try:
                self._drive(traversal, items, feedback, count)
            except BaseException:
                items.close()
                # the driver error wins over anything the worker hit while draining
                try:
                    handle.join()
                except WorkerCrashedError as exc:
                    print(f"[scanner] recognition pipeline failed during abort: {exc!r}", flush=True)
                raise
            items.close()

            self.progress.set_phase("Waiting for recognition…")
            results = handle.join()
        finally:
            self.progress.stop()

        self.stats.duplicates = worker.duplicates
        self.stats.failures = worker.failures
        if worker.stop_reason is not None and self.stats.stop_reason is None:
            self.stats.status = "stopped"
            self.stats.stop_reason = worker.stop_reason

        kept = [r for r in results if r.level >= settings.min_level]
        self.stats.results_kept = len(kept)
        self.stats.processing_seconds = time.perf_counter() - scan_start
        print(
            f"[scanner] scan {self.stats.status}: {len(kept)} artifacts in "
            f"{self.stats.processing_seconds:.1f}s",
            flush=True,
        )
        return kept
