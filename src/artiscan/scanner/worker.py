from __future__ import annotations

import copy
import threading
import time
from pathlib import Path
from typing import List, Optional, Set, Tuple

import cv2
import numpy as np

from .channel import Channel
from .layout import ScannerWindowInfo
from .stats import ArtifactStat
from .types import ScanItem, ScanResult
from ..config import ScanSettings
from ..errors import ChannelClosedError, ParseError, RecognitionError, WorkerCrashedError
from ..geometry.positioning import Pos, Rect
from ..ocr.recognizer import ImageToText

LOCK_ICON_COLOR = (255, 138, 117)
LOCK_COLOR_DISTANCE = 30
LOCK_SEARCH_DX = range(-1, 2)
LOCK_SEARCH_DY = range(-10, 10)

MARKER_COLOR = (220, 192, 255)
MARKER_COLOR_DISTANCE = 10
MARKER_COVERAGE = 0.9

WORKER_THREAD_NAME = "artiscan-worker"


def color_distance(a: Tuple[int, int, int], b: Tuple[int, int, int]) -> int:
    """Squared RGB distance."""
    return sum((int(x) - int(y)) ** 2 for x, y in zip(a, b))


def parse_level(raw: str) -> int:
    """
    ``"+20"`` -> 20. Text before the plus sign is OCR noise and ignored.
    """
    text = raw.strip()
    plus = text.find("+")
    if plus >= 0:
        text = text[plus:]
    try:
        return int(text)
    except ValueError:
        raise ParseError(f"parse level (OCR raw: {raw!r})", raw=raw) from None


def get_page_locks_from_list_image(
    list_image: np.ndarray,
    window_info: ScannerWindowInfo,
    debug_dir: Optional[Path] = None,
) -> List[bool]:
    """
    Lock flags for the cells of one captured list page, row-major.

    Rows whose top edge lies below the captured image are not reported.
    """
    height, width = list_image.shape[:2]
    pitch_x = window_info.col_pitch
    pitch_y = window_info.row_pitch
    icon = window_info.lock_icon_pos

    if debug_dir is not None:
        debug_dir.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(debug_dir / "list.png"), cv2.cvtColor(list_image, cv2.COLOR_RGB2BGR))

    # int32 so the squared distance cannot wrap
    pixels = list_image[:, :, :3].astype(np.int32)
    reference = np.array(LOCK_ICON_COLOR, dtype=np.int32)

    locks: List[bool] = []
    for r in range(window_info.row):
        if pitch_y * r > height:
            break
        for c in range(window_info.col):
            x = int(pitch_x * c + icon.x)
            y = int(pitch_y * r + icon.y)
            locked = False
            for dx in LOCK_SEARCH_DX:
                px = x + dx
                if px < 0 or px >= width:
                    continue
                for dy in LOCK_SEARCH_DY:
                    py = y + dy
                    if py < 0 or py >= height:
                        continue
                    if int(((pixels[py, px] - reference) ** 2).sum()) < LOCK_COLOR_DISTANCE:
                        locked = True
                        break
                if locked:
                    break
            locks.append(locked)
    return locks


class WorkerHandle:
    """
    The running worker thread. ``join()`` hands back the kept results.
    """

    def __init__(self, worker: "ArtifactScannerWorker", rx: Channel, result_tx: Optional[Channel]) -> None:
        self.worker = worker
        self._results: List[ScanResult] = []
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(
            target=self._run,
            args=(rx, result_tx),
            name=WORKER_THREAD_NAME,
            daemon=True,
        )

    def _run(self, rx: Channel, result_tx: Optional[Channel]) -> None:
        try:
            self._results = self.worker.consume(rx, result_tx)
        except Exception as exc:
            self._error = exc
            print(f"[worker] crashed: {exc!r}", flush=True)

    def start(self) -> "WorkerHandle":
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> List[ScanResult]:
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise WorkerCrashedError("recognition pipeline did not finish in time")
        if self._error is not None:
            raise WorkerCrashedError("recognition pipeline crashed") from self._error
        return list(self._results)


class ArtifactScannerWorker:
    """
    Turns captured panels into ``ScanResult`` records on a worker thread.

    The worker owns its own copies of the window info and the settings, so
    the driver can keep using (and never shares mutable state with) its own.
    """

    def __init__(
        self,
        window_info: ScannerWindowInfo,
        settings: ScanSettings,
        image_to_text: ImageToText,
    ) -> None:
        self.window_info = copy.deepcopy(window_info)
        self.settings = copy.deepcopy(settings)
        self.image_to_text = image_to_text

        self.duplicates = 0
        self.failures = 0
        self.stop_reason: Optional[str] = None
        self.processing_seconds = 0.0

    # ------------------------------------------------------------------
    # Single-panel extraction
    # ------------------------------------------------------------------

    def _crop(self, rect: Rect, image: np.ndarray, field: str) -> np.ndarray:
        panel = self.window_info.panel_rect
        relative = rect.translate(Pos(-panel.left, -panel.top))
        x, y, w, h = relative.to_int()
        img_h, img_w = image.shape[:2]
        if x < 0 or y < 0 or w <= 0 or h <= 0 or x + w > img_w or y + h > img_h:
            raise RecognitionError(
                field,
                f"crop region out of bounds: ({x}..{x + w}, {y}..{y + h}) vs image {img_w}x{img_h}",
            )
        return image[y : y + h, x : x + w]

    def _read(self, rect: Rect, image: np.ndarray, field: str) -> str:
        crop = self._crop(rect, image, field)
        try:
            return self.image_to_text.image_to_text(crop, False)
        except RecognitionError as exc:
            raise RecognitionError(field, str(exc)) from exc

    def _read_pending_line(self, rect: Rect, image: np.ndarray, field: str) -> str:
        crop = self._crop(rect, image, field)
        try:
            return self.image_to_text.image_to_text_pending_line(crop)
        except RecognitionError as exc:
            raise RecognitionError(field, str(exc)) from exc

    def has_marker(self, panel_image: np.ndarray) -> bool:
        """
        True when the marker block fills the detect rect (it pushes the
        level and sub-stat lines down).
        """
        rect = self.window_info.marker_detect_rect
        if rect is None or rect.height <= 0 or rect.width <= 0:
            return False
        panel = self.window_info.panel_rect
        x, y, w, h = rect.translate(Pos(-panel.left, -panel.top)).to_int()
        img_h, img_w = panel_image.shape[:2]
        if x < 0 or y < 0 or w <= 0 or h <= 0 or x + w > img_w or y + h > img_h:
            return False

        region = panel_image[y : y + h, x : x + w, :3].astype(np.int32)
        dist = ((region - np.array(MARKER_COLOR, dtype=np.int32)) ** 2).sum(axis=2)
        matched = int((dist < MARKER_COLOR_DISTANCE).sum())
        return matched / float(max(w * h, 1)) >= MARKER_COVERAGE

    def scan_item_image(self, item: ScanItem, lock: bool) -> ScanResult:
        info = self.window_info
        image = item.panel_image

        title = self._read(info.title_rect, image, "title_rect")
        main_stat_name = self._read(info.main_stat_name_rect, image, "main_stat_name_rect")
        main_stat_value = self._read(info.main_stat_value_rect, image, "main_stat_value_rect")

        offset_y = 0.0
        if info.marker_offset_y != 0 and self.has_marker(image):
            if self.settings.verbose:
                print("[worker] marker block detected, shifting stat lines", flush=True)
            offset_y = info.marker_offset_y
        offset = Pos(0.0, offset_y)

        level_rect = info.level_rect.translate(offset)
        sub_rects = [rect.translate(offset) for rect in info.sub_stat_rects]

        sub_stats = [
            self._read(sub_rects[i], image, f"sub_stat_{i + 1}") for i in range(3)
        ]
        # The fourth line is grayed out until the artifact reaches the next tier
        fourth = self._read(sub_rects[3], image, "sub_stat_4")
        if ArtifactStat.parse(fourth) is None:
            fourth = self._read_pending_line(sub_rects[3], image, "sub_stat_4")
        sub_stats.append(fourth)

        level_text = self._read(level_rect, image, "level_rect")
        equip = self._read(info.item_equip_rect, image, "item_equip_rect")
        level = parse_level(level_text)

        return ScanResult(
            name=title,
            main_stat_name=main_stat_name,
            main_stat_value=main_stat_value,
            sub_stat=(sub_stats[0], sub_stats[1], sub_stats[2], sub_stats[3]),
            level=level,
            equip=equip,
            star=item.star,
            lock=lock,
        )

    def scan_panel_image(self, panel_image: np.ndarray, lock: bool = False) -> ScanResult:
        """
        Run the live extraction on one panel bitmap, e.g. cropped from a
        full-window screenshot.
        """
        return self.scan_item_image(ScanItem(panel_image=panel_image, star=0), lock)

    def get_page_locks(self, list_image: np.ndarray) -> List[bool]:
        return get_page_locks_from_list_image(list_image, self.window_info)

    # ------------------------------------------------------------------
    # Channel loop
    # ------------------------------------------------------------------

    def _publish(self, result_tx: Optional[Channel], result: Optional[ScanResult]) -> None:
        if result_tx is None:
            return
        try:
            result_tx.send(result)
        except ChannelClosedError:
            pass

    def consume(self, rx: Channel, result_tx: Optional[Channel] = None) -> List[ScanResult]:
        """
        Process items until the driver closes ``rx`` or a stop condition
        fires. Both channels are closed on the way out.
        """
        results: List[ScanResult] = []
        seen: Set[ScanResult] = set()
        consecutive_dups = 0
        locks: List[bool] = []
        index = 0
        start = time.perf_counter()

        try:
            for item in rx:
                if item.list_image is not None:
                    locks.extend(self.get_page_locks(item.list_image))

                lock = locks[index] if index < len(locks) else False
                index += 1

                try:
                    result = self.scan_item_image(item, lock)
                except (RecognitionError, ParseError) as exc:
                    self.failures += 1
                    print(f"[worker] recognition failed for item {index}: {exc}", flush=True)
                    self._publish(result_tx, None)
                    continue

                self._publish(result_tx, result)

                if self.settings.verbose:
                    print(f"[worker] {result}", flush=True)

                if result.level < self.settings.min_level:
                    self.stop_reason = (
                        f"found level {result.level} below minimum {self.settings.min_level}"
                    )
                    print(f"[worker] {self.stop_reason}, stopping", flush=True)
                    break

                if result in seen:
                    consecutive_dups += 1
                    self.duplicates += 1
                    print(f"[worker] duplicate artifact: {result.name}", flush=True)
                else:
                    consecutive_dups = 0
                    seen.add(result)
                    results.append(result)

                if consecutive_dups >= self.window_info.col and not self.settings.ignore_dup:
                    self.stop_reason = (
                        "too many consecutive duplicates; page turn failed "
                        "or the scan did not start at the top of the list"
                    )
                    print(f"[worker] {self.stop_reason}", flush=True)
                    break
        finally:
            rx.close()
            if result_tx is not None:
                result_tx.close()
            self.processing_seconds = time.perf_counter() - start

        print(f"[worker] recognition finished, unique artifacts: {len(seen)}", flush=True)
        return results

    def start(self, rx: Channel, result_tx: Optional[Channel] = None) -> WorkerHandle:
        return WorkerHandle(self, rx, result_tx).start()
