from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from artiscan.errors import ChannelClosedError, ParseError, RecognitionError, WorkerCrashedError
from artiscan.geometry.positioning import Rect
from artiscan.scanner.channel import Channel
from artiscan.scanner.types import ScanResult
from artiscan.scanner.worker import (
    LOCK_ICON_COLOR,
    MARKER_COLOR,
    ArtifactScannerWorker,
    get_page_locks_from_list_image,
    parse_level,
)

from fakes import ScriptedRecognizer, item, make_panel, make_record, make_window_info


def _consume(worker, items, feedback=None):
    rx: Channel = Channel()
    for it in items:
        rx.send(it)
    rx.close()
    return worker.consume(rx, feedback), rx


@pytest.mark.parametrize(
    "raw, level",
    [("+20", 20), ("+0", 0), ("12", 12), (" +16 ", 16), ("Lv+4", 4)],
)
def test_parse_level(raw, level):
    assert parse_level(raw) == level


@pytest.mark.parametrize("raw", ["", "+", "abc", "+x1"])
def test_parse_level_rejects_garbage(raw):
    with pytest.raises(ParseError):
        parse_level(raw)


def test_scan_panel_image_reads_every_field(window_info, settings):
    recognizer = ScriptedRecognizer({7: make_record("角斗士的留恋", level=16)})
    worker = ArtifactScannerWorker(window_info, settings, recognizer)

    result = worker.scan_panel_image(make_panel(7))

    assert result == ScanResult(
        name="角斗士的留恋",
        main_stat_name="攻击力",
        main_stat_value="311",
        sub_stat=("暴击伤害+7.8%", "防御力+65", "元素精通+35", "暴击率+3.9%"),
        level=16,
        equip="",
    )
    assert result.lock is False
    assert recognizer.pending_calls == []


def test_fourth_sub_stat_falls_back_to_pending_line(window_info, settings):
    record = make_record("饰金之梦", sub_stat_4="暴击率3.1")
    record["sub_stat_4_pending"] = "暴击率+3.1%(待激活)"
    recognizer = ScriptedRecognizer({1: record})
    worker = ArtifactScannerWorker(window_info, settings, recognizer)

    result = worker.scan_panel_image(make_panel(1))

    assert result.sub_stat[3] == "暴击率+3.1%(待激活)"
    assert recognizer.pending_calls == [(1, "sub_stat_4")]


def test_marker_shifts_level_and_sub_stats(settings):
    info = make_window_info(marker_offset_y=5.0)
    panel = make_panel(3)
    # marker detect rect, panel-local (5, 70, 20, 4)
    panel[70:74, 5:25] = MARKER_COLOR
    recognizer = ScriptedRecognizer({3: make_record("冰风迷途的勇士", level=8)}, shift=5)
    worker = ArtifactScannerWorker(info, settings, recognizer)

    assert worker.has_marker(panel)
    result = worker.scan_panel_image(panel)

    assert result.level == 8
    assert result.sub_stat[0] == "暴击伤害+7.8%"
    assert worker.has_marker(make_panel(3)) is False


def test_marker_ignored_without_offset(window_info, settings):
    panel = make_panel(3)
    panel[70:74, 5:25] = MARKER_COLOR
    recognizer = ScriptedRecognizer({3: make_record("冰风迷途的勇士")})
    worker = ArtifactScannerWorker(window_info, settings, recognizer)
    # would hit an unknown field top if the rects were shifted
    assert worker.scan_panel_image(panel).level == 20


def test_out_of_bounds_crop_is_a_recognition_error(settings):
    info = make_window_info(item_equip_rect=Rect(105, 215, 100, 10))
    worker = ArtifactScannerWorker(info, settings, ScriptedRecognizer({1: make_record("x")}))
    with pytest.raises(RecognitionError) as excinfo:
        worker.scan_panel_image(make_panel(1))
    assert excinfo.value.field == "item_equip_rect"


class FailingRecognizer(ScriptedRecognizer):
    """Fails like the tesseract adapter does on one field."""

    def __init__(self, records, failing_field):
        super().__init__(records)
        self.failing_field = failing_field

    def image_to_text(self, image, is_preprocessed):
        if self._field(image)[1] == self.failing_field:
            raise RecognitionError("tesseract", "engine error")
        return super().image_to_text(image, is_preprocessed)

    def image_to_text_pending_line(self, image):
        if self._field(image)[1] == self.failing_field:
            raise RecognitionError("tesseract", "engine error")
        return super().image_to_text_pending_line(image)


def test_recognizer_error_names_the_failing_field(window_info, settings):
    recognizer = FailingRecognizer({1: make_record("x")}, "sub_stat_2")
    worker = ArtifactScannerWorker(window_info, settings, recognizer)
    with pytest.raises(RecognitionError) as excinfo:
        worker.scan_panel_image(make_panel(1))
    assert excinfo.value.field == "sub_stat_2"
    assert "engine error" in str(excinfo.value)


def test_pending_line_error_names_the_fourth_sub_stat(window_info, settings):
    records = {1: make_record("x", sub_stat_4="???")}

    class PendingFails(ScriptedRecognizer):
        def image_to_text_pending_line(self, image):
            raise RecognitionError("tesseract", "engine error")

    worker = ArtifactScannerWorker(window_info, settings, PendingFails(records))
    with pytest.raises(RecognitionError) as excinfo:
        worker.scan_panel_image(make_panel(1))
    assert excinfo.value.field == "sub_stat_4"


def test_duplicates_are_equal_regardless_of_lock():
    a = ScanResult("n", "m", "1", ("a", "b", "c", "d"), 20, "", star=5, lock=False)
    b = dataclasses.replace(a, lock=True, star=4)
    seen = {a}
    seen.add(b)
    assert a == b
    assert len(seen) == 1


def test_full_row_of_duplicates_stops_before_next_read(window_info, settings):
    recognizer = ScriptedRecognizer({1: make_record("A"), 2: make_record("B")})
    worker = ArtifactScannerWorker(window_info, settings, recognizer)
    # one new artifact, five duplicates (cols == 5), then one more that must not be read
    items = [item(1)] + [item(1)] * 5 + [item(2)]

    results, rx = _consume(worker, items)

    assert [r.name for r in results] == ["A"]
    assert worker.duplicates == 5
    assert worker.stop_reason is not None
    leftover = list(rx)
    assert len(leftover) == 1 and leftover[0] is items[-1]
    assert all(i == 1 for i, _ in recognizer.calls)


def test_ignore_dup_keeps_consuming(window_info, settings):
    settings = dataclasses.replace(settings, ignore_dup=True)
    recognizer = ScriptedRecognizer({1: make_record("A"), 2: make_record("B")})
    worker = ArtifactScannerWorker(window_info, settings, recognizer)

    results, _ = _consume(worker, [item(1)] * 7 + [item(2)])

    assert [r.name for r in results] == ["A", "B"]
    assert worker.duplicates == 6
    assert worker.stop_reason is None


def test_min_level_stops_after_publishing(window_info, settings):
    settings = dataclasses.replace(settings, min_level=10)
    records = {1: make_record("A", level=20), 2: make_record("B", level=4), 3: make_record("C")}
    worker = ArtifactScannerWorker(window_info, settings, ScriptedRecognizer(records))
    feedback: Channel = Channel()

    results, _ = _consume(worker, [item(1), item(2), item(3)], feedback)

    assert [r.name for r in results] == ["A"]
    assert [r.name for r in feedback] == ["A", "B"]


def test_failed_item_publishes_none_and_continues(window_info, settings):
    records = {1: make_record("A"), 2: make_record("B"), 3: make_record("C")}
    records[2]["level"] = "??"
    worker = ArtifactScannerWorker(window_info, settings, ScriptedRecognizer(records))
    feedback: Channel = Channel()

    results, _ = _consume(worker, [item(1), item(2), item(3)], feedback)

    assert [r.name for r in results] == ["A", "C"]
    assert worker.failures == 1
    published = list(feedback)
    assert published[1] is None
    assert [r.name for r in published if r is not None] == ["A", "C"]


def _list_image(window_info, locked):
    """List page with the lock icon painted on the given (row, col) cells."""
    image = np.zeros((200, 120, 3), dtype=np.uint8)
    pitch_x = window_info.col_pitch
    pitch_y = window_info.row_pitch
    for r, c in locked:
        x = int(pitch_x * c + window_info.lock_icon_pos.x)
        y = int(pitch_y * r + window_info.lock_icon_pos.y)
        image[y - 3, x] = LOCK_ICON_COLOR
    return image


def test_page_locks_are_row_major(window_info):
    image = _list_image(window_info, [(0, 1), (2, 4)])
    locks = get_page_locks_from_list_image(image, window_info)
    assert len(locks) == window_info.row * window_info.col
    assert [i for i, v in enumerate(locks) if v] == [1, 14]


def test_page_locks_stop_at_image_bottom(window_info):
    image = np.zeros((20, 120, 3), dtype=np.uint8)
    locks = get_page_locks_from_list_image(image, window_info)
    # rows start at 0 and 17; row 2 starts at 34 > 20
    assert len(locks) == 2 * window_info.col


def test_locks_accumulate_per_page_and_index_by_item(window_info, settings):
    records = {i: make_record(f"A{i}") for i in range(1, 4)}
    worker = ArtifactScannerWorker(window_info, settings, ScriptedRecognizer(records))
    list_image = _list_image(window_info, [(0, 1)])

    results, _ = _consume(
        worker, [item(1, list_image=list_image), item(2), item(3)]
    )

    assert [r.lock for r in results] == [False, True, False]


def test_worker_thread_returns_results(window_info, settings):
    worker = ArtifactScannerWorker(window_info, settings, ScriptedRecognizer({1: make_record("A")}))
    rx: Channel = Channel()
    handle = worker.start(rx)
    rx.send(item(1))
    rx.close()
    assert [r.name for r in handle.join(timeout=10)] == ["A"]


class _BrokenRecognizer(ScriptedRecognizer):
    def image_to_text(self, image, is_preprocessed):
        raise KeyError("model exploded")


def test_unexpected_error_crashes_the_pipeline(window_info, settings):
    worker = ArtifactScannerWorker(window_info, settings, _BrokenRecognizer({}))
    rx: Channel = Channel()
    feedback: Channel = Channel()
    handle = worker.start(rx, feedback)
    rx.send(item(1))

    with pytest.raises(WorkerCrashedError):
        handle.join(timeout=10)
    for channel in (feedback, rx):
        with pytest.raises(ChannelClosedError):
            channel.send(item(2))


def test_worker_keeps_its_own_copies(window_info, settings):
    worker = ArtifactScannerWorker(window_info, settings, ScriptedRecognizer({}))
    assert worker.window_info == window_info
    assert worker.window_info is not window_info
