from __future__ import annotations

import json

import pytest

from artiscan.errors import ConfigurationError
from artiscan.geometry.positioning import Float, InvariantFloat, InvariantInt, Pos, Rect, Size
from artiscan.geometry.window_info import (
    UI,
    Platform,
    WindowInfoRepository,
    default_window_info_repository,
    load_window_info_file,
)
from artiscan.scanner.layout import ScannerWindowInfo


def _repo() -> WindowInfoRepository:
    repo = WindowInfoRepository()
    values = {
        "panel": Rect(100, 50, 200, 400),
        "star": Pos(10, 20),
        "cell": Size(40, 50),
        "offset": Float(8),
        "row": InvariantInt(5),
        "ratio": InvariantFloat(0.9),
    }
    repo.add_many((1600, 900), UI.DESKTOP, Platform.WINDOWS, values)
    return repo


@pytest.mark.parametrize("target", [(1600, 900), (1920, 1080), (1280, 720), (2560, 1440)])
def test_resolve_scales_geometry_and_keeps_invariants(target):
    info = _repo().resolve(target, UI.DESKTOP, Platform.WINDOWS)
    factor = target[0] / 1600

    assert info.factor == pytest.approx(factor)
    assert info.rect("panel") == Rect(100 * factor, 50 * factor, 200 * factor, 400 * factor)
    assert info.pos("star") == Pos(10 * factor, 20 * factor)
    assert info.size_of("cell") == Size(40 * factor, 50 * factor)
    assert info.number("offset") == pytest.approx(8 * factor)
    assert info["row"] == InvariantInt(5)
    assert info.integer("row") == 5
    assert info.number("ratio") == 0.9


def test_add_overwrites_existing_name():
    repo = _repo()
    repo.add("row", (1600, 900), UI.DESKTOP, Platform.WINDOWS, InvariantInt(7))
    info = repo.resolve((1600, 900), UI.DESKTOP, Platform.WINDOWS)
    assert info.integer("row") == 7


def test_exact_size_wins_over_scaled_reference():
    repo = _repo()
    repo.add("row", (1920, 1080), UI.DESKTOP, Platform.WINDOWS, InvariantInt(6))
    info = repo.resolve((1920, 1080), UI.DESKTOP, Platform.WINDOWS)
    assert info.reference == (1920, 1080)
    assert info.factor == 1.0
    assert info.integer("row") == 6


def test_widest_reference_wins_among_same_aspect():
    repo = _repo()
    repo.add("row", (1280, 720), UI.DESKTOP, Platform.WINDOWS, InvariantInt(4))
    info = repo.resolve((2560, 1440), UI.DESKTOP, Platform.WINDOWS)
    assert info.reference == (1600, 900)


def test_unknown_aspect_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        _repo().resolve((1280, 1024), UI.DESKTOP, Platform.WINDOWS)


def test_unknown_platform_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        _repo().resolve((1600, 900), UI.DESKTOP, Platform.MACOS)


def test_typed_getter_rejects_wrong_kind():
    info = _repo().resolve((1600, 900), UI.DESKTOP, Platform.WINDOWS)
    with pytest.raises(ConfigurationError):
        info.rect("star")
    with pytest.raises(ConfigurationError):
        info.pos("missing")


def test_load_window_info_file(tmp_path):
    path = tmp_path / "calib.json"
    path.write_text(
        json.dumps(
            {
                "width": 800,
                "height": 600,
                "ui": "Desktop",
                "platform": "Linux",
                "data": {
                    "panel_rect": {"Rect": {"left": 1, "top": 2, "width": 3, "height": 4}},
                    "row": {"InvariantInt": 3},
                },
            }
        ),
        encoding="utf-8",
    )
    repo = WindowInfoRepository()
    load_window_info_file(repo, path)
    info = repo.resolve((1600, 1200), UI.DESKTOP, Platform.LINUX)
    assert info.rect("panel_rect") == Rect(2, 4, 6, 8)
    assert info.integer("row") == 3


def test_load_window_info_file_rejects_unknown_tag(tmp_path):
    path = tmp_path / "calib.json"
    path.write_text(
        json.dumps({"width": 800, "height": 600, "data": {"x": {"Circle": 3}}}),
        encoding="utf-8",
    )
    with pytest.raises(ConfigurationError):
        load_window_info_file(WindowInfoRepository(), path)


@pytest.mark.parametrize("size", [(1600, 900), (1920, 1080), (1440, 900), (1280, 960)])
def test_shipped_calibrations_build_scanner_window_info(size):
    info = ScannerWindowInfo.from_repository(
        default_window_info_repository(), size, UI.DESKTOP, Platform.WINDOWS
    )
    assert info.row > 0 and info.col > 0
    assert info.window_size == Size(*size)
    panel = info.panel_rect
    for rect in (info.title_rect, info.item_equip_rect) + info.sub_stat_rects:
        assert rect.left >= panel.left - 1e-6
        assert rect.left + rect.width <= panel.left + panel.width + 1e-6


def test_scanner_window_info_requires_every_control():
    with pytest.raises(ConfigurationError):
        ScannerWindowInfo.from_window_info(
            _repo().resolve((1600, 900), UI.DESKTOP, Platform.WINDOWS)
        )
