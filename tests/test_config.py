from __future__ import annotations

import json

from artiscan.config import MAX_COUNT, ScanSettings, load_scan_settings, save_scan_settings


def test_missing_file_gives_defaults(tmp_path):
    assert load_scan_settings(tmp_path / "nope.json") == ScanSettings()


def test_round_trip(tmp_path):
    path = tmp_path / "config.json"
    settings = ScanSettings(min_star=5, min_level=16, ignore_dup=True, lock_list_path="lock.json")
    save_scan_settings(settings, path)
    assert load_scan_settings(path) == settings
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1


def test_invalid_values_fall_back_per_field(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "scan": {
                    "min_star": 9,
                    "min_level": "high",
                    "ignore_dup": 1,
                    "number": MAX_COUNT + 1,
                    "scroll_ticks_per_row": 3,
                    "window_title": "  ",
                }
            }
        ),
        encoding="utf-8",
    )
    settings = load_scan_settings(path)
    defaults = ScanSettings()
    assert settings.min_star == defaults.min_star
    assert settings.min_level == defaults.min_level
    assert settings.ignore_dup is False
    assert settings.number == defaults.number
    assert settings.scroll_ticks_per_row == 3
    assert settings.window_title == defaults.window_title


def test_corrupt_json_gives_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_scan_settings(path) == ScanSettings()
