from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional


CONFIG_VERSION = 1
APP_CONFIG_DIR_NAME = "ArtiScan"
CONFIG_FILE_NAME = "config.json"

# The repository never shows more than this many artifacts
MAX_COUNT = 2400


@dataclass(frozen=True)
class ScanSettings:
    # Stop at the first artifact below this rarity (the list is rarity-sorted)
    min_star: int = 4
    # Stop at the first artifact below this level
    min_level: int = 0
    # Keep going after a full row of duplicates
    ignore_dup: bool = False
    verbose: bool = False
    # Artifacts to scan; 0 reads the count from the repository header
    number: int = 0
    lock_list_path: Optional[str] = None
    switch_delay_ms: int = 80
    scroll_delay_ms: int = 200
    scroll_ticks_per_row: int = 5
    window_title: str = "原神"
    ocr_language: str = "chi_sim"
    debug_ocr: bool = False


def _config_dir() -> Path:
    if os.name == "nt":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / APP_CONFIG_DIR_NAME
    return Path.home() / f".{APP_CONFIG_DIR_NAME.lower()}"


def config_path() -> Path:
    return _config_dir() / CONFIG_FILE_NAME


def _coerce_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _coerce_int_range(value: Any, default: int, lo: int, hi: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and lo <= value <= hi:
        return value
    return default


def _coerce_non_negative_int(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return default


def _coerce_str(value: Any, default: Optional[str]) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def settings_from_raw(raw: Any) -> ScanSettings:
    if not isinstance(raw, dict):
        return ScanSettings()

    defaults = ScanSettings()
    return ScanSettings(
        min_star=_coerce_int_range(raw.get("min_star"), defaults.min_star, 1, 5),
        min_level=_coerce_int_range(raw.get("min_level"), defaults.min_level, 0, 20),
        ignore_dup=_coerce_bool(raw.get("ignore_dup"), defaults.ignore_dup),
        verbose=_coerce_bool(raw.get("verbose"), defaults.verbose),
        number=_coerce_int_range(raw.get("number"), defaults.number, 0, MAX_COUNT),
        lock_list_path=_coerce_str(raw.get("lock_list_path"), None),
        switch_delay_ms=_coerce_non_negative_int(
            raw.get("switch_delay_ms"), defaults.switch_delay_ms
        ),
        scroll_delay_ms=_coerce_non_negative_int(
            raw.get("scroll_delay_ms"), defaults.scroll_delay_ms
        ),
        scroll_ticks_per_row=_coerce_int_range(
            raw.get("scroll_ticks_per_row"), defaults.scroll_ticks_per_row, 1, 100
        ),
        window_title=_coerce_str(raw.get("window_title"), defaults.window_title)
        or defaults.window_title,
        ocr_language=_coerce_str(raw.get("ocr_language"), defaults.ocr_language)
        or defaults.ocr_language,
        debug_ocr=_coerce_bool(raw.get("debug_ocr"), defaults.debug_ocr),
    )


def load_scan_settings(path: Optional[Path] = None) -> ScanSettings:
    path = path or config_path()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return ScanSettings()
    except (OSError, json.JSONDecodeError):
        return ScanSettings()

    if not isinstance(raw, dict):
        return ScanSettings()

    return settings_from_raw(raw.get("scan"))


def save_scan_settings(settings: ScanSettings, path: Optional[Path] = None) -> None:
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    payload: Dict[str, Any] = {
        "version": CONFIG_VERSION,
        "scan": asdict(settings),
    }
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
