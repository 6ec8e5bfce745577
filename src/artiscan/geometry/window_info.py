"""
Calibrated UI geometry keyed by reference resolution, UI mode and platform.

Each calibration file describes one reference window size. At runtime the
repository picks the calibration whose aspect ratio matches the live window
and scales every coordinate by ``target_width / reference_width``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .positioning import (
    Float,
    InvariantFloat,
    InvariantInt,
    Pos,
    Rect,
    Size,
    WindowInfoValue,
    scale_value,
)
from ..errors import ConfigurationError

# Calibration files shipped with the package
WINDOW_INFO_DIR = Path(__file__).resolve().parent.parent / "window_info"

# Two aspect ratios closer than this are treated as the same layout
ASPECT_TOLERANCE = 0.01


class UI(str, Enum):
    DESKTOP = "Desktop"
    MOBILE = "Mobile"


class Platform(str, Enum):
    WINDOWS = "Windows"
    MACOS = "MacOS"
    LINUX = "Linux"


@dataclass(frozen=True)
class _CalibrationKey:
    width: int
    height: int
    ui: UI
    platform: Platform

    @property
    def aspect(self) -> float:
        return self.width / float(self.height)


class WindowInfo(Mapping[str, WindowInfoValue]):
    """
    Read-only view over window info already scaled to the live window.
    """

    def __init__(
        self,
        values: Dict[str, WindowInfoValue],
        size: Size,
        factor: float,
        reference: Tuple[int, int],
    ) -> None:
        self._values = dict(values)
        self.size = size
        self.factor = factor
        self.reference = reference

    def __getitem__(self, name: str) -> WindowInfoValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def _typed(self, name: str, kind: type) -> Any:
        try:
            value = self._values[name]
        except KeyError:
            raise ConfigurationError(
                f"window info {name!r} missing for reference {self.reference[0]}x{self.reference[1]}"
            ) from None
        if not isinstance(value, kind):
            raise ConfigurationError(
                f"window info {name!r} is {type(value).__name__}, expected {kind.__name__}"
            )
        return value

    def rect(self, name: str) -> Rect:
        return self._typed(name, Rect)

    def pos(self, name: str) -> Pos:
        return self._typed(name, Pos)

    def size_of(self, name: str) -> Size:
        return self._typed(name, Size)

    def integer(self, name: str) -> int:
        return self._typed(name, InvariantInt).value

    def number(self, name: str, default: Optional[float] = None) -> float:
        """
        Float or InvariantFloat value; ``default`` is used when the name is absent.
        """
        if default is not None and name not in self._values:
            return default
        value = self._values.get(name)
        if isinstance(value, InvariantFloat):
            return value.value
        return self._typed(name, Float).value


class WindowInfoRepository:
    def __init__(self) -> None:
        self._data: Dict[_CalibrationKey, Dict[str, WindowInfoValue]] = {}

    def add(
        self,
        name: str,
        reference_size: Tuple[int, int],
        ui: UI,
        platform: Platform,
        value: WindowInfoValue,
    ) -> None:
        width, height = reference_size
        key = _CalibrationKey(int(width), int(height), UI(ui), Platform(platform))
        self._data.setdefault(key, {})[name] = value

    def add_many(
        self,
        reference_size: Tuple[int, int],
        ui: UI,
        platform: Platform,
        values: Mapping[str, WindowInfoValue],
    ) -> None:
        for name, value in values.items():
            self.add(name, reference_size, ui, platform, value)

    def references(self) -> List[Tuple[int, int, UI, Platform]]:
        return [(k.width, k.height, k.ui, k.platform) for k in self._data]

    def _select(
        self, width: int, height: int, ui: UI, platform: Platform
    ) -> _CalibrationKey:
        candidates = [k for k in self._data if k.ui == ui and k.platform == platform]
        if not candidates:
            raise ConfigurationError(
                f"no window info calibrated for ui={ui.value} platform={platform.value}"
            )

        for key in candidates:
            if key.width == width and key.height == height:
                return key

        target_aspect = width / float(height)
        # nearest aspect first, widest reference on ties
        best = min(
            candidates,
            key=lambda k: (abs(k.aspect - target_aspect), -k.width),
        )
        if abs(best.aspect - target_aspect) > ASPECT_TOLERANCE:
            known = ", ".join(f"{k.width}x{k.height}" for k in candidates)
            raise ConfigurationError(
                f"no window info with the aspect ratio of {width}x{height} "
                f"(calibrated: {known})"
            )
        return best

    def resolve(
        self, target_size: Tuple[int, int], ui: UI, platform: Platform
    ) -> WindowInfo:
        """
        Window info for a live window of ``target_size``, scaled from the
        best-matching calibration.
        """
        width, height = (int(v) for v in target_size)
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"invalid window size {width}x{height}")

        key = self._select(width, height, UI(ui), Platform(platform))
        factor = width / float(key.width)
        scaled = {
            name: scale_value(value, factor) for name, value in self._data[key].items()
        }
        return WindowInfo(scaled, Size(width, height), factor, (key.width, key.height))


# ---------------------------------------------------------------------------
# JSON calibration files
# ---------------------------------------------------------------------------


def _parse_value(name: str, raw: Any) -> WindowInfoValue:
    if not isinstance(raw, dict) or len(raw) != 1:
        raise ConfigurationError(f"window info {name!r} must be a single-key object")
    (tag, body), = raw.items()
    try:
        if tag == "Rect":
            return Rect(
                float(body["left"]),
                float(body["top"]),
                float(body["width"]),
                float(body["height"]),
            )
        if tag == "Pos":
            return Pos(float(body["x"]), float(body["y"]))
        if tag == "Size":
            return Size(float(body["width"]), float(body["height"]))
        if tag == "Float":
            return Float(float(body))
        if tag == "InvariantInt":
            return InvariantInt(int(body))
        if tag == "InvariantFloat":
            return InvariantFloat(float(body))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"window info {name!r}: malformed {tag}: {exc}") from exc
    raise ConfigurationError(f"window info {name!r}: unknown value type {tag!r}")


def load_window_info_file(repo: WindowInfoRepository, path: Path) -> None:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"could not read window info {path}: {exc}") from exc

    if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
        raise ConfigurationError(f"window info {path} must be an object with a 'data' map")

    try:
        size = (int(raw["width"]), int(raw["height"]))
        ui = UI(raw.get("ui", UI.DESKTOP.value))
        platform = Platform(raw.get("platform", Platform.WINDOWS.value))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"window info {path}: bad header: {exc}") from exc

    for name, value in raw["data"].items():
        repo.add(name, size, ui, platform, _parse_value(name, value))


def load_window_info_repository(paths: Iterable[Path]) -> WindowInfoRepository:
    repo = WindowInfoRepository()
    for path in paths:
        load_window_info_file(repo, path)
    return repo


def default_window_info_repository() -> WindowInfoRepository:
    """
    Repository built from every calibration file shipped with the package.
    """
    paths = sorted(WINDOW_INFO_DIR.glob("*.json"))
    if not paths:
        raise ConfigurationError(f"no window info files found in {WINDOW_INFO_DIR}")
    return load_window_info_repository(paths)
