"""
Geometry primitives in window-relative pixel units.

Values are authored at a reference resolution and scaled to the live window
by ``WindowInfoRepository``. Rect/Pos/Size/Float scale, Invariant* never do.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class Pos:
    x: float
    y: float

    def scale(self, factor: float) -> "Pos":
        return Pos(self.x * factor, self.y * factor)

    def offset(self, dx: float, dy: float) -> "Pos":
        return Pos(self.x + dx, self.y + dy)

    def to_int(self) -> Tuple[int, int]:
        return int(self.x), int(self.y)


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    def scale(self, factor: float) -> "Size":
        return Size(self.width * factor, self.height * factor)


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    def scale(self, factor: float) -> "Rect":
        return Rect(
            self.left * factor,
            self.top * factor,
            self.width * factor,
            self.height * factor,
        )

    def translate(self, pos: Pos) -> "Rect":
        """Shift the rectangle by ``pos`` (use negative values to make it relative)."""
        return Rect(self.left + pos.x, self.top + pos.y, self.width, self.height)

    def to_int(self) -> Tuple[int, int, int, int]:
        """(left, top, width, height) truncated to whole pixels."""
        return int(self.left), int(self.top), int(self.width), int(self.height)


@dataclass(frozen=True)
class Float:
    """A scalar measured in pixels (scaled like coordinates)."""

    value: float

    def scale(self, factor: float) -> "Float":
        return Float(self.value * factor)


@dataclass(frozen=True)
class InvariantInt:
    """A resolution-independent integer such as a row count."""

    value: int


@dataclass(frozen=True)
class InvariantFloat:
    """A resolution-independent float such as a ratio."""

    value: float


WindowInfoValue = Union[Rect, Pos, Size, Float, InvariantInt, InvariantFloat]


def scale_value(value: WindowInfoValue, factor: float) -> WindowInfoValue:
    """
    Scale a calibrated value to the live window; invariants pass through as-is.
    """
    if isinstance(value, (InvariantInt, InvariantFloat)):
        return value
    return value.scale(factor)
