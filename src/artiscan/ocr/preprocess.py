"""
Normalize a raw RGB field capture into the fixed 384x32 binarized canvas the
line recognizer expects.

All stages operate on float32 single-channel images with values in [0, 1].
"""

from __future__ import annotations

import itertools
import threading
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

LUMA_WEIGHTS = np.array([0.2989, 0.5870, 0.1140], dtype=np.float32)

# Minimum pixel value to count as "content" when cropping
CROP_CONTENT_THRESHOLD = 0.7

# Output canvas
CANVAS_HEIGHT = 32
CANVAS_WIDTH = 384

# pixel >= threshold -> 1 (text)
BINARIZE_THRESHOLD = 0.53
# Pending (not yet active) sub-stat lines render gray; keep more of them
BINARIZE_THRESHOLD_PENDING = 0.5

_DEBUG_DIR: Optional[Path] = None
_DEBUG_COUNTER = itertools.count()
_DEBUG_LOCK = threading.Lock()


def to_gray(rgb: np.ndarray) -> np.ndarray:
    """
    RGB uint8 (H, W, 3) -> float32 luminance in [0, 1].
    """
    if rgb.ndim == 2:
        return rgb.astype(np.float32) / 255.0
    channels = rgb[:, :, :3].astype(np.float32) / 255.0
    return channels @ LUMA_WEIGHTS


def normalize(im: np.ndarray, auto_inverse: bool) -> Tuple[np.ndarray, bool]:
    """
    Stretch values to [0, 1]. Returns (image, False) for blank captures.

    With ``auto_inverse`` the pixel at (bottom row, second-from-right column)
    is treated as background; a light background flips the image so text
    always ends up bright.
    """
    height, width = im.shape[:2]
    if width == 0 or height == 0:
        return im, False

    lo = float(im.min())
    hi = float(im.max())
    if hi == lo:
        return im, False

    out = (im - lo) / (hi - lo)
    flag_x = width - 2 if width >= 2 else width - 1
    if auto_inverse and out[height - 1, flag_x] >= 0.5:
        out = 1.0 - out
    return out.astype(np.float32), True


def crop(im: np.ndarray) -> np.ndarray:
    """
    Crop to the bounding box of pixels brighter than CROP_CONTENT_THRESHOLD.
    """
    content = im > CROP_CONTENT_THRESHOLD
    cols = np.flatnonzero(content.any(axis=0))
    rows = np.flatnonzero(content.any(axis=1))
    if cols.size == 0 or rows.size == 0:
        return im
    return im[rows[0] : rows[-1] + 1, cols[0] : cols[-1] + 1]


def resize_and_pad(im: np.ndarray) -> np.ndarray:
    """
    Scale to CANVAS_HEIGHT keeping aspect, then place at the origin of a
    zero CANVAS_WIDTH x CANVAS_HEIGHT canvas (wider lines are truncated).
    """
    height, width = im.shape[:2]
    new_width = max(1, width * CANVAS_HEIGHT // height)
    resized = cv2.resize(
        im.astype(np.float32),
        (new_width, CANVAS_HEIGHT),
        interpolation=cv2.INTER_LINEAR,
    )
    canvas = np.zeros((CANVAS_HEIGHT, CANVAS_WIDTH), dtype=np.float32)
    keep = min(new_width, CANVAS_WIDTH)
    canvas[:, :keep] = resized[:, :keep]
    return canvas


def binarize(im: np.ndarray, threshold: float) -> np.ndarray:
    return (im >= threshold).astype(np.float32)


def enable_preprocess_debug(debug_dir: Path) -> None:
    """
    Save every binarized canvas into ``debug_dir``.
    """
    global _DEBUG_DIR
    try:
        debug_dir.mkdir(parents=True, exist_ok=True)
        _DEBUG_DIR = debug_dir
        print(f"[preprocess] debug output enabled at {_DEBUG_DIR}", flush=True)
    except OSError as exc:  # pragma: no cover - filesystem dependent
        print(f"[preprocess] failed to enable debug dir: {exc}", flush=True)
        _DEBUG_DIR = None


def disable_preprocess_debug() -> None:
    global _DEBUG_DIR
    _DEBUG_DIR = None


def _save_debug_image(label: str, canvas: np.ndarray) -> None:
    if _DEBUG_DIR is None:
        return
    with _DEBUG_LOCK:
        n = next(_DEBUG_COUNTER)
    path = _DEBUG_DIR / f"{label}_{n:04d}.png"
    image = np.where(canvas >= 0.5, 255, 0).astype(np.uint8)
    if not cv2.imwrite(str(path), image):  # pragma: no cover - filesystem dependent
        print(f"[preprocess] failed to save debug image {path}", flush=True)


def _pre_process(gray: np.ndarray, threshold: float, label: str) -> Tuple[np.ndarray, bool]:
    im, ok = normalize(gray, auto_inverse=True)
    if not ok:
        return im, False
    im = crop(im)
    im, _ = normalize(im, auto_inverse=False)
    im = resize_and_pad(im)
    im = binarize(im, threshold)
    _save_debug_image(label, im)
    return im, True


def pre_process(gray: np.ndarray) -> Tuple[np.ndarray, bool]:
    """
    Ordinary text line. Returns (canvas, has_content).
    """
    return _pre_process(gray, BINARIZE_THRESHOLD, "normal")


def pre_process_pending_line(gray: np.ndarray) -> Tuple[np.ndarray, bool]:
    """
    Same as ``pre_process`` with the lower cutoff for gray pending sub-stats.
    """
    return _pre_process(gray, BINARIZE_THRESHOLD_PENDING, "pending")
