from __future__ import annotations

import argparse
import dataclasses
import json
from pathlib import Path
from typing import Iterable, List, Optional

import cv2

from .report import _render_results
from .rich_support import Console, Table, box
from .types import ScanResult
from ..config import MAX_COUNT, ScanSettings, load_scan_settings, save_scan_settings
from ..geometry.window_info import UI, Platform


def _star_arg(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc
    if not 1 <= parsed <= 5:
        raise argparse.ArgumentTypeError("must be between 1 and 5")
    return parsed


def _level_arg(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc
    if not 0 <= parsed <= 20:
        raise argparse.ArgumentTypeError("must be between 0 and 20")
    return parsed


def _non_negative_int_arg(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return parsed


def _write_results(results: List[ScanResult], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [r.to_dict() for r in results]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"Wrote {len(results)} artifacts to {path}")


def _settings_from_args(settings: ScanSettings, args: argparse.Namespace) -> ScanSettings:
    return dataclasses.replace(
        settings,
        min_star=args.min_star,
        min_level=args.min_level,
        ignore_dup=args.ignore_dup,
        verbose=args.verbose,
        number=args.number,
        lock_list_path=str(args.lock_list) if args.lock_list else settings.lock_list_path,
        debug_ocr=args.debug_ocr,
    )


def main(argv: Optional[Iterable[str]] = None) -> int:
    settings = load_scan_settings()

    parser = argparse.ArgumentParser(
        description="Scan the artifact repository of the running game client."
    )
    parser.add_argument(
        "--min-star",
        type=_star_arg,
        default=settings.min_star,
        help="Stop at the first artifact below this rarity.",
    )
    parser.add_argument(
        "--min-level",
        type=_level_arg,
        default=settings.min_level,
        help="Stop at the first artifact below this level.",
    )
    parser.add_argument(
        "--number",
        type=_non_negative_int_arg,
        default=settings.number,
        help=f"Artifacts to scan (0 = read the count from the screen, max {MAX_COUNT}).",
    )
    parser.add_argument(
        "--lock-list",
        type=Path,
        default=None,
        help="JSON list of artifacts to lock while scanning.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the recognized artifacts to this JSON file.",
    )
    parser.add_argument(
        "--window-timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for the game window to become active.",
    )
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Persist the effective options as the new defaults.",
    )

    dup_group = parser.add_mutually_exclusive_group()
    dup_group.add_argument(
        "--ignore-dup",
        dest="ignore_dup",
        action="store_true",
        help="Keep scanning after a full row of duplicates.",
    )
    dup_group.add_argument(
        "--no-ignore-dup",
        dest="ignore_dup",
        action="store_false",
        help="Stop after a full row of duplicates (ignores saved scan configuration).",
    )
    parser.set_defaults(ignore_dup=settings.ignore_dup)

    parser.add_argument(
        "--verbose",
        action="store_true",
        default=settings.verbose,
        help="Log every recognized artifact.",
    )

    debug_group = parser.add_mutually_exclusive_group()
    debug_group.add_argument(
        "--debug",
        "--debug-ocr",
        dest="debug_ocr",
        action="store_true",
        help="Save binarized OCR inputs to ./ocr_debug for debugging.",
    )
    debug_group.add_argument(
        "--no-debug",
        dest="debug_ocr",
        action="store_false",
        help="Disable OCR debug images (ignores saved scan configuration).",
    )
    parser.set_defaults(debug_ocr=settings.debug_ocr)

    args = parser.parse_args(list(argv) if argv is not None else None)
    settings = _settings_from_args(settings, args)

    if args.save_settings:
        save_scan_settings(settings)

    if settings.debug_ocr:
        from ..ocr.preprocess import enable_preprocess_debug

        enable_preprocess_debug(Path("ocr_debug"))

    try:
        from .engine import ArtifactScanner
        from ..interaction.ui_windows import (
            TARGET_TITLES,
            game_info_from_window,
            wait_for_target_window,
        )

        titles = (settings.window_title,) + tuple(
            t for t in TARGET_TITLES if t != settings.window_title
        )
        print("waiting for the game to be the active window...", flush=True)
        window = wait_for_target_window(titles, timeout=args.window_timeout)
        game_info = game_info_from_window(window)
        print(
            f"[scanner] window {game_info.width}x{game_info.height} "
            f"at ({game_info.left}, {game_info.top})",
            flush=True,
        )

        scanner = ArtifactScanner.for_game(game_info, settings)
        results = scanner.scan()
    except KeyboardInterrupt:
        print("Aborted.")
        return 0
    except TimeoutError as exc:
        print(exc)
        return 1
    except RuntimeError as exc:
        print(f"Fatal: {exc}")
        return 1

    _render_results(results, scanner.stats)

    if args.output is not None:
        _write_results(results, args.output)

    return 0


# ---------------------------------------------------------------------------
# Offline check against a screenshot
# ---------------------------------------------------------------------------


def _render_locks(locks: List[bool], col: int) -> None:
    if Console is None or Table is None or box is None:
        for r in range(0, len(locks), col):
            print(" ".join("L" if v else "." for v in locks[r : r + col]))
        return

    table = Table(title="Lock state", box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("Row", justify="right", style="cyan", no_wrap=True)
    for c in range(col):
        table.add_column(str(c), justify="center", no_wrap=True)
    for r in range(0, len(locks), col):
        table.add_row(
            str(r // col),
            *("[magenta]L[/]" if v else "[dim].[/]" for v in locks[r : r + col]),
        )
    Console().print(table)


def image_main(argv: Optional[Iterable[str]] = None) -> int:
    """
    Run lock detection and panel recognition on a full-window screenshot.
    """
    settings = load_scan_settings()
    parser = argparse.ArgumentParser(
        description="Recognize the artifact shown in a full-window screenshot."
    )
    parser.add_argument("--image", type=Path, required=True, help="Screenshot of the game window.")
    parser.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=Platform.WINDOWS.value,
        help="Calibration set to use.",
    )
    parser.add_argument(
        "--debug-dir",
        type=Path,
        default=None,
        help="Save the cropped list image here.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        from .layout import ScannerWindowInfo
        from .worker import ArtifactScannerWorker, get_page_locks_from_list_image
        from ..errors import ConfigurationError
        from ..geometry.window_info import default_window_info_repository
        from ..ocr.tesseract import TesseractImageToText

        bgr = cv2.imread(str(args.image), cv2.IMREAD_COLOR)
        if bgr is None:
            raise ConfigurationError(f"could not read image {args.image}")
        image = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        height, width = image.shape[:2]

        info = ScannerWindowInfo.from_repository(
            default_window_info_repository(), (width, height), UI.DESKTOP, Platform(args.platform)
        )

        mx, my = int(info.scan_margin_pos.x), int(info.scan_margin_pos.y)
        locks = get_page_locks_from_list_image(image[my:, mx:], info, args.debug_dir)
        _render_locks(locks, info.col)

        left, top, w, h = info.panel_rect.to_int()
        panel = image[top : top + h, left : left + w]
        worker = ArtifactScannerWorker(info, settings, TesseractImageToText(settings.ocr_language))
        result = worker.scan_panel_image(panel, lock=bool(locks and locks[0]))
    except RuntimeError as exc:
        print(f"Fatal: {exc}")
        return 1

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0
