from __future__ import annotations

import os
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

import numpy as np
from PIL import Image
import tessdata
from tesserocr import PSM, PyTessBaseAPI

from .preprocess import pre_process, pre_process_pending_line, to_gray
from .recognizer import ImageToText
from ..errors import ConfigurationError, RecognitionError

DEFAULT_LANGUAGE = "chi_sim"

_api_lock = threading.Lock()
_apis: dict[str, PyTessBaseAPI] = {}
_tessdata_dir: str | None = None


def _has_language(path: Path, lang: str) -> bool:
    return path.is_dir() and all(
        (path / f"{part}.traineddata").exists() for part in lang.split("+")
    )


def _candidate_tessdata_paths() -> list[Path]:
    """
    Potential tessdata locations to try, ordered by preference.
    """
    candidates: list[Path] = []

    env_prefix = os.getenv("TESSDATA_PREFIX")
    if env_prefix:
        candidates.append(Path(env_prefix))

    try:
        candidates.append(Path(tessdata.data_path()))
    except Exception:
        pass

    # Site-packages layout: <...>/site-packages/tessdata/share/tessdata
    pkg_dir = Path(tessdata.__file__).resolve().parent
    candidates.append(pkg_dir.parent / "share" / "tessdata")

    appdata = os.getenv("APPDATA")
    if appdata:
        appdata_path = Path(appdata)
        candidates.append(appdata_path / "Python" / "share" / "tessdata")
        py_ver = f"Python{sys.version_info.major}{sys.version_info.minor}"
        candidates.append(appdata_path / "Python" / py_ver / "share" / "tessdata")

    candidates.append(Path("/usr/share/tesseract-ocr/5/tessdata"))
    candidates.append(Path("/usr/share/tesseract-ocr/4.00/tessdata"))

    seen: set[Path] = set()
    unique: list[Path] = []
    for c in candidates:
        if c not in seen:
            seen.add(c)
            unique.append(c)
    return unique


def _create_api(lang: str) -> PyTessBaseAPI:
    """
    Build a PyTessBaseAPI configured for one text line per image.
    """
    global _tessdata_dir
    errors: list[tuple[Path, Exception]] = []
    candidates = _candidate_tessdata_paths()

    for candidate in candidates:
        if not _has_language(candidate, lang):
            continue
        try:
            api = PyTessBaseAPI(path=str(candidate), lang=lang, psm=PSM.SINGLE_LINE)
            _tessdata_dir = str(candidate)
            return api
        except Exception as exc:
            errors.append((candidate, exc))
            continue

    searched = "\n  ".join(str(c) for c in candidates)
    detail_errors = "\n  ".join(f"{p}: {e}" for p, e in errors)
    raise ConfigurationError(
        f"Could not initialize Tesseract for lang={lang!r}. "
        f"Checked ({lang}.traineddata required):\n  "
        + searched
        + ("\nErrors:\n  " + detail_errors if detail_errors else "")
    )


def _get_api(lang: str) -> PyTessBaseAPI:
    with _api_lock:
        api = _apis.get(lang)
        if api is None:
            api = _create_api(lang)
            _apis[lang] = api
            version = api.Version() if hasattr(api, "Version") else ""
            print(
                f"[ocr_backend] tesseract={version.strip()} tessdata={_tessdata_dir} lang={lang}",
                flush=True,
            )
        return api


def _canvas_to_pil(canvas: np.ndarray) -> Image.Image:
    # Canvas has text=1 on 0; tesseract reads dark text on a light page best
    page = np.where(canvas >= 0.5, 0, 255).astype(np.uint8)
    return Image.fromarray(page)


class TesseractImageToText(ImageToText):
    """
    ``ImageToText`` backed by one shared tesserocr API per language.
    """

    def __init__(self, lang: str = DEFAULT_LANGUAGE) -> None:
        self.lang = lang
        self._api = _get_api(lang)
        self._inference_times: List[float] = []

    def _recognize_canvas(self, canvas: np.ndarray) -> str:
        start = time.perf_counter()
        try:
            with _api_lock:
                self._api.SetImage(_canvas_to_pil(canvas))
                text = self._api.GetUTF8Text() or ""
        except RuntimeError as exc:
            raise RecognitionError("tesseract", str(exc)) from exc
        self._inference_times.append(time.perf_counter() - start)
        return " ".join(text.split())

    def image_to_text(self, image: np.ndarray, is_preprocessed: bool) -> str:
        if is_preprocessed:
            return self._recognize_canvas(image)
        canvas, has_content = pre_process(to_gray(image))
        if not has_content:
            return ""
        return self._recognize_canvas(canvas)

    def image_to_text_pending_line(self, image: np.ndarray) -> str:
        canvas, has_content = pre_process_pending_line(to_gray(image))
        if not has_content:
            return ""
        return self._recognize_canvas(canvas)

    def average_inference_time(self) -> Optional[float]:
        if not self._inference_times:
            return None
        return sum(self._inference_times) / len(self._inference_times)
