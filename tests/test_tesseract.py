from __future__ import annotations

import numpy as np
import pytest

from artiscan.ocr import tesseract
from artiscan.ocr.tesseract import TesseractImageToText


class CountingApi:
    def __init__(self, text="攻击力+5.8%"):
        self.text = text
        self.images = []

    def SetImage(self, image):
        self.images.append(image)

    def GetUTF8Text(self):
        return self.text


@pytest.fixture
def api(monkeypatch):
    stub = CountingApi()
    monkeypatch.setattr(tesseract, "_get_api", lambda lang: stub)
    return stub


@pytest.mark.parametrize("color", [(0, 0, 0), (255, 255, 255), (90, 120, 200)])
def test_blank_capture_skips_the_engine(api, color):
    recognizer = TesseractImageToText()
    blank = np.full((24, 80, 3), color, dtype=np.uint8)

    assert recognizer.image_to_text(blank, False) == ""
    assert recognizer.image_to_text_pending_line(blank) == ""
    assert api.images == []
    assert recognizer.average_inference_time() is None


def test_text_capture_reaches_the_engine(api):
    recognizer = TesseractImageToText()
    image = np.zeros((24, 80, 3), dtype=np.uint8)
    image[6:18, 10:60] = 255

    assert recognizer.image_to_text(image, False) == "攻击力+5.8%"
    assert recognizer.image_to_text_pending_line(image) == "攻击力+5.8%"
    assert len(api.images) == 2
    assert api.images[0].size == (384, 32)
    assert recognizer.average_inference_time() is not None
