from __future__ import annotations

from typing import Optional

import numpy as np


class ImageToText:
    """
    A line recognizer: RGB field capture in, text out.

    Implementations are not assumed to be reentrant; the scanner calls them
    from a single worker thread.
    """

    def image_to_text(self, image: np.ndarray, is_preprocessed: bool) -> str:
        raise NotImplementedError

    def image_to_text_pending_line(self, image: np.ndarray) -> str:
        """
        Variant tuned for gray, not yet active sub-stat lines.
        """
        return self.image_to_text(image, False)

    def average_inference_time(self) -> Optional[float]:
        return None
