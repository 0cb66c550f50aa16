# showorder/subtitles/ocr/preprocessing.py
"""
Image preparation for OCR

Subtitle bitmaps arrive as BGRA with transparent surroundings, which OCR
engines handle poorly. Two steps are applied:
    1. Flatten alpha onto an opaque background color (black by default)
    2. Upscale small bitmaps (area below a threshold) by a fixed factor with
       nearest-neighbour sampling

Both steps return new buffers; the input bitmap is never modified.
"""

import math
from dataclasses import dataclass

import numpy as np

from ...models import Bitmap


@dataclass
class PreprocessingConfig:
    """Configuration for preprocessing pipeline."""

    background: tuple[int, int, int] = (0, 0, 0)  # RGB
    min_area: int = 30000  # Upscale if width * height < this
    scale: float = 1.5


def flatten_alpha(bitmap: Bitmap, background: tuple[int, int, int] = (0, 0, 0)) -> Bitmap:
    """
    Composite a BGRA bitmap onto an opaque background.

    result = src * alpha + bg * (1 - alpha), alpha set to 255 afterwards.
    """
    alpha = bitmap.pixels[:, :, 3:4].astype(np.float32) / 255.0
    bgr = bitmap.pixels[:, :, :3].astype(np.float32)
    r, g, b = background
    bg = np.array([b, g, r], dtype=np.float32)

    composited = np.empty_like(bitmap.pixels)
    composited[:, :, :3] = (bgr * alpha + bg * (1.0 - alpha)).astype(np.uint8)
    composited[:, :, 3] = 255
    return Bitmap(bitmap.width, bitmap.height, composited)


def upscale_nearest(bitmap: Bitmap, scale: float) -> Bitmap:
    """
    Nearest-neighbour upscale.

    The output is ceil(dim * scale) in each direction and output pixel
    (x, y) samples source pixel (floor(x / scale), floor(y / scale)).
    """
    new_width = math.ceil(bitmap.width * scale)
    new_height = math.ceil(bitmap.height * scale)

    cols = np.minimum(
        np.floor(np.arange(new_width) / scale).astype(np.intp), max(bitmap.width - 1, 0)
    )
    rows = np.minimum(
        np.floor(np.arange(new_height) / scale).astype(np.intp), max(bitmap.height - 1, 0)
    )
    pixels = bitmap.pixels[rows[:, None], cols[None, :]]
    return Bitmap(new_width, new_height, np.ascontiguousarray(pixels))


class ImagePreprocessor:
    """Flatten and, when too small, upscale subtitle bitmaps for OCR."""

    def __init__(self, config: PreprocessingConfig | None = None):
        self.config = config or PreprocessingConfig()

    def preprocess(self, bitmap: Bitmap) -> Bitmap:
        """
        Prepare one bitmap for OCR.

        Args:
            bitmap: Decoded BGRA subtitle bitmap

        Returns:
            New opaque bitmap, upscaled if its area is below the threshold
        """
        result = flatten_alpha(bitmap, self.config.background)
        if result.area < self.config.min_area:
            result = upscale_nearest(result, self.config.scale)
        return result


def create_preprocessor(settings_dict: dict) -> ImagePreprocessor:
    """
    Create preprocessor from settings dictionary.

    Args:
        settings_dict: Application settings

    Returns:
        Configured ImagePreprocessor
    """
    config = PreprocessingConfig(
        background=tuple(settings_dict.get("ocr_background", (0, 0, 0))),
        min_area=settings_dict.get("ocr_min_area", 30000),
        scale=settings_dict.get("ocr_scale", 1.5),
    )
    return ImagePreprocessor(config)
