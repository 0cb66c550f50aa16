# showorder/subtitles/pgs/palette.py
# -*- coding: utf-8 -*-
"""
YCbCr to RGB color conversion for PGS palettes.
"""
from __future__ import annotations
from typing import Iterable, Tuple

import numpy as np

from .models import PaletteEntry


def clamp(value: float, min_val: int = 0, max_val: int = 255) -> int:
    """Clamp value to range [min_val, max_val], truncating toward zero"""
    return int(max(min_val, min(max_val, value)))


def ycbcr_to_rgb_bt601(y: int, cr: int, cb: int) -> Tuple[int, int, int]:
    """
    Convert YCbCr to RGB.

    Formula:
        r = (y - 16) * 1.164 + (cr - 128) * 1.793
        g = (y - 16) * 1.164 - (cb - 128) * 0.213 - (cr - 128) * 0.533
        b = (y - 16) * 1.164 + (cb - 128) * 2.112

    The offset subtractions wrap modulo 256 (so y=0 gives 240, not -16),
    which is what broadcast palettes have been observed to need.

    Args:
        y: Luma (0-255)
        cr: Red chroma difference (0-255)
        cb: Blue chroma difference (0-255)

    Returns:
        Tuple of (r, g, b) values (0-255)
    """
    c = (y - 16) & 0xFF
    d = (cb - 128) & 0xFF
    e = (cr - 128) & 0xFF

    r = c * 1.164 + e * 1.793
    g = c * 1.164 - d * 0.213 - e * 0.533
    b = c * 1.164 + d * 2.112

    return (clamp(r), clamp(g), clamp(b))


def build_palette_table(entries: Iterable[PaletteEntry]) -> np.ndarray:
    """
    Build a 256-entry BGRA lookup table from palette entries.

    Ids that no entry defines stay transparent black.
    """
    table = np.zeros((256, 4), dtype=np.uint8)
    for entry in entries:
        r, g, b = ycbcr_to_rgb_bt601(entry.y, entry.cr, entry.cb)
        table[entry.index] = (b, g, r, entry.alpha)
    return table
