# showorder/models/bitmap.py
# -*- coding: utf-8 -*-
"""
Decoded subtitle bitmap shared by the PGS and VobSub decoders.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

BYTES_PER_PIXEL = 4


@dataclass
class Bitmap:
    """
    A BGRA8 subtitle frame.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        pixels: uint8 array of shape (height, width, 4), channels B, G, R, A,
                rows top-down

    Invariant: pixels.nbytes == width * height * 4
    """
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        expected = (self.height, self.width, BYTES_PER_PIXEL)
        if self.pixels.shape != expected:
            raise ValueError(
                f"Bitmap pixels have shape {self.pixels.shape}, expected {expected}"
            )

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_bytes(self) -> bytes:
        """Return the raw BGRA8 buffer."""
        return np.ascontiguousarray(self.pixels).tobytes()

    def to_rgba(self) -> np.ndarray:
        """Return an RGBA copy of the pixel array (channel order PIL expects)."""
        return np.ascontiguousarray(self.pixels[:, :, [2, 1, 0, 3]])
