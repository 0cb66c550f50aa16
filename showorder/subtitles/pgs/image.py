# showorder/subtitles/pgs/image.py
# -*- coding: utf-8 -*-
"""
RLE decompression for PGS object bitmaps.
"""
from __future__ import annotations
from typing import List, Tuple

import numpy as np

from ...errors import MalformedSegment
from ...models import Bitmap
from .models import ObjectDefinition

# Index used for pixels no run covered; maps to transparent black
UNSET = 256


def decode_rle_lines(buffer: bytes, height: int) -> List[List[Tuple[int, int]]]:
    """
    Split PGS RLE data into rows of (palette_index, run_length) pairs.

    RLE encoding patterns:
        - 0xNN (non-zero): Single pixel with palette index NN
        - 0x00 0x00: End of line
        - 0x00 0x0N..0x3N: N transparent pixels (index 0)
        - 0x00 0x4N 0xNN: Long run of index 0, 14-bit length
        - 0x00 0x8N 0xCC: N pixels of color CC
        - 0x00 0xCN 0xNN 0xCC: Long run of color CC, 14-bit length

    Decoding stops once `height` rows are complete.
    """
    lines: List[List[Tuple[int, int]]] = []
    current: List[Tuple[int, int]] = []
    index = 0
    size = len(buffer)

    def need(count: int):
        if index + count > size:
            raise MalformedSegment(f"RLE data truncated at byte {index}")

    while index < size and len(lines) < height:
        b = buffer[index]
        index += 1

        if b != 0:
            current.append((b, 1))
            continue

        need(1)
        b = buffer[index]
        index += 1

        if b == 0:
            lines.append(current)
            current = []
            continue

        code = b >> 6
        low = b & 0x3F
        if code == 0:
            current.append((0, low))
        elif code == 1:
            need(1)
            current.append((0, (low << 8) | buffer[index]))
            index += 1
        elif code == 2:
            need(1)
            current.append((buffer[index], low))
            index += 1
        else:
            need(2)
            current.append((buffer[index + 1], (low << 8) | buffer[index]))
            index += 2

    if current and len(lines) < height:
        lines.append(current)
    return lines


def render_object(obj: ObjectDefinition, palette_table: np.ndarray) -> Bitmap:
    """
    Decode an object's RLE data into a BGRA bitmap.

    Each encoded row fills one output row. Runs past the right edge are
    clipped; short or missing rows stay transparent.
    """
    width, height = obj.width, obj.height
    indices = np.full((height, width), UNSET, dtype=np.uint16)

    for y, runs in enumerate(decode_rle_lines(obj.image_buffer, height)):
        x = 0
        for color, run in runs:
            if x >= width:
                break
            end = min(x + run, width)
            indices[y, x:end] = color
            x = end

    table = np.vstack([palette_table, np.zeros((1, 4), dtype=np.uint8)])
    return Bitmap(width, height, table[indices])
