# showorder/subtitles/pgs/decoder.py
# -*- coding: utf-8 -*-
"""
Decode one Matroska S_HDMV/PGS block into a bitmap.
"""
from __future__ import annotations
import logging
from typing import Optional

import numpy as np

from ...models import Bitmap
from .image import render_object
from .models import SegmentType
from .palette import build_palette_table
from .parser import iter_segments, parse_object_segment, parse_palette_segment

logger = logging.getLogger(__name__)


def decode_pgs_block(payload: bytes) -> Optional[Bitmap]:
    """
    Walk the segments of a block and return the first object it can render.

    The most recent palette in the block is used. An object that arrives
    before any palette is skipped with a warning.

    Returns:
        Bitmap, or None if the block holds no renderable object

    Raises:
        MalformedSegment: the segment stream is corrupt
    """
    last_palette: Optional[np.ndarray] = None

    for segment in iter_segments(payload):
        if segment.type == SegmentType.PALETTE:
            last_palette = build_palette_table(parse_palette_segment(segment.data))

        elif segment.type == SegmentType.OBJECT:
            obj = parse_object_segment(segment.data)
            if last_palette is None:
                logger.warning(
                    f"Object {obj.object_id} at offset {segment.offset} arrived before any palette, skipping"
                )
                continue
            logger.debug(f"Decoding PGS object {obj.object_id} ({obj.width}x{obj.height})")
            return render_object(obj, last_palette)

    return None
