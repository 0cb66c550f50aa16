# showorder/subtitles/pgs/models.py
# -*- coding: utf-8 -*-
"""
Data models for PGS (Presentation Graphic Stream) segments as stored in
Matroska S_HDMV/PGS blocks.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum


class SegmentType(IntEnum):
    """PGS segment types"""
    PALETTE = 0x14      # PDS - Palette Definition Segment
    OBJECT = 0x15       # ODS - Object Definition Segment (bitmap data)
    COMPOSITION = 0x16  # PCS - Presentation Composition Segment
    WINDOW = 0x17       # WDS - Window Definition Segment
    END = 0x80          # End of Display Set


@dataclass
class Segment:
    """One segment of a block: 3-byte header (type, u16 size) then data"""
    type: SegmentType
    offset: int  # of the header within the block payload
    data: bytes


@dataclass
class PaletteEntry:
    """Single color entry in palette"""
    index: int
    y: int   # Luma
    cr: int  # Red chroma
    cb: int  # Blue chroma
    alpha: int


@dataclass
class ObjectDefinition:
    """Object Definition Segment - header plus RLE bitmap data"""
    object_id: int
    version: int
    sequence_flag: int
    data_length: int
    width: int
    height: int
    image_buffer: bytes
