# showorder/subtitles/pgs/parser.py
# -*- coding: utf-8 -*-
"""
PGS segment parser for Matroska-embedded data.

Inside Matroska each block holds a run of segments with a 3-byte header
(type, 16-bit size) and no "PG" magic or timestamps.
"""
from __future__ import annotations
import struct
from typing import Iterator, List

from ...errors import MalformedSegment
from .models import ObjectDefinition, PaletteEntry, Segment, SegmentType

SEGMENT_HEADER_SIZE = 3
PALETTE_HEADER_SIZE = 2
PALETTE_ENTRY_SIZE = 5
OBJECT_HEADER_SIZE = 11


def read_big_endian_int16(data: bytes, offset: int) -> int:
    """Read 16-bit big-endian integer"""
    return struct.unpack('>H', data[offset:offset+2])[0]


def read_big_endian_int24(data: bytes, offset: int) -> int:
    """Read 24-bit big-endian integer"""
    return (data[offset] << 16) | (data[offset+1] << 8) | data[offset+2]


def iter_segments(payload: bytes) -> Iterator[Segment]:
    """
    Yield the segments of one block in order.

    Raises:
        MalformedSegment: unknown type, truncated header or body, or a
            zero-length segment other than END
    """
    offset = 0
    while offset < len(payload):
        if offset + SEGMENT_HEADER_SIZE > len(payload):
            raise MalformedSegment(f"Truncated segment header at offset {offset}")

        type_byte = payload[offset]
        try:
            segment_type = SegmentType(type_byte)
        except ValueError:
            raise MalformedSegment(
                f"Unknown segment type 0x{type_byte:02X} at offset {offset}"
            ) from None
        size = read_big_endian_int16(payload, offset + 1)

        if size == 0 and segment_type != SegmentType.END:
            raise MalformedSegment(
                f"Zero-length {segment_type.name} segment at offset {offset}"
            )

        start = offset + SEGMENT_HEADER_SIZE
        end = start + size
        if end > len(payload):
            raise MalformedSegment(
                f"{segment_type.name} segment at offset {offset} needs {size} bytes, "
                f"{len(payload) - start} available"
            )

        yield Segment(segment_type, offset, payload[start:end])
        offset = end


def parse_palette_segment(data: bytes) -> List[PaletteEntry]:
    """
    Parse Palette Definition Segment (PDS - 0x14).

    Structure:
        - byte 0: palette_id
        - byte 1: version
        - rest: 5-byte entries [index, Y, Cr, Cb, Alpha]
    """
    if len(data) < PALETTE_HEADER_SIZE:
        raise MalformedSegment("Palette segment shorter than its header")
    if (len(data) - PALETTE_HEADER_SIZE) % PALETTE_ENTRY_SIZE:
        raise MalformedSegment(
            f"Palette segment of {len(data)} bytes ends inside an entry"
        )

    entries = []
    for offset in range(PALETTE_HEADER_SIZE, len(data), PALETTE_ENTRY_SIZE):
        index, y, cr, cb, alpha = data[offset:offset + PALETTE_ENTRY_SIZE]
        entries.append(PaletteEntry(index, y, cr, cb, alpha))
    return entries


def parse_object_segment(data: bytes) -> ObjectDefinition:
    """
    Parse Object Definition Segment (ODS - 0x15).

    Structure:
        - bytes 0-1: object_id (big-endian)
        - byte 2: version
        - byte 3: sequence flags
        - bytes 4-6: data length (24-bit, big-endian)
        - bytes 7-8: width (big-endian)
        - bytes 9-10: height (big-endian)
        - bytes 11+: RLE image data
    """
    if len(data) < OBJECT_HEADER_SIZE:
        raise MalformedSegment(
            f"Object segment of {len(data)} bytes is shorter than its header"
        )

    return ObjectDefinition(
        object_id=read_big_endian_int16(data, 0),
        version=data[2],
        sequence_flag=data[3],
        data_length=read_big_endian_int24(data, 4),
        width=read_big_endian_int16(data, 7),
        height=read_big_endian_int16(data, 9),
        image_buffer=data[OBJECT_HEADER_SIZE:],
    )
