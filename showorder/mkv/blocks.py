# showorder/mkv/blocks.py
# -*- coding: utf-8 -*-
"""
Block iteration over the Cluster section of a Matroska stream.

Block header layout (SimpleBlock and BlockGroup/Block alike):
    - track number as an EBML vint (marker masked)
    - int16 timecode relative to the cluster (ignored here)
    - flags byte, bits 1-2 give the lacing mode
"""
from __future__ import annotations

import logging
import struct
import zlib
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

from ..errors import BlockDecodeError, MalformedContainer, UnsupportedLacing
from .ebml import TagKind, WebmScanner, decode_vint
from .spec import MatroskaTag

logger = logging.getLogger(__name__)

_BLOCK_TAGS = (MatroskaTag.SIMPLE_BLOCK, MatroskaTag.BLOCK)

# ContentCompAlgo values
COMPRESSION_ZLIB = 0
COMPRESSION_HEADER_STRIPPING = 3


class Lacing(IntEnum):
    NONE = 0
    XIPH = 1
    FIXED = 2
    EBML = 3


@dataclass
class Block:
    track_number: int
    timecode: int
    lacing: Lacing
    payload: bytes
    offset: int = 0


def parse_block(data: bytes, offset: int = 0) -> Block:
    """
    Split a raw SimpleBlock/Block body into header fields and payload.

    Raises:
        MalformedContainer: the header is truncated
    """
    track_number, length = decode_vint(data, 0)
    if track_number is None:
        raise MalformedContainer(f"Block at offset {offset} has a reserved track number")
    if len(data) < length + 3:
        raise MalformedContainer(f"Truncated block header at offset {offset}")
    timecode = struct.unpack(">h", data[length:length + 2])[0]
    flags = data[length + 2]
    lacing = Lacing((flags >> 1) & 0x03)
    return Block(track_number, timecode, lacing, data[length + 3:], offset)


def decompress_payload(payload: bytes, compression) -> bytes:
    """
    Undo track ContentCompression (zlib or header stripping).

    Raises:
        BlockDecodeError: zlib data is corrupt
    """
    if compression is None:
        return payload
    if compression.algorithm == COMPRESSION_HEADER_STRIPPING:
        return compression.settings + payload
    try:
        return zlib.decompress(payload)
    except zlib.error as e:
        raise BlockDecodeError(f"Could not inflate compressed payload: {e}") from e


class BlockIterator:
    """
    Single-pass iterator of the Blocks of one track.

    Takes over a scanner that has already read the Tracks prelude. A block
    using lacing raises UnsupportedLacing for that block only; iteration can
    continue afterwards. Container errors from the scanner propagate and end
    the iteration.
    """

    def __init__(self, scanner: WebmScanner, track_number: int, compression=None):
        self._scanner = scanner
        self.track_number = track_number
        self._compression = compression
        if compression is not None and not compression.applies_to_frames:
            self._compression = None

    def __iter__(self) -> Iterator[Block]:
        return self

    def __next__(self) -> Block:
        for event in self._scanner:
            if event.kind is not TagKind.FULL or event.tag_id not in _BLOCK_TAGS:
                continue

            block = parse_block(event.tag.value, event.offset)
            if block.track_number != self.track_number:
                continue

            if block.lacing is not Lacing.NONE:
                raise UnsupportedLacing(
                    f"Block at offset {event.offset} on track {block.track_number} "
                    f"uses {block.lacing.name} lacing"
                )

            if self._compression is not None:
                block.payload = decompress_payload(block.payload, self._compression)
            return block
        raise StopIteration

