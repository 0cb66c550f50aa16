# showorder/errors.py
# -*- coding: utf-8 -*-
"""
Exception hierarchy for the subtitle decode and matching pipeline.

Container-level errors abort the file being processed. Block-level errors
(everything deriving from BlockDecodeError) only cost the block they were
raised for: the subtitle iterator logs them and moves on.
"""


class ShowOrderError(Exception):
    """Base class for all showorder errors."""
    pass


class MalformedContainer(ShowOrderError):
    """Raised when the EBML framing of a container cannot be read."""
    pass


class BlockDecodeError(ShowOrderError):
    """Raised when a single subtitle block cannot be decoded."""
    pass


class UnsupportedLacing(BlockDecodeError):
    """Raised for a subtitle block that uses Xiph, EBML or fixed-size lacing."""
    pass


class MalformedSegment(BlockDecodeError):
    """Raised when a PGS segment stream is truncated or inconsistent."""
    pass


class MalformedSpu(BlockDecodeError):
    """Raised when a VobSub subpicture unit is truncated or inconsistent."""
    pass


class UnknownSpuOpcode(MalformedSpu):
    """Raised for a control command byte outside of 0x00-0x06 and 0xFF."""

    def __init__(self, opcode: int, offset: int):
        super().__init__(f"Unknown SPU command 0x{opcode:02X} at offset {offset}")
        self.opcode = opcode
        self.offset = offset


class TrackError(ShowOrderError):
    """Raised when a single track entry cannot be used."""
    pass


class MalformedIdx(TrackError):
    """Raised when a VobSub idx header lacks a usable size or palette."""
    pass


class MissingCodecPrivate(TrackError):
    """Raised for a S_VOBSUB track that carries no CodecPrivate idx data."""
    pass


class OcrFailure(ShowOrderError):
    """Raised when the OCR backend could not recognise a bitmap."""
    pass


class NoInputs(ShowOrderError):
    """Raised when matching is requested without any input fingerprints."""
    pass
