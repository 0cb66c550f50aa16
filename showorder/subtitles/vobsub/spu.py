# showorder/subtitles/vobsub/spu.py
"""
DVD subpicture unit (SPU) decoder.

One Matroska S_VOBSUB block holds exactly one SPU:

    u16  packet size (equals the block payload length)
    u16  offset of the first control sequence (end of the RLE data region)
    ...  RLE data for the even and odd fields
    ...  control sequences:
            u16 delay, u16 offset of the next sequence, commands..., 0xFF

Control commands:
    0x00  forced start      0x01  start display     0x02  stop display
    0x03  color indices     0x04  alpha values
    0x05  display area      0x06  field data offsets
    0xFF  end of sequence

All offsets are absolute from the start of the payload.
"""

import logging
import struct
from dataclasses import dataclass

import numpy as np

from ...errors import MalformedSpu, UnknownSpuOpcode
from ...models import Bitmap
from .nibbles import decode_field

logger = logging.getLogger(__name__)

DATA_START = 4

CMD_FORCED_START = 0x00
CMD_START_DISPLAY = 0x01
CMD_STOP_DISPLAY = 0x02
CMD_PALETTE = 0x03
CMD_ALPHA = 0x04
CMD_COORDINATES = 0x05
CMD_FIELD_OFFSETS = 0x06
CMD_END = 0xFF


def parse_two_u12(data: bytes) -> tuple[int, int]:
    """Unpack two 12-bit values from three bytes (aaaaaaaa aaaabbbb bbbbbbbb)."""
    first = (data[0] << 4) | (data[1] >> 4)
    second = ((data[1] & 0x0F) << 8) | data[2]
    return first, second


def read_four_nibbles(data: bytes) -> tuple[int, int, int, int]:
    return (data[0] >> 4, data[0] & 0x0F, data[1] >> 4, data[1] & 0x0F)


@dataclass
class SpuControl:
    """Display state accumulated from the control sequences of one SPU."""

    even_offset: int | None = None  # relative to the RLE data region
    odd_offset: int | None = None
    x1: int | None = None
    x2: int | None = None
    y1: int | None = None
    y2: int | None = None
    colors: tuple[int, int, int, int] | None = None
    alphas: tuple[int, int, int, int] | None = None

    @property
    def width(self) -> int:
        return self.x2 - self.x1 + 1

    @property
    def height(self) -> int:
        return self.y2 - self.y1 + 1

    def is_complete(self) -> bool:
        return (
            self.even_offset is not None
            and self.x1 is not None
            and self.colors is not None
            and self.alphas is not None
        )


class _Cursor:
    """Bounds-checked big-endian reader over the SPU payload."""

    def __init__(self, data: bytes, pos: int = 0):
        self.data = data
        self.pos = pos

    def take(self, count: int) -> bytes:
        end = self.pos + count
        if end > len(self.data):
            raise MalformedSpu(
                f"SPU truncated: need {count} bytes at offset {self.pos}, "
                f"have {len(self.data) - self.pos}"
            )
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u16(self) -> int:
        return struct.unpack(">H", self.take(2))[0]


def _run_command(opcode: int, cursor: _Cursor, control: SpuControl):
    if opcode in (CMD_FORCED_START, CMD_START_DISPLAY, CMD_STOP_DISPLAY):
        pass
    elif opcode == CMD_PALETTE:
        control.colors = read_four_nibbles(cursor.take(2))
    elif opcode == CMD_ALPHA:
        control.alphas = read_four_nibbles(cursor.take(2))
    elif opcode == CMD_COORDINATES:
        coords = cursor.take(6)
        control.x1, control.x2 = parse_two_u12(coords[0:3])
        control.y1, control.y2 = parse_two_u12(coords[3:6])
    elif opcode == CMD_FIELD_OFFSETS:
        even = cursor.u16()
        odd = cursor.u16()
        if even < DATA_START or odd < DATA_START:
            raise MalformedSpu(f"Field offsets {even}/{odd} point into the SPU header")
        control.even_offset = even - DATA_START
        control.odd_offset = odd - DATA_START
    else:
        raise UnknownSpuOpcode(opcode, cursor.pos - 1)


def parse_control(payload: bytes) -> tuple[bytes, SpuControl | None]:
    """
    Walk the control sequences of an SPU.

    Returns:
        Tuple of (RLE data region, control state), where the control state is
        None if the sequences ended before a complete picture was described

    Raises:
        MalformedSpu: size mismatch, truncation or a bad sequence pointer
        UnknownSpuOpcode: a command byte outside the known set
    """
    cursor = _Cursor(payload)
    packet_size = cursor.u16()
    if packet_size != len(payload):
        raise MalformedSpu(
            f"SPU packet size {packet_size} does not match block size {len(payload)}"
        )

    data_packet_end = cursor.u16()
    if data_packet_end < DATA_START or data_packet_end > len(payload):
        raise MalformedSpu(f"Invalid control sequence offset {data_packet_end}")
    region = cursor.take(data_packet_end - DATA_START)

    control = SpuControl()
    while True:
        sequence_start = cursor.pos
        cursor.u16()  # delay, unused
        next_offset = cursor.u16()

        while True:
            opcode = cursor.u8()
            if opcode == CMD_END:
                break
            _run_command(opcode, cursor, control)

        if control.is_complete():
            return region, control
        if next_offset == sequence_start:
            return region, None
        if next_offset < sequence_start:
            raise MalformedSpu(
                f"Control sequence at {sequence_start} points backwards to {next_offset}"
            )
        cursor.pos = next_offset


def build_subpalette(
    palette: tuple[tuple[int, int, int], ...],
    colors: tuple[int, int, int, int],
    alphas: tuple[int, int, int, int],
) -> np.ndarray:
    """
    Resolve the four SPU color slots into BGRA entries.

    An alpha of 0 gives transparent black; otherwise the 0-15 alpha maps to
    round(min(a + 1, 16) / 16 * 255).
    """
    subpalette = np.zeros((4, 4), dtype=np.uint8)
    for i, (color_index, alpha) in enumerate(zip(colors, alphas)):
        if alpha == 0:
            continue
        r, g, b = palette[color_index]
        subpalette[i] = (b, g, r, round(min(alpha + 1, 16) / 16 * 255))
    return subpalette


def _field_data(region: bytes, even_offset: int, odd_offset: int) -> tuple[bytes, bytes]:
    """Split the RLE region into the even and odd field data.

    The field stored first ends where the other one starts; the later field
    runs to the end of the region.
    """
    if even_offset < odd_offset:
        return region[even_offset:odd_offset], region[odd_offset:]
    if odd_offset < even_offset:
        return region[even_offset:], region[odd_offset:even_offset]
    return region[even_offset:], region[odd_offset:]


def decode_vob_block(payload: bytes, palette: tuple[tuple[int, int, int], ...]) -> Bitmap | None:
    """
    Decode one SPU into a BGRA bitmap.

    Args:
        payload: Block payload holding the SPU
        palette: 16-entry RGB palette from the track's idx header

    Returns:
        Bitmap, or None if the SPU never describes a complete picture
    """
    region, control = parse_control(payload)
    if control is None:
        logger.debug("SPU ended without a complete picture")
        return None

    width, height = control.width, control.height
    if width <= 0 or height <= 0:
        raise MalformedSpu(
            f"Invalid display area ({control.x1},{control.y1})-({control.x2},{control.y2})"
        )
    if control.even_offset > len(region) or control.odd_offset > len(region):
        raise MalformedSpu(
            f"Field offsets {control.even_offset}/{control.odd_offset} "
            f"outside RLE data of {len(region)} bytes"
        )

    even_lines = (height + 1) // 2
    odd_lines = height // 2
    even_data, odd_data = _field_data(region, control.even_offset, control.odd_offset)
    even, even_count = decode_field(even_data, width, even_lines)
    odd, odd_count = decode_field(odd_data, width, odd_lines)
    if even_count + odd_count < height - 1:
        raise MalformedSpu(
            f"Fields decoded {even_count}+{odd_count} lines for height {height}"
        )

    # Color index c selects slot 3 - c
    lookup = build_subpalette(palette, control.colors, control.alphas)[::-1]

    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[0::2][:even_count] = lookup[even[:even_count]]
    pixels[1::2][:odd_count] = lookup[odd[:odd_count]]
    return Bitmap(width, height, pixels)
