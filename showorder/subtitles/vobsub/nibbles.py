# showorder/subtitles/vobsub/nibbles.py
"""
Nibble-level run-length decoding for DVD subpicture fields.

Each run packs a length and a 2-bit color index into 4, 8, 12 or 16 bits:

    Leading nibbles   Bits   Format
    4-F               4      nncc
    1-3               8      00nnnncc
    0, 4-F            12     0000nnnnnncc
    0, 0-3            16     000000nnnnnnnncc

A 16-bit code with a zero length fills the rest of the current line. Every
line starts on a byte boundary.
"""

import numpy as np

from ...errors import MalformedSpu


class NibbleReader:
    """Reads 4-bit values high nibble first from a byte buffer."""

    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0  # in nibbles

    @property
    def remaining(self) -> int:
        """Nibbles left in the buffer."""
        return len(self._data) * 2 - self._pos

    def read_nibble(self) -> int:
        byte_index = self._pos >> 1
        if byte_index >= len(self._data):
            raise MalformedSpu(f"RLE data underflow at byte {byte_index}")
        byte = self._data[byte_index]
        value = (byte & 0x0F) if self._pos & 1 else (byte >> 4)
        self._pos += 1
        return value

    def round_to_next_byte(self):
        if self._pos & 1:
            self._pos += 1

    def read_run(self) -> tuple[int, int]:
        """
        Read one run code.

        Returns:
            (run_length, color); a run length of 0 means "fill to end of line"
        """
        n = self.read_nibble()
        if n >= 0x4:
            value = n
        elif n >= 0x1:
            value = (n << 4) | self.read_nibble()
        else:
            n = self.read_nibble()
            if n >= 0x4:
                value = (n << 4) | self.read_nibble()
            else:
                value = (n << 8) | (self.read_nibble() << 4) | self.read_nibble()
        return value >> 2, value & 0x03


def decode_field(data: bytes, width: int, line_count: int) -> tuple[np.ndarray, int]:
    """
    Decode one interlaced field into a (line_count, width) array of 2-bit
    color indices.

    A field may stop one line short when its data runs out exactly at the
    start of the last line; the missing line is left as index 0.

    Returns:
        Tuple of (indices, lines_decoded)

    Raises:
        MalformedSpu: data ran out anywhere else
    """
    indices = np.zeros((line_count, width), dtype=np.uint8)
    reader = NibbleReader(data)

    for line in range(line_count):
        if reader.remaining == 0 and line == line_count - 1:
            return indices, line

        x = 0
        while x < width:
            run, color = reader.read_run()
            remaining = width - x
            if run == 0 or run > remaining:
                run = remaining
            indices[line, x:x + run] = color
            x += run
        reader.round_to_next_byte()

    return indices, line_count
