# showorder/subtitles/vobsub/idx.py
"""
VobSub .idx header parser.

Inside Matroska the idx text travels as the track's CodecPrivate. Only the
header keys matter here:

    # comment lines are ignored
    size: 720x480
    palette: 000000, f0f0f0, cccccc, 999999, 3333fa, 1111bb, fa3333, bb1111,
             33fa33, 11bb11, fafa33, bbbb11, fa33fa, bb11bb, 33fafa, 11bbbb
"""

import logging
import re
from dataclasses import dataclass

from ...errors import MalformedIdx

logger = logging.getLogger(__name__)

PALETTE_SIZE = 16

_SIZE_RE = re.compile(r"^\s*(\d+)\s*x\s*(\d+)\s*$")
_COLOR_RE = re.compile(r"^[0-9a-fA-F]{6}$")


@dataclass(frozen=True)
class IdxInfo:
    """Frame size and master palette from an idx header."""

    width: int
    height: int
    palette: tuple[tuple[int, int, int], ...]  # 16 RGB tuples


def parse_size(value: str) -> tuple[int, int]:
    match = _SIZE_RE.match(value)
    if not match:
        raise MalformedIdx(f"Invalid size value: {value.strip()!r}")
    return int(match.group(1)), int(match.group(2))


def parse_palette(value: str) -> tuple[tuple[int, int, int], ...]:
    """
    Parse 16 RRGGBB hex colors separated by commas and/or whitespace.

    Raises:
        MalformedIdx: wrong color count or a color that is not 6 hex digits
    """
    colors = [c for c in re.split(r"[,\s]+", value) if c]
    if len(colors) != PALETTE_SIZE:
        raise MalformedIdx(
            f"Palette has {len(colors)} colors, expected {PALETTE_SIZE}"
        )

    palette = []
    for color in colors:
        if not _COLOR_RE.match(color):
            raise MalformedIdx(f"Invalid palette color: {color!r}")
        rgb = int(color, 16)
        palette.append(((rgb >> 16) & 0xFF, (rgb >> 8) & 0xFF, rgb & 0xFF))
    return tuple(palette)


def parse_idx(data: bytes) -> IdxInfo:
    """
    Parse the idx text carried in CodecPrivate.

    Args:
        data: Raw idx bytes (decoded as UTF-8, invalid sequences replaced)

    Returns:
        IdxInfo with frame size and palette

    Raises:
        MalformedIdx: size or palette missing or invalid
    """
    text = data.decode("utf-8", errors="replace")
    size = None
    palette = None

    for line in text.splitlines():
        if line.startswith("#"):
            continue
        name, sep, value = line.partition(":")
        if not sep:
            continue

        key = name.strip().lower()
        if key == "size":
            size = parse_size(value)
        elif key == "palette":
            palette = parse_palette(value)

    if size is None:
        raise MalformedIdx("idx header has no size")
    if palette is None:
        raise MalformedIdx("idx header has no palette")

    logger.debug(f"idx header: size={size[0]}x{size[1]}")
    return IdxInfo(size[0], size[1], palette)
