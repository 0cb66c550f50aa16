# showorder/dump.py
"""
Debug dumps of a subtitle track: decoded bitmaps as PNG or raw BGRA8, or
the raw block payloads before decoding.
"""

import logging
from enum import Enum
from itertools import islice
from pathlib import Path

from PIL import Image

from .errors import BlockDecodeError
from .mkv import ENGLISH, MkvFile
from .models import Bitmap
from .subtitles.stream import SubtitleIterator, decoder_for, select_track

logger = logging.getLogger(__name__)


class DumpType(Enum):
    PNG = "png"
    BGRA8 = "bgra8"
    BLOCK = "block"


def write_png(bitmap: Bitmap, path: Path):
    Image.fromarray(bitmap.to_rgba(), "RGBA").save(path, format="PNG")


def write_bgra8(bitmap: Bitmap, directory: Path, index: int) -> Path:
    path = directory / f"{index}size{bitmap.width}x{bitmap.height}.bin"
    path.write_bytes(bitmap.to_bytes())
    return path


def dump_track(
    mkv_path: str | Path,
    output_dir: str | Path,
    dump_type: DumpType,
    count: int,
    track_number: int | None = None,
) -> int | None:
    """
    Write the first `count` items of a subtitle track into `output_dir`.

    Files are named by position: "<i>.png", "<i>size<W>x<H>.bin" or "<i>.bin".

    Returns:
        Number of files written, or None if the file has no matching track
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    with MkvFile.open(mkv_path) as mkv:
        track = select_track(mkv.tracks, track_number, ENGLISH)
        if track is None:
            return None

        if dump_type is DumpType.BLOCK:
            blocks = mkv.blocks(track)
            written = 0
            while written < count:
                try:
                    block = next(blocks)
                except BlockDecodeError as e:
                    logger.warning(f"{mkv_path}: skipping block: {e}")
                    continue
                except StopIteration:
                    break
                (output_dir / f"{written}.bin").write_bytes(block.payload)
                written += 1
            return written

        decoder = decoder_for(track.encoding)
        if decoder is None:
            logger.warning(f"{mkv_path}: track {track.track_number} ({track.encoding}) is not a bitmap codec")
            return None

        bitmaps = SubtitleIterator(mkv.blocks(track), decoder, str(mkv_path))
        written = 0
        for index, bitmap in enumerate(islice(bitmaps, count)):
            if dump_type is DumpType.PNG:
                write_png(bitmap, output_dir / f"{index}.png")
            else:
                write_bgra8(bitmap, output_dir, index)
            written += 1
        logger.debug(f"Wrote {written} {dump_type.value} file(s) to {output_dir}")
        return written
