# showorder/subtitles/stream.py
"""
Per-track bitmap iteration.

Ties the block iterator of a Matroska file to the decoder chosen by the
track's encoding. Blocks that fail to decode are logged and skipped; errors
in the container itself end the iteration.
"""

import logging
from collections.abc import Callable, Iterator
from functools import partial
from pathlib import Path

from ..errors import BlockDecodeError
from ..mkv import ENGLISH, BlockIterator, Encoding, EncodingKind, Language, MkvFile
from ..mkv import TrackInfo, TrackInventory
from ..models import Bitmap
from .pgs import decode_pgs_block
from .vobsub import decode_vob_block

logger = logging.getLogger(__name__)

Decoder = Callable[[bytes], Bitmap | None]

_DECODERS: dict[EncodingKind, Callable[[Encoding], Decoder]] = {
    EncodingKind.PGS: lambda encoding: decode_pgs_block,
    EncodingKind.VOB: lambda encoding: partial(decode_vob_block, palette=encoding.palette),
}


def decoder_for(encoding: Encoding) -> Decoder | None:
    """Return the block decoder for an encoding, or None if it is not a bitmap codec."""
    factory = _DECODERS.get(encoding.kind)
    return factory(encoding) if factory is not None else None


def select_track(
    inventory: TrackInventory,
    track_number: int | None = None,
    language: Language = ENGLISH,
) -> TrackInfo | None:
    """
    Pick the track to decode: the explicit track number if given, otherwise
    the first decodable track in the requested language.
    """
    if track_number is not None:
        track = inventory.by_number(track_number)
        if track is None:
            logger.warning(f"No subtitle track with number {track_number}")
        return track
    return inventory.first_for_language(language)


class SubtitleIterator:
    """Iterator of decoded bitmaps for one track."""

    def __init__(self, blocks: BlockIterator, decoder: Decoder, name: str = ""):
        self._blocks = blocks
        self._decode = decoder
        self.name = name

    def __iter__(self) -> Iterator[Bitmap]:
        return self

    def __next__(self) -> Bitmap:
        while True:
            try:
                block = next(self._blocks)
                bitmap = self._decode(block.payload)
            except BlockDecodeError as e:
                logger.warning(f"{self.name}: skipping subtitle block: {e}")
                continue
            if bitmap is not None:
                return bitmap


def iter_subtitle_bitmaps(
    path: str | Path,
    track_number: int | None = None,
    language: Language = ENGLISH,
) -> Iterator[Bitmap]:
    """
    Yield the decoded bitmaps of one subtitle track of a Matroska file.

    Yields nothing when no matching decodable track exists.
    """
    with MkvFile.open(path) as mkv:
        track = select_track(mkv.tracks, track_number, language)
        if track is None:
            return
        decoder = decoder_for(track.encoding)
        if decoder is None:
            logger.warning(f"{path}: track {track.track_number} ({track.encoding}) is not a bitmap codec")
            return
        yield from SubtitleIterator(mkv.blocks(track), decoder, str(path))
