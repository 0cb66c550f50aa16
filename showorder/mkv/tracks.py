# showorder/mkv/tracks.py
# -*- coding: utf-8 -*-
"""
Subtitle track inventory.

Reads the head of a Matroska stream up to the end of the Tracks element and
collects every subtitle TrackEntry as an immutable TrackInfo.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..errors import BlockDecodeError, MissingCodecPrivate, TrackError
from ..subtitles.vobsub.idx import IdxInfo, parse_idx
from .blocks import (
    COMPRESSION_HEADER_STRIPPING, COMPRESSION_ZLIB, decompress_payload
)
from .ebml import DataTag, TagKind, WebmScanner
from .spec import MatroskaTag

logger = logging.getLogger(__name__)

SUBTITLE_TRACK_TYPE = 0x11
DEFAULT_LANGUAGE = "eng"  # Matroska default when Language is absent

CODEC_PGS = "S_HDMV/PGS"
CODEC_VOBSUB = "S_VOBSUB"

ENGLISH_TAGS = frozenset({"en", "eng", "en-US"})


@dataclass(frozen=True)
class Language:
    """Track language, folded to English or the raw tag"""
    tag: str
    is_english: bool = False

    @classmethod
    def from_tag(cls, tag: str) -> Language:
        return cls(tag, tag in ENGLISH_TAGS)

    def __str__(self) -> str:
        return "English" if self.is_english else self.tag


ENGLISH = Language("eng", True)


class EncodingKind(Enum):
    PGS = "PGS"
    VOB = "VOB"
    OTHER = "Other"


@dataclass(frozen=True)
class Encoding:
    """
    Subtitle codec of a track.

    VOB encodings carry the frame size and 16-entry RGB palette parsed from
    the idx text in CodecPrivate.
    """
    kind: EncodingKind
    codec_id: str
    width: int = 0
    height: int = 0
    palette: Tuple[Tuple[int, int, int], ...] = ()

    @classmethod
    def from_codec(cls, codec_id: str, codec_private: Optional[bytes]) -> Encoding:
        """
        Raises:
            MissingCodecPrivate: S_VOBSUB without CodecPrivate
            MalformedIdx: S_VOBSUB whose idx has no usable size or palette
        """
        if codec_id == CODEC_PGS:
            return cls(EncodingKind.PGS, codec_id)
        if codec_id == CODEC_VOBSUB:
            if codec_private is None:
                raise MissingCodecPrivate("S_VOBSUB track has no CodecPrivate")
            idx: IdxInfo = parse_idx(codec_private)
            return cls(EncodingKind.VOB, codec_id, idx.width, idx.height, idx.palette)
        return cls(EncodingKind.OTHER, codec_id)

    @property
    def is_decodable(self) -> bool:
        return self.kind is not EncodingKind.OTHER

    def __str__(self) -> str:
        if self.kind is EncodingKind.PGS:
            return "PGS"
        if self.kind is EncodingKind.VOB:
            return f"VOB {self.width}x{self.height}"
        return f"Other({self.codec_id})"


@dataclass(frozen=True)
class ContentCompression:
    """Track-level ContentCompression (scope bit 1: frames, bit 2: CodecPrivate)"""
    algorithm: int
    settings: bytes = b""
    scope: int = 1

    @property
    def applies_to_frames(self) -> bool:
        return bool(self.scope & 1)

    @property
    def applies_to_private(self) -> bool:
        return bool(self.scope & 2)


@dataclass(frozen=True)
class TrackInfo:
    track_number: int
    language: Language
    encoding: Encoding
    name: str = ""
    compression: Optional[ContentCompression] = None

    def describe(self) -> str:
        return f"{self.track_number} - {self.language} ({self.encoding})"


@dataclass
class TrackInventory:
    """Subtitle tracks in discovery order plus the entries that were skipped"""
    tracks: List[TrackInfo] = field(default_factory=list)
    errors: List[Tuple[int, TrackError]] = field(default_factory=list)

    def by_number(self, track_number: int) -> Optional[TrackInfo]:
        for track in self.tracks:
            if track.track_number == track_number:
                return track
        return None

    def first_for_language(self, language: Language) -> Optional[TrackInfo]:
        """First decodable track matching the language (English folds its tags)."""
        for track in self.tracks:
            if not track.encoding.is_decodable:
                continue
            if language.is_english and track.language.is_english:
                return track
            if track.language.tag == language.tag:
                return track
        return None


def _read_compression(entry: DataTag) -> Optional[ContentCompression]:
    encodings = entry.find(MatroskaTag.CONTENT_ENCODINGS)
    if encodings is None:
        return None
    for encoding in encodings.children:
        if encoding.tag_id != MatroskaTag.CONTENT_ENCODING:
            continue
        # Type 1 is encryption, which cannot be undone here
        if encoding.find_value(MatroskaTag.CONTENT_ENCODING_TYPE, 0) != 0:
            raise TrackError("Encrypted track content is not supported")
        compression = encoding.find(MatroskaTag.CONTENT_COMPRESSION)
        if compression is None:
            continue
        algorithm = compression.find_value(MatroskaTag.CONTENT_COMP_ALGO, COMPRESSION_ZLIB)
        settings = compression.find_value(MatroskaTag.CONTENT_COMP_SETTINGS, b"")
        if algorithm not in (COMPRESSION_ZLIB, COMPRESSION_HEADER_STRIPPING):
            raise TrackError(f"Unsupported content compression algorithm {algorithm}")
        scope = encoding.find_value(MatroskaTag.CONTENT_ENCODING_SCOPE, 1)
        return ContentCompression(algorithm, settings, scope)
    return None


def track_from_entry(entry: DataTag) -> Optional[TrackInfo]:
    """
    Build a TrackInfo from a materialised TrackEntry.

    Returns None for non-subtitle tracks.

    Raises:
        TrackError: the entry is a subtitle track that cannot be used
    """
    if entry.find_value(MatroskaTag.TRACK_TYPE) != SUBTITLE_TRACK_TYPE:
        return None

    track_number = entry.find_value(MatroskaTag.TRACK_NUMBER)
    if track_number is None:
        raise TrackError("Subtitle TrackEntry without TrackNumber")

    language_tag = entry.find_value(MatroskaTag.LANGUAGE_IETF)
    if not language_tag:
        language_tag = entry.find_value(MatroskaTag.LANGUAGE, DEFAULT_LANGUAGE)

    codec_id = entry.find_value(MatroskaTag.CODEC_ID, "")
    codec_private = entry.find_value(MatroskaTag.CODEC_PRIVATE)

    compression = _read_compression(entry)
    if compression is not None and codec_private is not None and compression.applies_to_private:
        try:
            codec_private = decompress_payload(codec_private, compression)
        except BlockDecodeError as e:
            raise TrackError(f"CodecPrivate: {e}") from e

    encoding = Encoding.from_codec(codec_id, codec_private)

    return TrackInfo(
        track_number=track_number,
        language=Language.from_tag(language_tag),
        encoding=encoding,
        name=entry.find_value(MatroskaTag.NAME, ""),
        compression=compression,
    )


def read_track_inventory(scanner: WebmScanner) -> TrackInventory:
    """
    Drive the scanner until Tracks closes with at least one subtitle track, or
    the stream ends.

    The scanner must have been created with TrackEntry among its full tags.
    It is left positioned just past the Tracks element.
    """
    inventory = TrackInventory()
    seen_numbers = set()

    for event in scanner:
        if event.kind is TagKind.END and event.tag_id == MatroskaTag.TRACKS:
            if inventory.tracks:
                break
            continue

        if event.kind is not TagKind.FULL or event.tag_id != MatroskaTag.TRACK_ENTRY:
            continue

        try:
            track = track_from_entry(event.tag)
        except TrackError as e:
            number = event.tag.find_value(MatroskaTag.TRACK_NUMBER, -1)
            logger.warning(f"Skipping subtitle track {number}: {e}")
            inventory.errors.append((number, e))
            continue

        if track is None:
            continue
        if track.track_number in seen_numbers:
            logger.warning(f"Ignoring duplicate subtitle track number {track.track_number}")
            continue

        seen_numbers.add(track.track_number)
        logger.debug(f"Found subtitle track {track.describe()}")
        inventory.tracks.append(track)

    return inventory
