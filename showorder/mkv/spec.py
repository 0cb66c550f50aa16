# showorder/mkv/spec.py
# -*- coding: utf-8 -*-
"""
The subset of the Matroska element table the scanner understands.

Element ids keep their EBML length marker, exactly as they appear on disk
(e.g. Segment is 0x18538067). Any id not listed here is passed through by the
scanner as an opaque binary element.
"""
from __future__ import annotations

from enum import Enum, IntEnum
from typing import Dict, Optional


class DataType(Enum):
    """Payload encodings an element can carry"""
    MASTER = "master"
    UINT = "uint"
    INT = "int"
    UTF8 = "utf8"
    BINARY = "binary"
    FLOAT = "float"


class MatroskaTag(IntEnum):
    """Known EBML/Matroska element ids"""
    # EBML header
    EBML = 0x1A45DFA3
    EBML_VERSION = 0x4286
    EBML_READ_VERSION = 0x42F7
    EBML_MAX_ID_LENGTH = 0x42F2
    EBML_MAX_SIZE_LENGTH = 0x42F3
    DOC_TYPE = 0x4282
    DOC_TYPE_VERSION = 0x4287
    DOC_TYPE_READ_VERSION = 0x4285

    # Global elements
    VOID = 0xEC
    CRC32 = 0xBF

    # Segment and its top level children
    SEGMENT = 0x18538067
    SEEK_HEAD = 0x114D9B74
    SEEK = 0x4DBB
    SEEK_ID = 0x53AB
    SEEK_POSITION = 0x53AC
    INFO = 0x1549A966
    TIMESTAMP_SCALE = 0x2AD7B1
    DURATION = 0x4489
    DATE_UTC = 0x4461
    TITLE = 0x7BA9
    MUXING_APP = 0x4D80
    WRITING_APP = 0x5741
    SEGMENT_UID = 0x73A4

    # Tracks
    TRACKS = 0x1654AE6B
    TRACK_ENTRY = 0xAE
    TRACK_NUMBER = 0xD7
    TRACK_UID = 0x73C5
    TRACK_TYPE = 0x83
    FLAG_ENABLED = 0xB9
    FLAG_DEFAULT = 0x88
    FLAG_FORCED = 0x55AA
    FLAG_LACING = 0x9C
    DEFAULT_DURATION = 0x23E383
    NAME = 0x536E
    LANGUAGE = 0x22B59C
    LANGUAGE_IETF = 0x22B59D
    CODEC_ID = 0x86
    CODEC_PRIVATE = 0x63A2
    CODEC_NAME = 0x258688
    VIDEO = 0xE0
    PIXEL_WIDTH = 0xB0
    PIXEL_HEIGHT = 0xBA
    AUDIO = 0xE1
    SAMPLING_FREQUENCY = 0xB5
    CHANNELS = 0x9F
    CONTENT_ENCODINGS = 0x6D80
    CONTENT_ENCODING = 0x6240
    CONTENT_ENCODING_ORDER = 0x5031
    CONTENT_ENCODING_SCOPE = 0x5032
    CONTENT_ENCODING_TYPE = 0x5033
    CONTENT_COMPRESSION = 0x5034
    CONTENT_COMP_ALGO = 0x4254
    CONTENT_COMP_SETTINGS = 0x4255

    # Clusters
    CLUSTER = 0x1F43B675
    TIMESTAMP = 0xE7
    POSITION = 0xA7
    PREV_SIZE = 0xAB
    SIMPLE_BLOCK = 0xA3
    BLOCK_GROUP = 0xA0
    BLOCK = 0xA1
    BLOCK_DURATION = 0x9B
    REFERENCE_BLOCK = 0xFB

    # Cues
    CUES = 0x1C53BB6B
    CUE_POINT = 0xBB
    CUE_TIME = 0xB3
    CUE_TRACK_POSITIONS = 0xB7
    CUE_TRACK = 0xF7
    CUE_CLUSTER_POSITION = 0xF1
    CUE_RELATIVE_POSITION = 0xF0

    # Other top level masters (streamed, contents passed through)
    CHAPTERS = 0x1043A770
    TAGS = 0x1254C367
    ATTACHMENTS = 0x1941A469


_MASTERS = {
    MatroskaTag.EBML,
    MatroskaTag.SEGMENT,
    MatroskaTag.SEEK_HEAD,
    MatroskaTag.SEEK,
    MatroskaTag.INFO,
    MatroskaTag.TRACKS,
    MatroskaTag.TRACK_ENTRY,
    MatroskaTag.VIDEO,
    MatroskaTag.AUDIO,
    MatroskaTag.CONTENT_ENCODINGS,
    MatroskaTag.CONTENT_ENCODING,
    MatroskaTag.CONTENT_COMPRESSION,
    MatroskaTag.CLUSTER,
    MatroskaTag.BLOCK_GROUP,
    MatroskaTag.CUES,
    MatroskaTag.CUE_POINT,
    MatroskaTag.CUE_TRACK_POSITIONS,
    MatroskaTag.CHAPTERS,
    MatroskaTag.TAGS,
    MatroskaTag.ATTACHMENTS,
}

_INTS = {MatroskaTag.DATE_UTC, MatroskaTag.REFERENCE_BLOCK}

_FLOATS = {MatroskaTag.DURATION, MatroskaTag.SAMPLING_FREQUENCY}

_STRINGS = {
    MatroskaTag.DOC_TYPE,
    MatroskaTag.TITLE,
    MatroskaTag.MUXING_APP,
    MatroskaTag.WRITING_APP,
    MatroskaTag.NAME,
    MatroskaTag.LANGUAGE,
    MatroskaTag.LANGUAGE_IETF,
    MatroskaTag.CODEC_ID,
    MatroskaTag.CODEC_NAME,
}

_BINARIES = {
    MatroskaTag.VOID,
    MatroskaTag.CRC32,
    MatroskaTag.SEEK_ID,
    MatroskaTag.SEGMENT_UID,
    MatroskaTag.CODEC_PRIVATE,
    MatroskaTag.CONTENT_COMP_SETTINGS,
    MatroskaTag.SIMPLE_BLOCK,
    MatroskaTag.BLOCK,
}

# Elements that may follow an unknown-size Cluster at Segment level and
# therefore terminate it.
SEGMENT_CHILDREN = frozenset({
    MatroskaTag.SEEK_HEAD,
    MatroskaTag.INFO,
    MatroskaTag.TRACKS,
    MatroskaTag.CLUSTER,
    MatroskaTag.CUES,
    MatroskaTag.CHAPTERS,
    MatroskaTag.TAGS,
    MatroskaTag.ATTACHMENTS,
})


def _build_type_table() -> Dict[int, DataType]:
    table: Dict[int, DataType] = {}
    for tag in MatroskaTag:
        if tag in _MASTERS:
            table[tag.value] = DataType.MASTER
        elif tag in _INTS:
            table[tag.value] = DataType.INT
        elif tag in _FLOATS:
            table[tag.value] = DataType.FLOAT
        elif tag in _STRINGS:
            table[tag.value] = DataType.UTF8
        elif tag in _BINARIES:
            table[tag.value] = DataType.BINARY
        else:
            table[tag.value] = DataType.UINT
    return table


TAG_TYPES: Dict[int, DataType] = _build_type_table()


def get_tag(tag_id: int) -> Optional[MatroskaTag]:
    """Return the symbolic tag for an id, or None for ids outside the table"""
    try:
        return MatroskaTag(tag_id)
    except ValueError:
        return None


def get_data_type(tag_id: int) -> DataType:
    """Unknown ids are surfaced as binary payloads"""
    return TAG_TYPES.get(tag_id, DataType.BINARY)


def tag_name(tag_id: int) -> str:
    tag = get_tag(tag_id)
    return tag.name if tag is not None else f"0x{tag_id:X}"
