# showorder/mkv/__init__.py
"""
Minimal Matroska reader: EBML scanning, subtitle track inventory, and
per-track block iteration.
"""

from .blocks import Block, BlockIterator, Lacing
from .ebml import DataTag, TagEvent, TagKind, WebmScanner
from .file import MkvFile, list_tracks
from .spec import DataType, MatroskaTag
from .tracks import (
    ENGLISH,
    Encoding,
    EncodingKind,
    Language,
    TrackInfo,
    TrackInventory,
)

__all__ = [
    'Block',
    'BlockIterator',
    'DataTag',
    'DataType',
    'ENGLISH',
    'Encoding',
    'EncodingKind',
    'Language',
    'Lacing',
    'MatroskaTag',
    'MkvFile',
    'TagEvent',
    'TagKind',
    'TrackInfo',
    'TrackInventory',
    'WebmScanner',
    'list_tracks',
]
