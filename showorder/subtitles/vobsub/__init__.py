# showorder/subtitles/vobsub/__init__.py
"""
VobSub (S_VOBSUB) decoding: idx header parsing and SPU bitmap decoding.
"""

from .idx import IdxInfo, parse_idx
from .spu import decode_vob_block, parse_two_u12

__all__ = [
    "IdxInfo",
    "decode_vob_block",
    "parse_idx",
    "parse_two_u12",
]
