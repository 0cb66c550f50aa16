"""
showorder: identify episodes of Matroska rips from their bitmap subtitles.

The subtitle track of each input is decoded (PGS or VobSub), OCR-ed, and the
resulting text is matched against reference SRT transcripts by edit distance.
"""

__version__ = "0.3.0"

from .errors import ShowOrderError
from .matcher import MatchResult, build_mapping, compute_distances, match
from .mkv import list_tracks
from .pipeline import load_first_n_subtitles
from .subtitles.stream import iter_subtitle_bitmaps

__all__ = [
    "MatchResult",
    "ShowOrderError",
    "build_mapping",
    "compute_distances",
    "iter_subtitle_bitmaps",
    "list_tracks",
    "load_first_n_subtitles",
    "match",
]
