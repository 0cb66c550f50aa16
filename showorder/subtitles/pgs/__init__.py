# showorder/subtitles/pgs/__init__.py
"""
PGS (S_HDMV/PGS) bitmap subtitle decoding.
"""

from .decoder import decode_pgs_block

__all__ = ["decode_pgs_block"]
