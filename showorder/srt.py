# showorder/srt.py
"""
Reference transcript (SRT) reader.

Cue layout:
    1
    00:00:01,000 --> 00:00:03,000
    Text, possibly
    over several lines
"""

import logging
from pathlib import Path

from .text import sanitize_text

logger = logging.getLogger(__name__)


def iter_cue_texts(content: str):
    """Yield the raw text of each cue, lines joined with spaces."""
    for chunk in content.replace("\r\n", "\n").split("\n\n"):
        if not chunk:
            continue
        parts = chunk.split("\n", 2)
        if len(parts) < 3:
            continue
        yield parts[2].replace("\n", " ")


def first_n_subtitles(data: bytes, count: int) -> list[str]:
    """
    Return the first `count` non-empty sanitised cue texts.

    Args:
        data: Raw SRT bytes (decoded as UTF-8, BOM stripped, invalid sequences replaced)
        count: Maximum number of strings to return
    """
    subtitles: list[str] = []
    if count <= 0:
        return subtitles

    for text in iter_cue_texts(data.decode("utf-8-sig", errors="replace")):
        text = sanitize_text(text)
        if not text:
            continue
        subtitles.append(text)
        if len(subtitles) >= count:
            break
    return subtitles


def load_first_n_subtitles(path: str | Path, count: int) -> list[str]:
    """Read an SRT file and return its first `count` sanitised cue texts."""
    data = Path(path).read_bytes()
    subtitles = first_n_subtitles(data, count)
    logger.debug(f"{path}: {len(subtitles)} reference subtitle(s)")
    return subtitles
