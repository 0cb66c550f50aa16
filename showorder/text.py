# showorder/text.py
"""
Text normalisation shared by OCR output and reference transcripts.
"""

import re
import string

BANNED_PHRASES = (
    "caption",
    "subtitle",
    "subbed",
    "corrections by",
    "corrected by",
    "correction by",
)

# Applied in order: markup tags, sound cues, asides, speaker labels
_REMOVALS = (
    re.compile(r"<.*?>"),
    re.compile(r"\[.*?\]"),
    re.compile(r"\(.*?\)"),
    re.compile(r"[A-Za-z]+:"),
)

_PUNCTUATION = str.maketrans("", "", string.punctuation)


def _is_banned(text: str) -> bool:
    return any(phrase in text for phrase in BANNED_PHRASES)


def sanitize_text(text: str) -> str:
    """
    Normalise a subtitle string for comparison.

    Returns the empty string for credit lines ("Subtitled by ...") and for
    anything that is empty once cleaned.
    """
    text = text.lower()
    if _is_banned(text):
        return ""

    for pattern in _REMOVALS:
        text = pattern.sub("", text)
    text = text.translate(_PUNCTUATION).strip()

    if _is_banned(text):
        return ""
    return text
