# showorder/pipeline.py
"""
End-to-end orchestration: discover files, fingerprint them, match.

Inputs (Matroska files) are fingerprinted by OCR-ing the first N subtitle
bitmaps of their subtitle track; references (SRT files) by reading their
first N cues. Input files are processed in parallel worker processes, one
file per task, and results are collected in discovery order.
"""

import logging
import os
from collections.abc import Iterable
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Protocol

from .errors import MalformedContainer, OcrFailure
from .matcher import Fingerprint, MatchResult, match
from .mkv import ENGLISH, Language, MkvFile
from .models import Bitmap
from .srt import load_first_n_subtitles as load_reference_subtitles
from .subtitles.ocr import ImagePreprocessor
from .subtitles.stream import SubtitleIterator, decoder_for, select_track
from .text import sanitize_text

logger = logging.getLogger(__name__)

MKV_EXTENSION = ".mkv"
SRT_EXTENSION = ".srt"


class Recognizer(Protocol):
    def recognize(self, bitmap: Bitmap) -> str: ...


def discover_files(path: str | Path, extension: str) -> list[Path]:
    """
    A single file is returned as is; a directory yields its files with the
    given extension (case-insensitive), sorted by name.
    """
    path = Path(path)
    if path.is_dir():
        return sorted(
            (p for p in path.iterdir() if p.is_file() and p.suffix.lower() == extension),
            key=lambda p: p.name,
        )
    if not path.exists():
        raise FileNotFoundError(f"No such file or directory: {path}")
    return [path]


def recognize_bitmaps(
    bitmaps: Iterable[Bitmap],
    recognizer: Recognizer,
    count: int,
    preprocessor: ImagePreprocessor | None = None,
) -> list[str]:
    """OCR and sanitise bitmaps until `count` non-empty strings are collected."""
    preprocessor = preprocessor or ImagePreprocessor()
    subtitles: list[str] = []
    if count <= 0:
        return subtitles

    for bitmap in bitmaps:
        prepared = preprocessor.preprocess(bitmap)
        try:
            text = recognizer.recognize(prepared)
        except OcrFailure as e:
            logger.warning(f"OCR failed, treating frame as empty: {e}")
            continue
        # OCR returns one line per subtitle line; cues are joined with spaces
        text = sanitize_text(" ".join(text.split()))
        if not text:
            continue
        subtitles.append(text)
        if len(subtitles) >= count:
            break
    return subtitles


def load_first_n_subtitles(
    path: str | Path,
    count: int,
    recognizer: Recognizer,
    preprocessor: ImagePreprocessor | None = None,
    track_number: int | None = None,
    language: Language = ENGLISH,
) -> list[str] | None:
    """
    OCR the first `count` subtitles of a Matroska file.

    Returns:
        The sanitised strings, or None if the file has no matching decodable
        subtitle track

    Raises:
        MalformedContainer: the file's framing is corrupt
        OSError: the file cannot be read
    """
    with MkvFile.open(path) as mkv:
        track = select_track(mkv.tracks, track_number, language)
        if track is None:
            return None
        decoder = decoder_for(track.encoding)
        if decoder is None:
            logger.warning(f"{path}: track {track.track_number} ({track.encoding}) is not a bitmap codec")
            return None
        logger.debug(f"{path}: using track {track.describe()}")
        bitmaps = SubtitleIterator(mkv.blocks(track), decoder, str(path))
        return recognize_bitmaps(bitmaps, recognizer, count, preprocessor)


def _fingerprint_file(task: tuple) -> tuple[Path, list[str] | None]:
    """Worker entry point: one Matroska file per task."""
    path, count, track_number, recognizer, preprocessor = task
    try:
        subtitles = load_first_n_subtitles(path, count, recognizer, preprocessor, track_number)
    except (MalformedContainer, OSError) as e:
        logger.error(f"{path.name}: {e}")
        return path, None
    return path, subtitles


def resolve_workers(workers: int) -> int:
    return workers if workers > 0 else (os.cpu_count() or 1)


def collect_input_subtitles(
    paths: list[Path],
    recognizer: Recognizer,
    count: int,
    preprocessor: ImagePreprocessor | None = None,
    track_number: int | None = None,
    workers: int = 0,
) -> list[tuple[Path, list[str]]]:
    """
    OCR the first subtitles of each Matroska file, in parallel when more than
    one worker is allowed. Files without a usable track, without recognised
    text, or with a corrupt container are dropped. Order follows `paths`.
    """
    preprocessor = preprocessor or ImagePreprocessor()
    tasks = [(path, count, track_number, recognizer, preprocessor) for path in paths]
    num_workers = min(resolve_workers(workers), max(len(tasks), 1))

    if num_workers == 1:
        results = [_fingerprint_file(task) for task in tasks]
    else:
        with ProcessPoolExecutor(max_workers=num_workers) as executor:
            results = list(executor.map(_fingerprint_file, tasks))

    collected = []
    for path, subtitles in results:
        if subtitles is None:
            logger.info(f"{path.name}: no usable subtitle track")
            continue
        # A subtitle track can exist and still hold no recognisable text
        if not subtitles:
            logger.info(f"{path.name}: no subtitle text recognised")
            continue
        collected.append((path, subtitles))
    return collected


def collect_reference_subtitles(paths: list[Path], count: int) -> list[tuple[Path, list[str]]]:
    """Read the first cues of each SRT file; unreadable or empty ones are dropped."""
    collected = []
    for path in paths:
        try:
            subtitles = load_reference_subtitles(path, count)
        except OSError as e:
            logger.error(f"{path.name}: {e}")
            continue
        if not subtitles:
            logger.info(f"{path.name}: no reference cues")
            continue
        collected.append((path, subtitles))
    return collected


def fingerprint_inputs(
    paths: list[Path],
    recognizer: Recognizer,
    count: int,
    preprocessor: ImagePreprocessor | None = None,
    track_number: int | None = None,
    workers: int = 0,
) -> list[Fingerprint]:
    collected = collect_input_subtitles(paths, recognizer, count, preprocessor, track_number, workers)
    return [Fingerprint.from_subtitles(path, subtitles) for path, subtitles in collected]


def fingerprint_references(paths: list[Path], count: int) -> list[Fingerprint]:
    collected = collect_reference_subtitles(paths, count)
    return [Fingerprint.from_subtitles(path, subtitles) for path, subtitles in collected]


def run_match(
    mkv_path: str | Path,
    reference_path: str | Path,
    recognizer: Recognizer,
    count: int,
    preprocessor: ImagePreprocessor | None = None,
    track_number: int | None = None,
    max_distance: int | None = None,
    workers: int = 0,
) -> MatchResult | None:
    """
    Fingerprint inputs and references and match them, printing progress.

    Returns:
        The match result, or None when no input produced any subtitles
    """
    print("Loading subtitles from mkv files...")
    inputs = fingerprint_inputs(
        discover_files(mkv_path, MKV_EXTENSION), recognizer, count,
        preprocessor, track_number, workers,
    )
    if not inputs:
        print("No English subtitles found!")
        return None

    print("Loading reference data...")
    references = fingerprint_references(discover_files(reference_path, SRT_EXTENSION), count)

    print("Comparing subtitles...")
    for item in inputs:
        print(f'  Inspecting "{item.path.name}"')
    return match(inputs, references, max_distance)
