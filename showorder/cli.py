from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .config import AppConfig
from .dump import DumpType, dump_track
from .errors import ShowOrderError
from .mkv import list_tracks
from .pipeline import (
    MKV_EXTENSION, SRT_EXTENSION, collect_input_subtitles,
    collect_reference_subtitles, discover_files, run_match,
)
from .report import print_report, print_subtitles
from .subtitles.ocr import create_engine, create_preprocessor

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="showorder",
        description="Identify episodes of Matroska rips by OCR-ing their subtitles "
                    "and matching them against reference SRT transcripts.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-n", "--max-count", type=int, help="Subtitles per file used for matching (default 5)")
    p.add_argument("-t", "--track-number", type=int, help="Use this subtitle track instead of the first English one")
    p.add_argument("-m", "--max", dest="max_distance", type=int, help="Only map best distances below this")
    p.add_argument("-w", "--workers", type=int, help="Worker processes (0 = one per CPU)")
    p.add_argument("--config", type=Path, help="Settings JSON file")
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")

    sub = p.add_subparsers(dest="command", required=True)

    lt = sub.add_parser("list-tracks", help="List the subtitle tracks of a Matroska file")
    lt.add_argument("mkv_path", type=Path)

    ls = sub.add_parser("list", help="Print the first subtitles of mkv or srt files")
    ls.add_argument("file_type", choices=["mkv", "srt"])
    ls.add_argument("input_path", type=Path)

    dp = sub.add_parser("dump", help="Write decoded bitmaps or raw blocks of a subtitle track")
    dp.add_argument("dump_type", choices=[t.value for t in DumpType])
    dp.add_argument("mkv_path", type=Path)
    dp.add_argument("output_path", type=Path)

    mt = sub.add_parser("match", help="Match mkv files against reference srt files")
    mt.add_argument("mkv_path", type=Path)
    mt.add_argument("reference_path", type=Path)
    return p


def configure_logging(verbose: bool = False, quiet: bool = False):
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _list_tracks(args, settings: dict) -> int:
    print("Found subtitle tracks:")
    for track in list_tracks(args.mkv_path):
        print(f"  {track.describe()}")
    return 0


def _list(args, settings: dict) -> int:
    count = settings['max_count']
    if args.file_type == "srt":
        print("Loading subtitles from srt files...")
        files = collect_reference_subtitles(discover_files(args.input_path, SRT_EXTENSION), count)
    else:
        print("Loading subtitles from mkv files...")
        files = collect_input_subtitles(
            discover_files(args.input_path, MKV_EXTENSION),
            create_engine(settings), count, create_preprocessor(settings),
            settings['track_number'], settings['workers'],
        )
    print_subtitles(files)
    return 0


def _dump(args, settings: dict) -> int:
    written = dump_track(
        args.mkv_path, args.output_path, DumpType(args.dump_type),
        settings['max_count'], settings['track_number'],
    )
    if written is None:
        print("No English subtitles found!")
    return 0


def _match(args, settings: dict) -> int:
    result = run_match(
        args.mkv_path, args.reference_path,
        create_engine(settings), settings['max_count'],
        preprocessor=create_preprocessor(settings),
        track_number=settings['track_number'],
        max_distance=settings['max_distance'],
        workers=settings['workers'],
    )
    if result is not None:
        print_report(result, settings['rename_style'])
    return 0


COMMANDS = {
    "list-tracks": _list_tracks,
    "list": _list,
    "dump": _dump,
    "match": _match,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    config = AppConfig(args.config)
    config.override(
        max_count=args.max_count,
        track_number=args.track_number,
        max_distance=args.max_distance,
        workers=args.workers,
    )

    try:
        return COMMANDS[args.command](args, config.settings)
    except (ShowOrderError, OSError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
