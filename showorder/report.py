# showorder/report.py
"""
Console report for a match run.

Sections, in order: distances per input, the mapping, unmapped reference
and input files, the final mapping (prefixed "(High Confidence) " when no
reference was picked twice) and, for high confidence runs, a rename script.
"""

import shlex
from pathlib import Path

from .matcher import MatchResult

LANGUAGE_SUFFIX = ".eng"
TARGET_EXTENSION = ".mkv"


def print_distances(result: MatchResult):
    print("Distances:")
    for input_path, distances in result.ranking.items():
        print(f"{input_path.name} :")
        for reference, distance in distances:
            print(f"  {distance} - {reference.name}")


def print_mapping(mappings: dict[Path, Path], title: str = "Results:"):
    print(title)
    for input_path, reference in mappings.items():
        print(f"  {input_path.name} -> {reference.name}")


def print_unmapped(paths: list[Path], title: str):
    if not paths:
        return
    print(title)
    for path in paths:
        print(f"  {path.name}")


def rename_target(reference: Path) -> str:
    """Episode file name for a reference: its stem without ".eng", plus ".mkv"."""
    return reference.stem.replace(LANGUAGE_SUFFIX, "") + TARGET_EXTENSION


def rename_commands(mappings: dict[Path, Path], style: str = "powershell") -> list[str]:
    """
    Build one rename command per mapped input whose name would change.

    Args:
        mappings: input path -> reference path
        style: "powershell" (Rename-Item) or "sh" (mv)
    """
    commands = []
    for input_path, reference in mappings.items():
        current = input_path.name
        target = rename_target(reference)
        if current == target:
            continue
        if style == "sh":
            commands.append(f"mv -- {shlex.quote(current)} {shlex.quote(target)}")
        else:
            commands.append(f'Rename-Item -Path "{current}" -NewName "{target}"')
    return commands


def print_rename_script(mappings: dict[Path, Path], style: str = "powershell"):
    print("Rename script:")
    for command in rename_commands(mappings, style):
        print(command)


def print_report(result: MatchResult, rename_style: str = "powershell"):
    print_distances(result)
    print_mapping(result.mappings)
    print_unmapped(result.unmapped_references, "Unmapped reference files:")
    print_unmapped(result.unmapped_inputs, "Unmapped input files:")
    prefix = "(High Confidence) " if result.high_confidence else ""
    print_mapping(result.mappings, f"{prefix}Final mapping:")
    print("")
    if result.high_confidence:
        print_rename_script(result.mappings, rename_style)


def print_subtitles(files: list[tuple[Path, list[str]]]):
    """Listing used by the `list` command: file name, then each string quoted."""
    for path, subtitles in files:
        print(f"{path.name}:")
        for subtitle in subtitles:
            print(f'  "{subtitle}"')
