# showorder/matcher.py
"""
Nearest-reference matching by edit distance.

Every input fingerprint is compared with every reference fingerprint. Both
strings are first cut to the shorter one's length so that a reference with
more (or fewer) cues than the input is not penalised for the difference.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from rapidfuzz.distance import Levenshtein

from .errors import NoInputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fingerprint:
    """First N sanitised subtitle strings of one file, joined by spaces."""

    path: Path
    text: str

    @classmethod
    def from_subtitles(cls, path: Path, subtitles: list[str]) -> "Fingerprint":
        return cls(Path(path), " ".join(subtitles))


@dataclass
class MatchResult:
    """Outcome of matching a set of inputs against a set of references."""

    ranking: dict[Path, list[tuple[Path, int]]]
    mappings: dict[Path, Path] = field(default_factory=dict)
    unmapped_inputs: list[Path] = field(default_factory=list)
    unmapped_references: list[Path] = field(default_factory=list)
    duplicates: dict[Path, list[Path]] = field(default_factory=dict)

    @property
    def high_confidence(self) -> bool:
        return not self.duplicates


def normalized_distance(first: str, second: str) -> int:
    """Levenshtein distance after truncating both strings to the shorter length."""
    length = min(len(first), len(second))
    return Levenshtein.distance(first[:length], second[:length])


def compute_distances(
    inputs: list[Fingerprint], references: list[Fingerprint]
) -> dict[Path, list[tuple[Path, int]]]:
    """
    Rank every reference for every input.

    Returns:
        input path -> [(reference path, distance), ...] sorted ascending;
        ties keep reference discovery order
    """
    ranking: dict[Path, list[tuple[Path, int]]] = {}
    for item in inputs:
        distances = [
            (reference.path, normalized_distance(item.text, reference.text))
            for reference in references
        ]
        distances.sort(key=lambda pair: pair[1])
        ranking[item.path] = distances
    return ranking


def build_mapping(
    ranking: dict[Path, list[tuple[Path, int]]],
    references: list[Path],
    max_distance: int | None = None,
) -> MatchResult:
    """
    Choose the best reference for each input.

    Args:
        ranking: Output of compute_distances
        references: All reference paths in discovery order
        max_distance: If set, only a best distance strictly below it is mapped

    Raises:
        NoInputs: ranking is empty
    """
    if not ranking:
        raise NoInputs("No input files to match")

    result = MatchResult(ranking=ranking)
    picked_by: dict[Path, list[Path]] = {}

    for input_path, distances in ranking.items():
        if not distances:
            result.unmapped_inputs.append(input_path)
            continue
        best_path, best_distance = distances[0]
        if max_distance is not None and best_distance >= max_distance:
            logger.debug(
                f"{input_path.name}: best distance {best_distance} is not below {max_distance}"
            )
            result.unmapped_inputs.append(input_path)
            continue
        result.mappings[input_path] = best_path
        picked_by.setdefault(best_path, []).append(input_path)

    for reference in references:
        pickers = picked_by.get(reference)
        if not pickers:
            result.unmapped_references.append(reference)
        elif len(pickers) > 1:
            result.duplicates[reference] = pickers

    return result


def match(
    inputs: list[Fingerprint],
    references: list[Fingerprint],
    max_distance: int | None = None,
) -> MatchResult:
    """Rank and map inputs against references in one call."""
    if not inputs:
        raise NoInputs("No input files to match")
    ranking = compute_distances(inputs, references)
    return build_mapping(ranking, [reference.path for reference in references], max_distance)
