# showorder/mkv/file.py
# -*- coding: utf-8 -*-
"""
Owning wrapper around an open Matroska file.

The file's scanner is shared by two consumers in turn: the track inventory
reads the head, then exactly one BlockIterator takes the scanner over for
the cluster section.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from .blocks import BlockIterator
from .ebml import WebmScanner
from .spec import MatroskaTag
from .tracks import TrackInfo, TrackInventory, read_track_inventory

logger = logging.getLogger(__name__)


class MkvFile:
    """
    A Matroska file opened for one forward pass.

    Usage:
        with MkvFile.open(path) as mkv:
            track = mkv.tracks.first_for_language(ENGLISH)
            for block in mkv.blocks(track):
                ...
    """

    def __init__(self, stream: BinaryIO, name: str = "<stream>", owns_stream: bool = False):
        self.name = name
        self._stream = stream
        self._owns_stream = owns_stream
        self._scanner = WebmScanner(stream, full_tags=[MatroskaTag.TRACK_ENTRY])
        self._inventory: Optional[TrackInventory] = None
        self._handed_off = False

    @classmethod
    def open(cls, path: Union[str, Path]) -> MkvFile:
        path = Path(path)
        return cls(open(path, "rb"), name=str(path), owns_stream=True)

    def __enter__(self) -> MkvFile:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._owns_stream:
            self._stream.close()

    @property
    def tracks(self) -> TrackInventory:
        """Subtitle track inventory, read from the file head on first access."""
        if self._inventory is None:
            if self._handed_off:
                raise RuntimeError(f"{self.name}: scanner already handed to a block iterator")
            self._inventory = read_track_inventory(self._scanner)
            logger.debug(f"{self.name}: {len(self._inventory.tracks)} subtitle track(s)")
        return self._inventory

    def blocks(self, track: Union[TrackInfo, int]) -> BlockIterator:
        """
        Hand the scanner over to a block iterator for one track.

        Raises:
            RuntimeError: the scanner was already handed off
        """
        if self._handed_off:
            raise RuntimeError(f"{self.name}: scanner already handed to a block iterator")
        self.tracks  # make sure the head has been consumed
        self._handed_off = True

        if isinstance(track, TrackInfo):
            return BlockIterator(self._scanner, track.track_number, track.compression)
        return BlockIterator(self._scanner, track)


def list_tracks(path: Union[str, Path]) -> List[TrackInfo]:
    """Enumerate the subtitle tracks of a Matroska file."""
    with MkvFile.open(path) as mkv:
        return list(mkv.tracks.tracks)
