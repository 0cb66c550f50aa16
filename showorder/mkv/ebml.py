# showorder/mkv/ebml.py
# -*- coding: utf-8 -*-
"""
Forward-only EBML tag scanner.

The scanner reads a Matroska stream strictly front to back and yields one
TagEvent per element:

* master elements stream as a START event, their children, then an END event;
* master ids the caller asks for are materialised instead and arrive as a
  single FULL event whose value is the list of child DataTags;
* every other element arrives as a FULL event with its decoded payload.

Nothing is buffered beyond the element currently being decoded, so a Cluster
of any size costs only the memory of its largest block.
"""
from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Iterable, Iterator, List, Optional, Tuple

from ..errors import MalformedContainer
from .spec import DataType, MatroskaTag, SEGMENT_CHILDREN, get_data_type, tag_name

logger = logging.getLogger(__name__)

MAX_ID_LENGTH = 4
MAX_SIZE_LENGTH = 8


def vint_length(first_byte: int, max_length: int) -> int:
    """Number of bytes in a vint, derived from the leading zero bits."""
    mask = 0x80
    for length in range(1, max_length + 1):
        if first_byte & mask:
            return length
        mask >>= 1
    return 0


def decode_element_id(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Decode an element id starting at data[offset].

    Returns:
        (element_id, length) with the length marker kept in the id
    """
    if offset >= len(data):
        raise MalformedContainer(f"Missing element id at offset {offset}")
    length = vint_length(data[offset], MAX_ID_LENGTH)
    if length == 0:
        raise MalformedContainer(
            f"Invalid element id lead byte 0x{data[offset]:02X} at offset {offset}"
        )
    if offset + length > len(data):
        raise MalformedContainer(f"Truncated element id at offset {offset}")
    return int.from_bytes(data[offset:offset + length], "big"), length


def decode_vint(data: bytes, offset: int = 0) -> Tuple[Optional[int], int]:
    """
    Decode an element size (or a block track number) starting at data[offset].

    Returns:
        (value, length); value is None for the reserved all-ones "unknown size"
    """
    if offset >= len(data):
        raise MalformedContainer(f"Missing vint at offset {offset}")
    length = vint_length(data[offset], MAX_SIZE_LENGTH)
    if length == 0:
        raise MalformedContainer(
            f"Invalid vint lead byte 0x{data[offset]:02X} at offset {offset}"
        )
    if offset + length > len(data):
        raise MalformedContainer(f"Truncated vint at offset {offset}")
    raw = int.from_bytes(data[offset:offset + length], "big")
    value_bits = 7 * length
    value = raw & ((1 << value_bits) - 1)
    if value == (1 << value_bits) - 1:
        return None, length
    return value, length


def decode_value(data_type: DataType, body: bytes, tag_id: int = 0):
    """Decode a non-master element payload according to its data type."""
    if data_type is DataType.UINT:
        if len(body) > 8:
            raise MalformedContainer(f"{tag_name(tag_id)}: uint wider than 8 bytes")
        return int.from_bytes(body, "big")
    if data_type is DataType.INT:
        if len(body) > 8:
            raise MalformedContainer(f"{tag_name(tag_id)}: int wider than 8 bytes")
        return int.from_bytes(body, "big", signed=True)
    if data_type is DataType.FLOAT:
        if len(body) == 0:
            return 0.0
        if len(body) == 4:
            return struct.unpack(">f", body)[0]
        if len(body) == 8:
            return struct.unpack(">d", body)[0]
        raise MalformedContainer(f"{tag_name(tag_id)}: float of {len(body)} bytes")
    if data_type is DataType.UTF8:
        return body.rstrip(b"\x00").decode("utf-8", errors="replace")
    return bytes(body)


@dataclass
class DataTag:
    """
    A fully decoded element.

    For MASTER elements the value is the list of child DataTags in document
    order; otherwise it is an int, float, str or bytes.
    """
    tag_id: int
    data_type: DataType
    value: object

    @property
    def name(self) -> str:
        return tag_name(self.tag_id)

    @property
    def children(self) -> List[DataTag]:
        if self.data_type is not DataType.MASTER:
            return []
        return self.value  # type: ignore[return-value]

    def find(self, tag_id: int) -> Optional[DataTag]:
        """First direct child with the given id, or None."""
        for child in self.children:
            if child.tag_id == tag_id:
                return child
        return None

    def find_value(self, tag_id: int, default=None):
        child = self.find(tag_id)
        return child.value if child is not None else default


def decode_children(body: bytes) -> List[DataTag]:
    """Decode a materialised master body into its child tags (recursively)."""
    children: List[DataTag] = []
    pos = 0
    while pos < len(body):
        tag_id, id_len = decode_element_id(body, pos)
        size, size_len = decode_vint(body, pos + id_len)
        if size is None:
            raise MalformedContainer(
                f"Unknown-size {tag_name(tag_id)} inside a materialised master"
            )
        start = pos + id_len + size_len
        end = start + size
        if end > len(body):
            raise MalformedContainer(
                f"{tag_name(tag_id)} overruns its parent ({end} > {len(body)})"
            )
        data_type = get_data_type(tag_id)
        chunk = body[start:end]
        if data_type is DataType.MASTER:
            value = decode_children(chunk)
        else:
            value = decode_value(data_type, chunk, tag_id)
        children.append(DataTag(tag_id, data_type, value))
        pos = end
    return children


class TagKind(Enum):
    START = "start"
    END = "end"
    FULL = "full"


@dataclass
class TagEvent:
    """One scanner event. FULL events carry the decoded tag."""
    tag_id: int
    kind: TagKind
    tag: Optional[DataTag] = None
    offset: int = 0

    @property
    def name(self) -> str:
        return tag_name(self.tag_id)


@dataclass
class _OpenMaster:
    tag_id: int
    end: Optional[int]  # absolute offset, None for unknown size


@dataclass
class _Header:
    tag_id: int
    size: Optional[int]
    offset: int


class WebmScanner:
    """
    Iterator of TagEvents over a binary stream.

    Args:
        source: Readable binary stream, positioned at the first element
        full_tags: Master ids to deliver materialised as FULL events

    Once the framing is found to be corrupt every further call to next()
    raises the same MalformedContainer.
    """

    def __init__(self, source: BinaryIO, full_tags: Iterable[int] = ()):
        self._source = source
        self._full_tags = frozenset(int(t) for t in full_tags)
        self._stack: List[_OpenMaster] = []
        self._pending: Optional[_Header] = None
        self._error: Optional[MalformedContainer] = None
        self._done = False
        try:
            self._position = source.tell()
        except (AttributeError, OSError):
            self._position = 0

    @property
    def position(self) -> int:
        """Absolute offset of the next unread byte."""
        return self._position

    def __iter__(self) -> Iterator[TagEvent]:
        return self

    def __next__(self) -> TagEvent:
        if self._error is not None:
            raise self._error
        if self._done:
            raise StopIteration
        try:
            return self._next_event()
        except MalformedContainer as e:
            self._error = e
            raise

    # ------------------------------------------------------------------

    def _next_event(self) -> TagEvent:
        if self._pending is None:
            closed = self._close_finished_master()
            if closed is not None:
                return closed

            header = self._read_header()
            if header is None:
                return self._finish()
            self._pending = header

        header = self._pending

        # An unknown-size Cluster has no end marker: it ends where the next
        # Segment-level element starts.
        if self._stack:
            top = self._stack[-1]
            if (top.end is None and top.tag_id != MatroskaTag.SEGMENT
                    and header.tag_id in SEGMENT_CHILDREN):
                self._stack.pop()
                return TagEvent(top.tag_id, TagKind.END, offset=header.offset)

        self._pending = None
        return self._open_element(header)

    def _close_finished_master(self) -> Optional[TagEvent]:
        if not self._stack:
            return None
        top = self._stack[-1]
        if top.end is None:
            # Unknown-size master: closes when a known-size ancestor does
            for ancestor in reversed(self._stack[:-1]):
                if ancestor.end is not None:
                    if self._position >= ancestor.end:
                        self._stack.pop()
                        logger.debug(
                            f"Closing unknown-size {tag_name(top.tag_id)} at offset {self._position}"
                        )
                        return TagEvent(top.tag_id, TagKind.END, offset=self._position)
                    break
            return None
        if self._position < top.end:
            return None
        if self._position > top.end:
            raise MalformedContainer(
                f"{tag_name(top.tag_id)} overran its declared end "
                f"({self._position} > {top.end})"
            )
        self._stack.pop()
        return TagEvent(top.tag_id, TagKind.END, offset=self._position)

    def _finish(self) -> TagEvent:
        if self._stack:
            top = self._stack.pop()
            if top.end is not None:
                raise MalformedContainer(
                    f"Unexpected end of stream inside {tag_name(top.tag_id)} "
                    f"at offset {self._position} (expected end at {top.end})"
                )
            return TagEvent(top.tag_id, TagKind.END, offset=self._position)
        self._done = True
        raise StopIteration

    def _open_element(self, header: _Header) -> TagEvent:
        tag_id, size = header.tag_id, header.size

        if self._stack:
            parent_end = self._stack[-1].end
            if parent_end is not None and size is not None and self._position + size > parent_end:
                raise MalformedContainer(
                    f"{tag_name(tag_id)} at offset {header.offset} overruns "
                    f"{tag_name(self._stack[-1].tag_id)}"
                )

        data_type = get_data_type(tag_id)
        if data_type is DataType.MASTER and tag_id not in self._full_tags:
            end = None if size is None else self._position + size
            self._stack.append(_OpenMaster(tag_id, end))
            return TagEvent(tag_id, TagKind.START, offset=header.offset)

        if size is None:
            raise MalformedContainer(
                f"{tag_name(tag_id)} at offset {header.offset} has unknown size"
            )
        body = self._read_exact(size)
        if data_type is DataType.MASTER:
            value = decode_children(body)
        else:
            value = decode_value(data_type, body, tag_id)
        return TagEvent(tag_id, TagKind.FULL, DataTag(tag_id, data_type, value), header.offset)

    # ------------------------------------------------------------------

    def _read_header(self) -> Optional[_Header]:
        offset = self._position
        first = self._source.read(1)
        if not first:
            return None
        self._position += 1

        id_len = vint_length(first[0], MAX_ID_LENGTH)
        if id_len == 0:
            raise MalformedContainer(
                f"Invalid element id lead byte 0x{first[0]:02X} at offset {offset}"
            )
        id_bytes = first + self._read_exact(id_len - 1)
        tag_id = int.from_bytes(id_bytes, "big")

        size_first = self._read_exact(1)
        size_len = vint_length(size_first[0], MAX_SIZE_LENGTH)
        if size_len == 0:
            raise MalformedContainer(
                f"Invalid size lead byte 0x{size_first[0]:02X} for "
                f"{tag_name(tag_id)} at offset {offset}"
            )
        size_bytes = size_first + self._read_exact(size_len - 1)
        size, _ = decode_vint(size_bytes)
        return _Header(tag_id, size, offset)

    def _read_exact(self, count: int) -> bytes:
        if count == 0:
            return b""
        data = self._source.read(count)
        if len(data) != count:
            raise MalformedContainer(
                f"Unexpected end of stream at offset {self._position + len(data)} "
                f"(wanted {count} bytes)"
            )
        self._position += count
        return data

