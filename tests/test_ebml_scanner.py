import io

import pytest

from showorder.errors import MalformedContainer
from showorder.mkv.ebml import (
    TagKind, WebmScanner, decode_children, decode_element_id, decode_vint,
)
from showorder.mkv.spec import DataType, MatroskaTag as T, get_data_type, tag_name
from tests import fakes


def _events(data: bytes, full_tags=()):
    return [(e.kind, e.tag_id) for e in WebmScanner(io.BytesIO(data), full_tags)]


def test_decode_vint_masks_marker():
    assert decode_vint(b"\x81") == (1, 1)
    assert decode_vint(b"\x40\x02") == (2, 2)
    assert decode_vint(b"\x10\x00\x01\x00") == (256, 4)


def test_decode_vint_all_ones_is_unknown():
    assert decode_vint(b"\xff") == (None, 1)
    assert decode_vint(fakes.UNKNOWN_SIZE) == (None, 8)


def test_decode_vint_rejects_zero_lead_byte():
    with pytest.raises(MalformedContainer):
        decode_vint(b"\x00\x01")


def test_decode_vint_truncated():
    with pytest.raises(MalformedContainer):
        decode_vint(b"\x40")


def test_decode_element_id_keeps_marker():
    assert decode_element_id(b"\x1a\x45\xdf\xa3") == (T.EBML, 4)
    assert decode_element_id(b"\xae") == (T.TRACK_ENTRY, 1)


def test_unknown_ids_are_binary():
    assert get_data_type(0x4321) is DataType.BINARY
    assert tag_name(0x4321) == "0x4321"
    assert tag_name(T.CLUSTER) == "CLUSTER"


def test_streams_masters_as_start_and_end():
    data = fakes.element(T.TRACKS, fakes.track_entry(1, "S_HDMV/PGS", "eng"))
    events = _events(data)
    assert events[0] == (TagKind.START, T.TRACKS)
    assert events[1] == (TagKind.START, T.TRACK_ENTRY)
    assert (TagKind.FULL, T.CODEC_ID) in events
    assert events[-2:] == [(TagKind.END, T.TRACK_ENTRY), (TagKind.END, T.TRACKS)]


def test_full_tags_are_materialised():
    data = fakes.element(T.TRACKS, fakes.track_entry(3, "S_VOBSUB", "fre", codec_private=b"idx"))
    scanner = WebmScanner(io.BytesIO(data), full_tags=[T.TRACK_ENTRY])
    events = list(scanner)
    assert [(e.kind, e.tag_id) for e in events] == [
        (TagKind.START, T.TRACKS),
        (TagKind.FULL, T.TRACK_ENTRY),
        (TagKind.END, T.TRACKS),
    ]
    entry = events[1].tag
    assert entry.data_type is DataType.MASTER
    assert entry.find_value(T.TRACK_NUMBER) == 3
    assert entry.find_value(T.CODEC_ID) == "S_VOBSUB"
    assert entry.find_value(T.LANGUAGE) == "fre"
    assert entry.find_value(T.CODEC_PRIVATE) == b"idx"
    assert entry.find_value(T.NAME, "none") == "none"


def test_unknown_elements_pass_through():
    data = fakes.element(0x4321, b"xyz")
    events = list(WebmScanner(io.BytesIO(data)))
    assert len(events) == 1
    assert events[0].kind is TagKind.FULL
    assert events[0].tag.value == b"xyz"


def test_unknown_size_cluster_closed_by_next_cluster():
    data = fakes.unknown_size_element(
        T.SEGMENT,
        fakes.cluster([fakes.simple_block(1, b"a")], unknown_size=True)
        + fakes.cluster([fakes.simple_block(1, b"b")]),
    )
    events = _events(data)
    assert events == [
        (TagKind.START, T.SEGMENT),
        (TagKind.START, T.CLUSTER),
        (TagKind.FULL, T.TIMESTAMP),
        (TagKind.FULL, T.SIMPLE_BLOCK),
        (TagKind.END, T.CLUSTER),
        (TagKind.START, T.CLUSTER),
        (TagKind.FULL, T.TIMESTAMP),
        (TagKind.FULL, T.SIMPLE_BLOCK),
        (TagKind.END, T.CLUSTER),
        (TagKind.END, T.SEGMENT),
    ]


def test_unknown_size_masters_close_at_end_of_stream():
    data = fakes.unknown_size_element(
        T.SEGMENT, fakes.cluster([fakes.simple_block(1, b"a")], unknown_size=True)
    )
    events = _events(data)
    assert events[-2:] == [(TagKind.END, T.CLUSTER), (TagKind.END, T.SEGMENT)]


def test_unknown_size_master_closes_with_known_size_ancestor():
    inner = fakes.cluster([fakes.simple_block(1, b"a")], unknown_size=True)
    data = fakes.element(T.SEGMENT, inner) + fakes.element(0x4321, b"tail")
    events = _events(data)
    assert events[-3:] == [
        (TagKind.END, T.CLUSTER),
        (TagKind.END, T.SEGMENT),
        (TagKind.FULL, 0x4321),
    ]


def test_position_tracks_consumed_bytes():
    data = fakes.uint_element(T.TRACK_NUMBER, 7) + fakes.uint_element(T.TRACK_TYPE, 0x11)
    scanner = WebmScanner(io.BytesIO(data))
    next(scanner)
    assert scanner.position == 3
    next(scanner)
    assert scanner.position == len(data)


def test_truncated_stream_error_is_sticky():
    data = fakes.mkv_bytes(
        [fakes.track_entry(1, "S_HDMV/PGS", "eng")],
        [fakes.cluster([fakes.simple_block(1, b"x" * 50)])],
        unknown_segment=False,
    )
    scanner = WebmScanner(io.BytesIO(data[:-20]))
    with pytest.raises(MalformedContainer) as first:
        for _ in scanner:
            pass
    with pytest.raises(MalformedContainer) as second:
        next(scanner)
    assert second.value is first.value


def test_child_overrunning_parent_is_malformed():
    body = fakes.uint_element(T.TRACK_NUMBER, 1)
    # Parent claims fewer bytes than its child needs
    data = fakes.ebml_id(T.TRACK_ENTRY) + fakes.ebml_size(len(body) - 1) + body
    with pytest.raises(MalformedContainer):
        list(WebmScanner(io.BytesIO(data)))


def test_decode_children_rejects_unknown_size():
    body = fakes.unknown_size_element(T.VIDEO, b"")
    with pytest.raises(MalformedContainer):
        decode_children(body)


def test_decode_children_nested():
    body = fakes.element(T.VIDEO, fakes.uint_element(T.PIXEL_WIDTH, 1920))
    [video] = decode_children(body)
    assert video.find_value(T.PIXEL_WIDTH) == 1920
