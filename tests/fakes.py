# tests/fakes.py
"""
Builders for synthetic Matroska files, PGS segments and VobSub SPUs, plus
an OCR stand-in. Everything here produces plain bytes so no real media or
tesseract install is needed.
"""
import struct
import zlib
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from showorder.models import Bitmap
from showorder.mkv.spec import MatroskaTag as T

UNKNOWN_SIZE = b"\x01\xff\xff\xff\xff\xff\xff\xff"


# ---------------------------------------------------------------- EBML ----

def ebml_id(tag_id: int) -> bytes:
    return tag_id.to_bytes((tag_id.bit_length() + 7) // 8, "big")


def ebml_size(size: int) -> bytes:
    for length in range(1, 9):
        if size < (1 << (7 * length)) - 1:
            return ((1 << (7 * length)) | size).to_bytes(length, "big")
    raise ValueError(f"size {size} too large")


def element(tag_id: int, body: bytes) -> bytes:
    return ebml_id(tag_id) + ebml_size(len(body)) + body


def unknown_size_element(tag_id: int, body: bytes) -> bytes:
    return ebml_id(tag_id) + UNKNOWN_SIZE + body


def uint_element(tag_id: int, value: int) -> bytes:
    return element(tag_id, value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big"))


def string_element(tag_id: int, value: str) -> bytes:
    return element(tag_id, value.encode("utf-8"))


def ebml_header() -> bytes:
    return element(T.EBML, b"".join([
        uint_element(T.EBML_VERSION, 1),
        uint_element(T.EBML_READ_VERSION, 1),
        string_element(T.DOC_TYPE, "matroska"),
        uint_element(T.DOC_TYPE_VERSION, 4),
        uint_element(T.DOC_TYPE_READ_VERSION, 2),
    ]))


def track_entry(
    number: int,
    codec_id: str,
    language: Optional[str] = None,
    codec_private: Optional[bytes] = None,
    track_type: int = 0x11,
    language_ietf: Optional[str] = None,
    name: Optional[str] = None,
    content_encodings: Optional[bytes] = None,
) -> bytes:
    children = [
        uint_element(T.TRACK_NUMBER, number),
        uint_element(T.TRACK_UID, 1000 + number),
        uint_element(T.TRACK_TYPE, track_type),
        string_element(T.CODEC_ID, codec_id),
    ]
    if language is not None:
        children.append(string_element(T.LANGUAGE, language))
    if language_ietf is not None:
        children.append(string_element(T.LANGUAGE_IETF, language_ietf))
    if name is not None:
        children.append(string_element(T.NAME, name))
    if codec_private is not None:
        children.append(element(T.CODEC_PRIVATE, codec_private))
    if content_encodings is not None:
        children.append(content_encodings)
    return element(T.TRACK_ENTRY, b"".join(children))


def content_compression(algorithm: int, settings: bytes = b"", scope: int = 1) -> bytes:
    compression = [uint_element(T.CONTENT_COMP_ALGO, algorithm)]
    if settings:
        compression.append(element(T.CONTENT_COMP_SETTINGS, settings))
    encoding = b"".join([
        uint_element(T.CONTENT_ENCODING_ORDER, 0),
        uint_element(T.CONTENT_ENCODING_SCOPE, scope),
        uint_element(T.CONTENT_ENCODING_TYPE, 0),
        element(T.CONTENT_COMPRESSION, b"".join(compression)),
    ])
    return element(T.CONTENT_ENCODINGS, element(T.CONTENT_ENCODING, encoding))


def block_body(track: int, payload: bytes, flags: int = 0x80, timecode: int = 0) -> bytes:
    return ebml_size(track) + struct.pack(">hB", timecode, flags) + payload


def simple_block(track: int, payload: bytes, flags: int = 0x80, timecode: int = 0) -> bytes:
    return element(T.SIMPLE_BLOCK, block_body(track, payload, flags, timecode))


def block_group(track: int, payload: bytes, timecode: int = 0) -> bytes:
    return element(T.BLOCK_GROUP, element(T.BLOCK, block_body(track, payload, 0x00, timecode))
                   + uint_element(T.BLOCK_DURATION, 1000))


def cluster(blocks: Iterable[bytes], timestamp: int = 0, unknown_size: bool = False) -> bytes:
    body = uint_element(T.TIMESTAMP, timestamp) + b"".join(blocks)
    if unknown_size:
        return unknown_size_element(T.CLUSTER, body)
    return element(T.CLUSTER, body)


def mkv_bytes(
    tracks: Sequence[bytes],
    clusters: Sequence[bytes] = (),
    unknown_segment: bool = True,
    extra: bytes = b"",
) -> bytes:
    """EBML header, then a Segment holding Info, Tracks and the clusters."""
    info = element(T.INFO, uint_element(T.TIMESTAMP_SCALE, 1000000)
                   + string_element(T.MUXING_APP, "fakes"))
    body = info + element(T.TRACKS, b"".join(tracks)) + extra + b"".join(clusters)
    if unknown_segment:
        return ebml_header() + unknown_size_element(T.SEGMENT, body)
    return ebml_header() + element(T.SEGMENT, body)


def write_mkv(path: Path, tracks: Sequence[bytes], clusters: Sequence[bytes] = (), **kwargs) -> Path:
    path.write_bytes(mkv_bytes(tracks, clusters, **kwargs))
    return path


# ----------------------------------------------------------------- PGS ----

PGS_WHITE = (1, 235, 128, 128, 255)  # index, Y, Cr, Cb, alpha


def pgs_segment(segment_type: int, body: bytes) -> bytes:
    return struct.pack(">BH", segment_type, len(body)) + body


def pgs_palette(entries: Iterable[Tuple[int, int, int, int, int]]) -> bytes:
    return pgs_segment(0x14, b"\x00\x00" + b"".join(bytes(e) for e in entries))


def pgs_rle(rows: Iterable[Iterable[Tuple[int, int]]]) -> bytes:
    """Encode rows of (palette index, run length) into PGS RLE."""
    out = bytearray()
    for row in rows:
        for color, run in row:
            if color == 0:
                if run < 64:
                    out += bytes([0x00, run])
                else:
                    out += bytes([0x00, 0x40 | (run >> 8), run & 0xFF])
            elif run == 1:
                out.append(color)
            elif run < 64:
                out += bytes([0x00, 0x80 | run, color])
            else:
                out += bytes([0x00, 0xC0 | (run >> 8), run & 0xFF, color])
        out += b"\x00\x00"
    return bytes(out)


def pgs_object(width: int, height: int, rle: bytes, object_id: int = 0) -> bytes:
    body = (struct.pack(">HBB", object_id, 0, 0xC0)
            + (len(rle) + 4).to_bytes(3, "big")
            + struct.pack(">HH", width, height)
            + rle)
    return pgs_segment(0x15, body)


def pgs_end() -> bytes:
    return pgs_segment(0x80, b"")


def pgs_block(width: int, height: int = 2, color: int = 1) -> bytes:
    """A display set whose object is `height` solid rows of one palette index."""
    rows = [[(color, width)] for _ in range(height)]
    return (pgs_segment(0x16, bytes(11))
            + pgs_palette([PGS_WHITE])
            + pgs_object(width, height, pgs_rle(rows))
            + pgs_end())


# -------------------------------------------------------------- VobSub ----

IDX_PALETTE = [
    "000000", "ffffff", "808080", "202020", "ff0000", "00ff00", "0000ff", "ffff00",
    "00ffff", "ff00ff", "101010", "c0c0c0", "400000", "004000", "000040", "404040",
]


def idx_text(width: int = 720, height: int = 480, palette: Sequence[str] = IDX_PALETTE) -> bytes:
    return (
        "# VobSub index file, v7 (do not modify this line!)\n"
        f"size: {width}x{height}\n"
        "org: 0, 0\n"
        "scale: 100%, 100%\n"
        "alpha: 100%\n"
        f"palette: {', '.join(palette)}\n"
        "id: en, index: 0\n"
    ).encode("utf-8")


def u12_pair(first: int, second: int) -> bytes:
    return bytes([first >> 4, ((first & 0x0F) << 4) | (second >> 8), second & 0xFF])


class NibbleWriter:
    def __init__(self):
        self.nibbles: List[int] = []

    def run(self, length: int, color: int):
        """Append one run code; a length of 0 fills the rest of the line."""
        value = (length << 2) | color
        if 1 <= length < 4:
            width = 1
        elif 4 <= length < 16:
            width = 2
        elif 16 <= length < 64:
            width = 3
        else:
            width = 4
        for shift in range((width - 1) * 4, -1, -4):
            self.nibbles.append((value >> shift) & 0x0F)

    def end_line(self):
        if len(self.nibbles) % 2:
            self.nibbles.append(0)

    def to_bytes(self) -> bytes:
        nibbles = self.nibbles + [0] * (len(self.nibbles) % 2)
        return bytes((nibbles[i] << 4) | nibbles[i + 1] for i in range(0, len(nibbles), 2))


def spu_field(lines: Iterable[Iterable[Tuple[int, int]]]) -> bytes:
    """Encode lines of (run length, color) runs into one field."""
    writer = NibbleWriter()
    for line in lines:
        for length, color in line:
            writer.run(length, color)
        writer.end_line()
    return writer.to_bytes()


def solid_field(line_count: int, color: int) -> bytes:
    """Every line is a single fill-to-end run."""
    return bytes([0x00, color & 0x03]) * line_count


def spu_packet(
    width: int,
    height: int,
    even: bytes,
    odd: bytes,
    colors: Tuple[int, int, int, int] = (0, 1, 2, 3),
    alphas: Tuple[int, int, int, int] = (15, 15, 15, 0),
    x1: int = 0,
    y1: int = 0,
    extra_commands: bytes = b"",
) -> bytes:
    region = even + odd
    data_packet_end = 4 + len(region)
    commands = (
        extra_commands
        + b"\x00"
        + b"\x03" + bytes([(colors[0] << 4) | colors[1], (colors[2] << 4) | colors[3]])
        + b"\x04" + bytes([(alphas[0] << 4) | alphas[1], (alphas[2] << 4) | alphas[3]])
        + b"\x05" + u12_pair(x1, x1 + width - 1) + u12_pair(y1, y1 + height - 1)
        + b"\x06" + struct.pack(">HH", 4, 4 + len(even))
        + b"\x01"
        + b"\xff"
    )
    control = struct.pack(">HH", 0, data_packet_end) + commands
    body = struct.pack(">H", data_packet_end) + region + control
    return struct.pack(">H", len(body) + 2) + body


def vob_block(width: int, height: int = 2, color: int = 1) -> bytes:
    return spu_packet(
        width, height,
        solid_field((height + 1) // 2, color),
        solid_field(height // 2, color),
    )


# ----------------------------------------------------------------- OCR ----

class FakeOcr:
    """
    Scripted OCR: the recognised text is looked up by bitmap width.

    Plain attributes only, so instances pickle into worker processes.
    """

    def __init__(self, texts_by_width: Dict[int, str], fail_widths: Iterable[int] = ()):
        self.texts_by_width = dict(texts_by_width)
        self.fail_widths = set(fail_widths)
        self.calls: List[Tuple[int, int]] = []

    def recognize(self, bitmap: Bitmap) -> str:
        from showorder.errors import OcrFailure

        self.calls.append((bitmap.width, bitmap.height))
        if bitmap.width in self.fail_widths:
            raise OcrFailure(f"scripted failure for width {bitmap.width}")
        return self.texts_by_width.get(bitmap.width, "")


def compress(data: bytes) -> bytes:
    return zlib.compress(data)


# ------------------------------------------------------------ Episodes ----

# Four cartoon episodes, three cues each. Reference file p<n> holds EPISODES[n - 1].
EPISODES = [
    [
        "I'm Sinbad the sailor, so hearty and hale.",
        "I live on an island on the back of a whale.",
        "It's lord and its master is this handsome bloke!",
    ],
    [
        "Who's the most phenomenal, extraordinary fellow?",
        "How do you like that, stooges?",
        "On one of my travels I ran into this.",
    ],
    [
        "Oh, oh! What happened?",
        "Let me go! Let me go! Let me go!",
        "No, no, no! Don't drop me now!",
    ],
    [
        "Whoa! What's this?",
        "Hey, let me down, you big overgrown canary!",
        "What are you doing, taking me for a ride or something?",
    ],
]

# Input title -> reference number it holds
INPUT_EPISODES = {
    "Title T00-1.mkv": 3,
    "Title T01-2.mkv": 2,
    "Title T02-3.mkv": 4,
    "Title T03-4.mkv": 1,
}


def cue_width(episode: int, cue: int) -> int:
    """Every scripted subtitle bitmap gets a width unique to its text."""
    return 40 + episode * 10 + cue


def srt_text(cues: Iterable[str]) -> str:
    blocks = []
    for i, text in enumerate(cues, start=1):
        blocks.append(f"{i}\n00:00:{i:02d},000 --> 00:00:{i:02d},900\n{text}\n")
    return "\n".join(blocks)
