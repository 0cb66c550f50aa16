from pathlib import Path

import pytest

from showorder import iter_subtitle_bitmaps, load_first_n_subtitles
from showorder.matcher import normalized_distance
from showorder.mkv import Language
from showorder.pipeline import (
    collect_input_subtitles, discover_files, fingerprint_inputs, recognize_bitmaps, run_match,
)
from showorder.srt import first_n_subtitles
from showorder.subtitles.pgs import decode_pgs_block
from tests import fakes
from tests.fakes import EPISODES, INPUT_EPISODES, cue_width

EXPECTED = {
    "Title T00-1.mkv": "p3.eng.srt",
    "Title T01-2.mkv": "p2.eng.srt",
    "Title T02-3.mkv": "p4.eng.srt",
    "Title T03-4.mkv": "p1.eng.srt",
}


def _names(mappings):
    return {k.name: v.name for k, v in mappings.items()}


@pytest.mark.parametrize("library", ["pgs_library", "vob_library"])
def test_end_to_end_pairing(library, request, reference_dir, fake_ocr, no_upscale, capsys):
    root = request.getfixturevalue(library)
    result = run_match(root, reference_dir, fake_ocr, 3, preprocessor=no_upscale, workers=1)

    assert _names(result.mappings) == EXPECTED
    assert result.high_confidence
    assert result.unmapped_references == []
    for distances in result.ranking.values():
        assert distances[0][1] == 0
        assert all(d > 0 for _, d in distances[1:])

    out = capsys.readouterr().out
    assert out.startswith("Loading subtitles from mkv files...\nLoading reference data...\nComparing subtitles...\n")
    assert '  Inspecting "Title T00-1.mkv"' in out


def test_max_distance_zero_with_differing_inputs(tmp_path, reference_dir, no_upscale):
    # OCR slightly off on every frame
    texts = {
        cue_width(episode, cue): text + " x"
        for episode, cues in enumerate(EPISODES, start=1)
        for cue, text in enumerate(cues)
    }
    root = tmp_path / "inputs"
    root.mkdir()
    for name, episode in INPUT_EPISODES.items():
        blocks = [fakes.simple_block(1, fakes.pgs_block(cue_width(episode, cue))) for cue in range(3)]
        fakes.write_mkv(root / name, [fakes.track_entry(1, "S_HDMV/PGS", "eng")], [fakes.cluster(blocks)])

    result = run_match(root, reference_dir, fakes.FakeOcr(texts), 3,
                       preprocessor=no_upscale, max_distance=0, workers=1)
    assert result.mappings == {}
    assert len(result.unmapped_inputs) == 4
    assert len(result.unmapped_references) == 4
    assert result.high_confidence


def test_worker_pool_keeps_discovery_order(pgs_library, fake_ocr, no_upscale):
    paths = discover_files(pgs_library, ".mkv")
    serial = fingerprint_inputs(paths, fake_ocr, 3, no_upscale, workers=1)
    pooled = fingerprint_inputs(paths, fake_ocr, 3, no_upscale, workers=2)
    assert pooled == serial
    assert [f.path.name for f in pooled] == sorted(INPUT_EPISODES)


def test_load_first_n_subtitles(pgs_library, fake_ocr, no_upscale):
    subtitles = load_first_n_subtitles(pgs_library / "Title T03-4.mkv", 2, fake_ocr, no_upscale)
    assert subtitles == ["im sinbad the sailor so hearty and hale", "i live on an island on the back of a whale"]


def test_ocr_failure_counts_as_empty_frame(pgs_library, no_upscale):
    texts = {cue_width(1, 0): "first", cue_width(1, 1): "second", cue_width(1, 2): "third"}
    ocr = fakes.FakeOcr(texts, fail_widths=[cue_width(1, 0)])
    subtitles = load_first_n_subtitles(pgs_library / "Title T03-4.mkv", 5, ocr, no_upscale)
    assert subtitles == ["second", "third"]


def test_no_matching_track_returns_none(tmp_path, fake_ocr):
    path = fakes.write_mkv(tmp_path / "fr.mkv", [fakes.track_entry(1, "S_HDMV/PGS", "fre")])
    assert load_first_n_subtitles(path, 3, fake_ocr) is None
    french = load_first_n_subtitles(path, 3, fake_ocr, language=Language.from_tag("fre"))
    assert french == []


def test_explicit_track_number(tmp_path, fake_ocr, no_upscale):
    width = cue_width(2, 0)
    path = fakes.write_mkv(
        tmp_path / "two.mkv",
        [fakes.track_entry(1, "S_HDMV/PGS", "eng"), fakes.track_entry(2, "S_HDMV/PGS", "fre")],
        [fakes.cluster([fakes.simple_block(1, fakes.pgs_block(cue_width(1, 0))),
                        fakes.simple_block(2, fakes.pgs_block(width))])],
    )
    assert load_first_n_subtitles(path, 1, fake_ocr, no_upscale, track_number=2) == [
        "whos the most phenomenal extraordinary fellow"
    ]


def test_unusable_files_are_dropped(tmp_path, pgs_library, fake_ocr, no_upscale):
    good = pgs_library / "Title T00-1.mkv"
    corrupt = tmp_path / "corrupt.mkv"
    corrupt.write_bytes(good.read_bytes()[:40])
    french = fakes.write_mkv(tmp_path / "french.mkv", [fakes.track_entry(1, "S_HDMV/PGS", "fre")])
    silent = fakes.write_mkv(
        tmp_path / "silent.mkv", [fakes.track_entry(1, "S_HDMV/PGS", "eng")],
        [fakes.cluster([fakes.simple_block(1, fakes.pgs_block(999))])],
    )
    collected = collect_input_subtitles([corrupt, french, silent, good], fake_ocr, 3, no_upscale, workers=1)
    assert [path for path, _ in collected] == [good]


def test_no_inputs_message(tmp_path, reference_dir, fake_ocr, capsys):
    root = tmp_path / "empty"
    root.mkdir()
    assert run_match(root, reference_dir, fake_ocr, 3, workers=1) is None
    assert "No English subtitles found!" in capsys.readouterr().out


def test_bad_blocks_are_skipped(tmp_path):
    path = fakes.write_mkv(
        tmp_path / "bad.mkv", [fakes.track_entry(1, "S_HDMV/PGS", "eng")],
        [fakes.cluster([
            fakes.simple_block(1, fakes.pgs_block(10)),
            fakes.simple_block(1, b"\x42\x00\x01\x00"),
            fakes.simple_block(1, fakes.pgs_block(20), flags=0x82),
            fakes.simple_block(1, fakes.pgs_block(30)),
        ])],
    )
    assert [b.width for b in iter_subtitle_bitmaps(path)] == [10, 30]


def test_vob_bitmaps(vob_library):
    widths = [b.width for b in iter_subtitle_bitmaps(vob_library / "Title T01-2.mkv")]
    assert widths == [cue_width(2, cue) for cue in range(3)]


def test_discover_files(tmp_path):
    for name in ["b.mkv", "a.MKV", "c.srt", "d.mkv.txt"]:
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "sub.mkv").mkdir()
    assert [p.name for p in discover_files(tmp_path, ".mkv")] == ["a.MKV", "b.mkv"]
    assert discover_files(tmp_path / "c.srt", ".srt") == [tmp_path / "c.srt"]
    with pytest.raises(FileNotFoundError):
        discover_files(tmp_path / "nope", ".mkv")


class _MultiLineOcr:
    def recognize(self, bitmap):
        return "Where are you going?\nTo the lake.\n\f"


def test_multi_line_ocr_matches_joined_cue(no_upscale):
    bitmaps = [decode_pgs_block(fakes.pgs_block(10))]
    [ocr_text] = recognize_bitmaps(bitmaps, _MultiLineOcr(), 1, no_upscale)
    srt = "1\n00:00:01,000 --> 00:00:02,000\nWhere are you going?\nTo the lake.\n"
    [cue_text] = first_n_subtitles(srt.encode(), 1)
    assert ocr_text == cue_text == "where are you going to the lake"
    assert normalized_distance(ocr_text, cue_text) == 0
