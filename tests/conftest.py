# tests/conftest.py
from pathlib import Path

import pytest

from showorder.subtitles.ocr import ImagePreprocessor, PreprocessingConfig
from tests import fakes
from tests.fakes import EPISODES, INPUT_EPISODES, cue_width, srt_text


@pytest.fixture
def fake_ocr():
    texts = {}
    for episode, cues in enumerate(EPISODES, start=1):
        for cue, text in enumerate(cues):
            texts[cue_width(episode, cue)] = text
    return fakes.FakeOcr(texts)


@pytest.fixture
def no_upscale():
    """Keep bitmap widths unchanged so the scripted OCR can key on them."""
    return ImagePreprocessor(PreprocessingConfig(min_area=0))


@pytest.fixture
def reference_dir(tmp_path: Path) -> Path:
    root = tmp_path / "reference"
    root.mkdir()
    for episode, cues in enumerate(EPISODES, start=1):
        (root / f"p{episode}.eng.srt").write_text(srt_text(cues), encoding="utf-8")
    return root


def _write_library(root: Path, track: bytes, make_block) -> Path:
    root.mkdir()
    video = fakes.track_entry(2, "V_MPEG4/ISO/AVC", "und", track_type=1)
    for name, episode in INPUT_EPISODES.items():
        blocks = [
            fakes.simple_block(1, make_block(cue_width(episode, cue)), timecode=cue * 100)
            for cue in range(len(EPISODES[episode - 1]))
        ]
        # Later cues go into an unknown-size cluster
        clusters = [
            fakes.cluster(blocks[:1]),
            fakes.cluster(blocks[1:], timestamp=1000, unknown_size=True),
        ]
        fakes.write_mkv(root / name, [video, track], clusters)
    return root


@pytest.fixture
def pgs_library(tmp_path: Path) -> Path:
    track = fakes.track_entry(1, "S_HDMV/PGS", "eng")
    return _write_library(tmp_path / "pgs", track, fakes.pgs_block)


@pytest.fixture
def vob_library(tmp_path: Path) -> Path:
    track = fakes.track_entry(1, "S_VOBSUB", "eng", codec_private=fakes.idx_text())
    return _write_library(tmp_path / "vob", track, fakes.vob_block)
