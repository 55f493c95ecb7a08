"""Unit tests for the silence analyzer pipeline."""

import random
from pathlib import Path
from unittest.mock import patch

import pytest

from gifcut.analyzers.silence import analyze_silence, segment_silence
from gifcut.ffutil import InvalidMediaError
from gifcut.manifest import SilenceConfig
from gifcut.models import Block, ProbeResult

CONFIG = SilenceConfig()


def _make_probe(duration: float = 10.0, has_audio: bool = True) -> ProbeResult:
    return ProbeResult(
        duration=duration,
        width=1920,
        height=1080,
        fps=30.0,
        codec_video="h264",
        has_audio=has_audio,
        audio_sample_rate=44100 if has_audio else None,
        codec_audio="aac" if has_audio else None,
    )


def _spans(blocks: list[Block]) -> list[tuple[float, float]]:
    return [(b.start, b.end) for b in blocks]


def _assert_tiles(blocks: list[Block], duration: float) -> None:
    assert blocks[0].start == 0
    assert blocks[-1].end == duration
    for a, b in zip(blocks, blocks[1:]):
        assert b.start == a.end
    assert all(b.end > b.start for b in blocks)


class TestSegmentSilence:
    def test_no_silence_single_block(self):
        blocks = segment_silence("", 10.0, CONFIG)
        assert len(blocks) == 1
        assert _spans(blocks) == [(0.0, 10.0)]
        assert blocks[0].active is True
        assert blocks[0].label == "Segment 1"

    def test_garbage_text_single_block(self):
        blocks = segment_silence("frame=1\nsilence_start: oops\nsilence_start: 3\n", 10.0, CONFIG)
        assert _spans(blocks) == [(0.0, 10.0)]

    def test_middle_silence_gets_filler(self):
        text = "silence_start: 2.0\nsilence_end: 4.0\n"
        blocks = segment_silence(text, 10.0, CONFIG)
        assert _spans(blocks) == [
            (0.0, pytest.approx(2.3)),
            (pytest.approx(2.3), pytest.approx(3.7)),
            (pytest.approx(3.7), 10.0),
        ]
        assert [b.silent for b in blocks] == [False, True, False]
        assert [b.active for b in blocks] == [True, False, False]
        _assert_tiles(blocks, 10.0)

    def test_short_silence_is_bridged(self):
        text = "silence_start: 2.0\nsilence_end: 3.0\n"
        blocks = segment_silence(text, 10.0, CONFIG)
        # 2.3 -> 2.7 is within the bridge threshold
        assert _spans(blocks) == [(0.0, 10.0)]

    def test_sub_threshold_silence_ignored(self):
        text = "silence_start: 2.0\nsilence_end: 2.05\n"
        blocks = segment_silence(text, 10.0, SilenceConfig(min_silence_duration=0.1))
        assert _spans(blocks) == [(0.0, 10.0)]

    def test_speech_policy(self):
        text = "silence_start: 0\nsilence_end: 3.0\nsilence_start: 5.0\nsilence_end: 8.0\n"
        blocks = segment_silence(text, 10.0, SilenceConfig(active_policy="speech"))
        assert [b.active for b in blocks] == [not b.silent for b in blocks]
        assert blocks[0].silent

    def test_zero_duration_is_invalid(self):
        with pytest.raises(InvalidMediaError):
            segment_silence("", 0.0, CONFIG)

    def test_coverage_for_random_detector_output(self):
        rng = random.Random(1234)
        for _ in range(200):
            duration = round(rng.uniform(1.0, 60.0), 3)
            lines = []
            for _ in range(rng.randint(0, 12)):
                kind = rng.choice(["start", "end"])
                lines.append(f"[silencedetect @ 0x1] silence_{kind}: {rng.uniform(-1, duration + 2):.4f}")
            config = SilenceConfig(
                non_silence_buffer=rng.choice([0.0, 0.1, 0.3, 0.8]),
                min_non_silence_duration=rng.choice([0.0, 0.3, 1.0]),
                max_gap_to_bridge=rng.choice([0.0, 0.5, 1.0, 3.0]),
            )
            blocks = segment_silence("\n".join(lines), duration, config)
            _assert_tiles(blocks, duration)


class TestAnalyzeSilence:
    @patch("gifcut.analyzers.silence.ffutil.run_silencedetect")
    @patch("gifcut.analyzers.silence.ffutil.probe")
    def test_runs_detector_with_config(self, mock_probe, mock_detect):
        mock_probe.return_value = _make_probe(10.0)
        mock_detect.return_value = "silence_start: 2.0\nsilence_end: 4.0\n"
        config = SilenceConfig(threshold_db=-35.0, min_silence_duration=0.2)

        blocks = analyze_silence(Path("video.mp4"), config)

        mock_detect.assert_called_once_with(
            Path("video.mp4"), threshold_db=-35.0, min_duration=0.2
        )
        assert len(blocks) == 3

    @patch("gifcut.analyzers.silence.ffutil.run_silencedetect")
    def test_uses_given_probe_result(self, mock_detect):
        mock_detect.return_value = ""
        blocks = analyze_silence(Path("video.mp4"), CONFIG, probe_result=_make_probe(5.0))
        assert _spans(blocks) == [(0.0, 5.0)]

    @patch("gifcut.analyzers.silence.ffutil.run_silencedetect")
    def test_no_audio_skips_detector(self, mock_detect):
        blocks = analyze_silence(
            Path("video.mp4"), CONFIG, probe_result=_make_probe(5.0, has_audio=False)
        )
        mock_detect.assert_not_called()
        assert _spans(blocks) == [(0.0, 5.0)]

    @patch("gifcut.analyzers.silence.ffutil.run_silencedetect")
    @patch("gifcut.analyzers.silence.ffutil.probe")
    def test_invalid_file_stops_before_detection(self, mock_probe, mock_detect):
        mock_probe.side_effect = InvalidMediaError("No video stream found in video.mp4")
        with pytest.raises(InvalidMediaError):
            analyze_silence(Path("video.mp4"), CONFIG)
        mock_detect.assert_not_called()
