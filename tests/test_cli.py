"""Tests for the command-line entry point."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from gifcut.cli import main
from gifcut.engine import EngineResult
from gifcut.ffutil import InvalidMediaError
from gifcut.models import ProbeResult

PROBE = ProbeResult(
    duration=10.0, width=640, height=360, fps=25.0, codec_video="h264",
    has_audio=True, audio_sample_rate=48000, codec_audio="aac",
)


class TestNoCommand:
    def test_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 0
        assert "gifcut" in capsys.readouterr().out


class TestInspect:
    @patch("gifcut.cli.setup_logging")
    @patch("gifcut.cli.ffutil.probe", return_value=PROBE)
    def test_prints_metadata(self, mock_probe, mock_logging, capsys):
        main(["inspect", "clip.mp4"])
        out = capsys.readouterr().out
        assert "640x360" in out
        assert "25.000 fps" in out

    @patch("gifcut.cli.setup_logging")
    @patch("gifcut.cli.ffutil.probe", side_effect=InvalidMediaError("No video stream found in a.mp3"))
    def test_invalid_file_exits(self, mock_probe, mock_logging, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["inspect", "a.mp3"])
        assert exc.value.code == 1
        assert "No video stream" in capsys.readouterr().err


class TestDetect:
    @patch("gifcut.cli.setup_logging")
    @patch("gifcut.analyzers.silence.ffutil.run_silencedetect", return_value="silence_start: 2\nsilence_end: 4\n")
    @patch("gifcut.engine.ffutil.probe", return_value=PROBE)
    @patch("gifcut.cli.ffutil.check_ffmpeg")
    def test_writes_session(self, mock_check, mock_probe, mock_detect, mock_logging, tmp_path: Path):
        session_path = tmp_path / "blocks.json"
        main(["detect", str(tmp_path / "clip.mp4"), "--session", str(session_path), "--max-gap", "0.5"])
        data = json.loads(session_path.read_text())
        assert data["duration"] == 10.0
        assert len(data["blocks"]) == 3


class TestExport:
    @patch("gifcut.cli.setup_logging")
    def test_requires_input(self, mock_logging, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["export"])
        assert exc.value.code == 1

    @patch("gifcut.cli.setup_logging")
    @patch("gifcut.cli.export")
    @patch("gifcut.cli.ffutil.check_ffmpeg")
    def test_passes_convert_options(self, mock_check, mock_export, mock_logging, capsys):
        mock_export.return_value = EngineResult(output_path=Path("clip.gif"))
        main(["export", "clip.mp4", "--fps", "10", "--crop", "10", "10", "50", "50", "--palette"])

        manifest, session = mock_export.call_args[0]
        assert session is None
        assert manifest.output == Path("clip.gif")
        assert manifest.convert.fps == 10
        assert manifest.convert.crop.width == 50
        assert manifest.convert.palette is True
        assert "Done!" in capsys.readouterr().out

    @patch("gifcut.cli.setup_logging")
    @patch("gifcut.cli.export")
    @patch("gifcut.cli.ffutil.check_ffmpeg")
    def test_failed_export_exits(self, mock_check, mock_export, mock_logging):
        mock_export.return_value = EngineResult(
            output_path=Path("clip.gif"), status="ERROR", message="ffmpeg failed"
        )
        with pytest.raises(SystemExit) as exc:
            main(["export", "clip.mp4"])
        assert exc.value.code == 1
