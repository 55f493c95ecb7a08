"""FFmpeg/ffprobe subprocess helpers."""

import json
import logging
import re
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Callable

from gifcut.models import ConvertStatus, ExportCommand, ProbeResult

logger = logging.getLogger(__name__)

_FRAME_RATE_RE = re.compile(r"^(\d+)/(\d+)$")


class FFmpegNotFoundError(RuntimeError):
    pass


class InvalidMediaError(ValueError):
    """Raised when a file cannot be used: no video stream, bad fps or duration."""
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def parse_frame_rate(formula: str | None) -> float | None:
    """Parse an ffprobe rate like ``"30000/1001"``; None if malformed."""
    match = _FRAME_RATE_RE.match(formula or "")
    if not match:
        return None
    num, den = (int(g) for g in match.groups())
    if den == 0 or num == 0:
        return None
    return num / den


def probe(input_path: Path) -> ProbeResult:
    """Extract media metadata via ffprobe.

    Raises InvalidMediaError if ffprobe fails, there is no video stream, the
    frame rate is unparsable, or the duration is missing or zero.
    """
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise InvalidMediaError(f"ffprobe could not read {input_path}")
    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise InvalidMediaError(f"ffprobe returned invalid JSON for {input_path}") from e

    streams = data.get("streams", [])
    video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)

    if video_stream is None:
        raise InvalidMediaError(f"No video stream found in {input_path}")

    fps = parse_frame_rate(video_stream.get("avg_frame_rate"))
    if fps is None:
        fps = parse_frame_rate(video_stream.get("r_frame_rate"))
    if fps is None:
        raise InvalidMediaError(f"Unparsable frame rate in {input_path}")

    fmt = data.get("format", {})
    try:
        duration = float(fmt.get("duration") or 0)
    except ValueError:
        duration = 0.0
    if duration <= 0:
        raise InvalidMediaError(f"No usable duration for {input_path}")

    return ProbeResult(
        duration=duration,
        width=int(video_stream.get("width") or 0),
        height=int(video_stream.get("height") or 0),
        fps=fps,
        codec_video=video_stream.get("codec_name", ""),
        size=int(fmt.get("size") or 0),
        has_audio=audio_stream is not None,
        audio_sample_rate=int(audio_stream["sample_rate"]) if audio_stream and audio_stream.get("sample_rate") else None,
        codec_audio=audio_stream.get("codec_name") if audio_stream else None,
    )


def inspect_file(input_path: Path) -> ProbeResult | None:
    """Probe *input_path*, returning None (and logging why) if it is unusable."""
    logger.info("Inspecting file: %s", input_path)
    try:
        return probe(input_path)
    except InvalidMediaError as e:
        logger.error("Input file is not a usable video: %s", e)
        return None


def run_silencedetect(input_path: Path, threshold_db: float, min_duration: float) -> str:
    """Run FFmpeg silencedetect and return its stderr text."""
    cmd = [
        "ffmpeg",
        "-hide_banner",
        "-i", str(input_path),
        "-af", f"silencedetect=noise={threshold_db}dB:d={min_duration}",
        "-f", "null", "-",
    ]
    logger.info("Running silencedetect on %s", input_path)
    result = subprocess.run(cmd, capture_output=True, text=True)

    if result.returncode != 0 and not result.stderr:
        raise RuntimeError(
            f"ffmpeg silencedetect failed (rc={result.returncode}) with no output"
        )
    if result.returncode != 0:
        logger.warning(
            "silencedetect exited with rc=%d; using partial output", result.returncode
        )
    return result.stderr


def _parse_progress_seconds(line: str) -> float | None:
    """Return the output position in seconds from a ``-progress`` line."""
    key, _, value = line.strip().partition("=")
    if key not in ("out_time_us", "out_time_ms") or not value.isdigit():
        return None
    # ffmpeg reports microseconds under both keys
    return int(value) / 1_000_000


def run_export(
    command: ExportCommand,
    duration: float | None = None,
    on_progress: Callable[[ConvertStatus], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> ConvertStatus:
    """Execute an export command, reporting progress until it finishes.

    Setting *cancel_event* kills the ffmpeg process; the returned status is
    then ``CANCELED``, unless ffmpeg had already finished successfully.
    """

    def _report(status: ConvertStatus) -> None:
        if on_progress:
            on_progress(status)

    argv = command.argv()
    # Global options must precede the first input
    argv[1:1] = ["-hide_banner", "-nostats", "-progress", "pipe:1"]
    logger.info("Command: %s", " ".join(argv))

    proc = subprocess.Popen(
        argv,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    _report(ConvertStatus(status="PROCESSING", progress=0.0))

    stderr_chunks: list[str] = []
    stderr_thread = threading.Thread(
        target=lambda: stderr_chunks.append(proc.stderr.read()), daemon=True
    )
    stderr_thread.start()

    watcher = None
    killed = threading.Event()
    if cancel_event is not None:
        def _watch() -> None:
            while proc.poll() is None:
                if cancel_event.wait(0.2):
                    proc.kill()
                    killed.set()
                    return
        watcher = threading.Thread(target=_watch, daemon=True)
        watcher.start()

    for line in proc.stdout:
        seconds = _parse_progress_seconds(line)
        if seconds is not None and duration:
            percent = min(100.0, seconds / duration * 100)
            _report(ConvertStatus(status="PROCESSING", progress=round(percent, 1)))

    returncode = proc.wait()
    stderr_thread.join(timeout=5)
    if watcher is not None:
        watcher.join(timeout=1)

    # A cancel that arrives after ffmpeg exited cleanly still yields the GIF
    canceled = cancel_event is not None and cancel_event.is_set() and returncode != 0
    if killed.is_set() or canceled:
        logger.info("Convert has been cancelled.")
        status = ConvertStatus(status="CANCELED", message="Convert has been cancelled.")
    elif returncode != 0:
        stderr = "".join(stderr_chunks)
        logger.error("Cannot process video (rc=%d): %s", returncode, stderr[-500:])
        status = ConvertStatus(
            status="ERROR", message=f"ffmpeg failed: {stderr[-500:]}" if stderr else f"ffmpeg exited with {returncode}"
        )
    else:
        logger.info("Finished processing %s", command.output_path)
        status = ConvertStatus(status="END", progress=100.0)

    _report(status)
    return status
