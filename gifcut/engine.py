"""Orchestrator: detect silence blocks and export the selected ones as a GIF."""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from gifcut import ffutil
from gifcut.analyzers.silence import analyze_silence
from gifcut.editors.export import build_export_command
from gifcut.editors.timeline import TimelineSession
from gifcut.manifest import Manifest
from gifcut.models import ConvertOption, ConvertStatus, ProbeResult

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    output_path: Path
    status: str = "END"
    message: str | None = None
    blocks_total: int = 0
    blocks_exported: int = 0
    duration_original: float = 0.0
    duration_exported: float = 0.0


def trimmed_duration(total: float, option: ConvertOption) -> float:
    """Length of *total* seconds of selected footage after the output trim window."""
    start = option.start_time or 0.0
    remaining = max(0.0, total - start)
    if option.end_time is not None and option.end_time > start:
        remaining = min(remaining, option.end_time - start)
    return remaining


def detect(manifest: Manifest, probe_result: ProbeResult | None = None) -> TimelineSession:
    """Probe the input and build an editing session from its silence blocks.

    Raises InvalidMediaError before any detection runs if the file is unusable.
    """
    probe_result = probe_result or ffutil.probe(manifest.input)
    blocks = analyze_silence(manifest.input, manifest.silence, probe_result=probe_result)
    return TimelineSession(blocks, probe_result.duration, input_path=manifest.input)


def export(
    manifest: Manifest,
    session: TimelineSession | None = None,
    on_progress: Callable[[ConvertStatus], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> EngineResult:
    """Export the session's active blocks (or the whole input) to a GIF.

    Raises ValueError when a session is given but has no active blocks.
    """
    if session is not None:
        segments = session.active_segments()
        if not segments:
            raise ValueError("No active blocks selected; nothing to export")
        duration_original = session.duration
        blocks_total = len(session)
    else:
        segments = []
        duration_original = ffutil.probe(manifest.input).duration
        blocks_total = 0

    selected = sum(s.duration for s in segments) if segments else duration_original
    exported = trimmed_duration(selected, manifest.convert)
    command = build_export_command(manifest.input, segments, manifest.convert)
    status = ffutil.run_export(
        command,
        duration=exported,
        on_progress=on_progress,
        cancel_event=cancel_event,
    )

    return EngineResult(
        output_path=command.output_path,
        status=status.status,
        message=status.message,
        blocks_total=blocks_total,
        blocks_exported=len(segments),
        duration_original=duration_original,
        duration_exported=exported,
    )


def process(
    manifest: Manifest,
    on_progress: Callable[[ConvertStatus], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> EngineResult:
    """Detect silence and export every active block in one go."""
    ffutil.check_ffmpeg()
    session = detect(manifest)
    logger.info(
        "Exporting %d of %d block(s) from %s",
        len(session.active_segments()), len(session), manifest.input,
    )
    return export(manifest, session, on_progress=on_progress, cancel_event=cancel_event)
