"""Silence detection analyzer: detector output -> labelled timeline blocks."""

import logging
from pathlib import Path

from gifcut import ffutil
from gifcut.analyzers.events import parse_silence_ranges
from gifcut.analyzers.merge import label_blocks, merge_blocks
from gifcut.analyzers.ranges import normalize_ranges
from gifcut.analyzers.segments import build_candidate_blocks
from gifcut.manifest import SilenceConfig
from gifcut.models import Block, ProbeResult

logger = logging.getLogger(__name__)


def segment_silence(text: str, duration: float, config: SilenceConfig) -> list[Block]:
    """Run the pure segmentation pipeline over raw silencedetect output.

    Returns blocks tiling ``[0, duration]``. Empty or unparsable *text*
    yields a single full-duration block.
    """
    if duration <= 0:
        raise ffutil.InvalidMediaError(f"Cannot segment media with duration {duration}")

    raw = parse_silence_ranges(text)
    ranges = normalize_ranges(raw, duration, config.min_silence_duration)
    logger.info("Detected %d silent range(s) (%d raw)", len(ranges), len(raw))

    candidates = build_candidate_blocks(
        ranges,
        duration,
        non_silence_buffer=config.non_silence_buffer,
        min_non_silence_duration=config.min_non_silence_duration,
    )
    blocks = merge_blocks(candidates, duration, config.max_gap_to_bridge)
    logger.info(
        "Built %d block(s) from %d candidate(s)", len(blocks), len(candidates)
    )
    return label_blocks(blocks, config.active_policy)


def analyze_silence(
    input_path: Path,
    config: SilenceConfig,
    probe_result: ProbeResult | None = None,
) -> list[Block]:
    """Detect silence in *input_path* and return labelled timeline blocks.

    Raises InvalidMediaError when the file has no usable video stream. A file
    without audio is treated as having no silence.
    """
    probe_result = probe_result or ffutil.probe(input_path)
    duration = probe_result.duration

    if not probe_result.has_audio:
        logger.warning("%s has no audio stream; skipping silence detection", input_path)
        return segment_silence("", duration, config)

    stderr = ffutil.run_silencedetect(
        input_path,
        threshold_db=config.threshold_db,
        min_duration=config.min_silence_duration,
    )
    return segment_silence(stderr, duration, config)
