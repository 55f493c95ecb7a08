"""Build candidate speech blocks from normalized silence ranges."""

import logging

from gifcut.models import Block, TimeRange

logger = logging.getLogger(__name__)

DEFAULT_NON_SILENCE_BUFFER = 0.3
DEFAULT_MIN_NON_SILENCE_DURATION = 0.3


def build_candidate_blocks(
    ranges: list[TimeRange],
    duration: float,
    non_silence_buffer: float = DEFAULT_NON_SILENCE_BUFFER,
    min_non_silence_duration: float = DEFAULT_MIN_NON_SILENCE_DURATION,
) -> list[Block]:
    """Turn silence ranges into padded non-silent candidate blocks.

    *ranges* must already be normalized (sorted, non-overlapping, clamped).
    Each non-silent stretch between two silences is padded by
    *non_silence_buffer* on both sides and clamped to ``[0, duration]``.
    Candidates shorter than *min_non_silence_duration* after padding are
    dropped. Padding can make neighbouring candidates overlap; that is left
    for :func:`gifcut.analyzers.merge.merge_blocks` to resolve.
    """
    if not ranges:
        return [Block(start=0.0, end=duration)]

    blocks: list[Block] = []
    last_end = 0.0

    for r in ranges:
        # Silence starting where the previous one ended leaves nothing to keep
        if r.start > last_end:
            start = max(0.0, last_end - non_silence_buffer)
            end = min(duration, r.start + non_silence_buffer)
            if end - start >= min_non_silence_duration:
                blocks.append(Block(start=start, end=end))
            else:
                logger.debug("Dropping short candidate %.3f-%.3f", start, end)
        last_end = r.end

    if last_end < duration:
        start = max(0.0, last_end - non_silence_buffer)
        if duration - start >= min_non_silence_duration:
            blocks.append(Block(start=start, end=duration))
        elif blocks:
            blocks[-1].end = duration

    if not blocks:
        # Nothing audible survived the filters
        return [Block(start=0.0, end=duration, silent=True)]

    if blocks[0].start > 0:
        blocks.insert(0, Block(start=0.0, end=blocks[0].start, silent=True))

    return blocks
