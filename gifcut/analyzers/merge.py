"""Merge candidate blocks into a gap-free, non-overlapping timeline."""

import logging
from dataclasses import replace
from typing import Literal

from gifcut.models import DEFAULT_BLOCK_COLOR, Block, TimelineError

logger = logging.getLogger(__name__)

DEFAULT_MAX_GAP_TO_BRIDGE = 1.0

ActivePolicy = Literal["first", "speech"]
ACTIVE_POLICIES: tuple[str, ...] = ("first", "speech")


def merge_blocks(
    candidates: list[Block],
    duration: float,
    max_gap_to_bridge: float = DEFAULT_MAX_GAP_TO_BRIDGE,
) -> list[Block]:
    """Resolve overlaps and gaps in a start-ordered candidate list.

    - overlapping candidate (``start < prev.end``): folded into ``prev``
    - contiguous candidate (``start == prev.end``): kept as its own block
    - gap ``<= max_gap_to_bridge``: ``prev`` is stretched over the gap and
      absorbs the candidate
    - larger gap: a silent filler block covers it

    The last block is stretched to *duration* and zero-length blocks are
    dropped. Input blocks are not mutated, and merging an already merged
    list returns an equal list.
    """
    merged: list[Block] = []

    for candidate in candidates:
        if not merged:
            merged.append(replace(candidate))
            continue

        prev = merged[-1]
        if candidate.start < prev.end:
            prev.end = max(prev.end, candidate.end)
        elif candidate.start == prev.end:
            merged.append(replace(candidate))
        elif candidate.start - prev.end <= max_gap_to_bridge:
            prev.end = max(prev.end, candidate.end)
        else:
            merged.append(Block(start=prev.end, end=candidate.start, silent=True))
            merged.append(replace(candidate))

    if not merged:
        return [Block(start=0.0, end=duration)] if duration > 0 else []

    if merged[0].start > 0:
        merged.insert(0, Block(start=0.0, end=merged[0].start, silent=True))
    if merged[-1].end < duration:
        merged[-1].end = duration

    result = [b for b in merged if b.end > b.start]
    dropped = len(merged) - len(result)
    if dropped:
        logger.debug("Dropped %d zero-length block(s)", dropped)
    return result


def label_blocks(
    blocks: list[Block],
    active_policy: ActivePolicy = "first",
) -> list[Block]:
    """Assign labels, default colours and initial ``active`` flags.

    Call once per detection run: it overwrites any user edits.

    ``"first"`` activates only the first block. ``"speech"`` activates every
    block that is not silent.
    """
    if active_policy not in ACTIVE_POLICIES:
        raise ValueError(f"Unknown active policy: {active_policy!r}")

    labelled: list[Block] = []
    for i, b in enumerate(blocks):
        if active_policy == "first":
            active = i == 0
        else:
            active = not b.silent
        labelled.append(
            replace(b, label=f"Segment {i + 1}", color=DEFAULT_BLOCK_COLOR, active=active)
        )
    return labelled


def validate_blocks(blocks: list[Block], duration: float) -> None:
    """Raise TimelineError unless *blocks* exactly tile ``[0, duration]``."""
    if not blocks:
        raise TimelineError("Timeline has no blocks")
    if blocks[0].start != 0:
        raise TimelineError(f"First block starts at {blocks[0].start}, expected 0")
    if blocks[-1].end != duration:
        raise TimelineError(
            f"Last block ends at {blocks[-1].end}, expected {duration}"
        )
    for i, b in enumerate(blocks):
        if b.end <= b.start:
            raise TimelineError(f"Block {i} has non-positive length ({b.start}-{b.end})")
        if i and b.start != blocks[i - 1].end:
            raise TimelineError(
                f"Block {i} starts at {b.start} but block {i - 1} ends at {blocks[i - 1].end}"
            )
