"""Editing session over a detected block timeline."""

import bisect
import json
import logging
from dataclasses import asdict, replace
from pathlib import Path

from gifcut.analyzers.merge import validate_blocks
from gifcut.models import Block, TimeRange, TimelineError

logger = logging.getLogger(__name__)


class TimelineSession:
    """Owns the block list for one input file while the user edits it.

    Every mutating method validates the result before committing it, so a
    rejected edit leaves the session unchanged.
    """

    def __init__(self, blocks: list[Block], duration: float, input_path: Path | None = None):
        validate_blocks(blocks, duration)
        self._blocks = [replace(b) for b in blocks]
        self.duration = duration
        self.input_path = Path(input_path) if input_path else None
        self.current_index = -1

    @property
    def blocks(self) -> list[Block]:
        """A copy of the blocks; edit through the session methods."""
        return [replace(b) for b in self._blocks]

    def __len__(self) -> int:
        return len(self._blocks)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._blocks):
            raise TimelineError(f"Block index {index} out of range (0-{len(self._blocks) - 1})")

    def _commit(self, blocks: list[Block]) -> None:
        validate_blocks(blocks, self.duration)
        self._blocks = blocks
        if self.current_index >= len(blocks):
            self.current_index = len(blocks) - 1

    # -- per-block attributes ------------------------------------------------

    def set_active(self, index: int, active: bool) -> Block:
        self._check_index(index)
        self._blocks[index].active = active
        return replace(self._blocks[index])

    def toggle(self, index: int) -> Block:
        """Flip whether block *index* is exported, and select it."""
        self._check_index(index)
        self.current_index = index
        return self.set_active(index, not self._blocks[index].active)

    def set_label(self, index: int, label: str) -> Block:
        self._check_index(index)
        self._blocks[index].label = label
        return replace(self._blocks[index])

    def set_color(self, index: int, color: str) -> Block:
        self._check_index(index)
        self._blocks[index].color = color
        return replace(self._blocks[index])

    def edit(
        self,
        index: int,
        active: bool | None = None,
        label: str | None = None,
        color: str | None = None,
        end: float | None = None,
    ) -> Block:
        """Apply several changes to block *index* as a single edit.

        If any part is rejected (for example an out-of-range *end*) none of
        the changes are applied.
        """
        self._check_index(index)
        blocks = [replace(b) for b in self._blocks]
        if end is not None:
            self._move_boundary(blocks, index, end)
        block = blocks[index]
        if active is not None:
            block.active = active
        if label is not None:
            block.label = label
        if color is not None:
            block.color = color
        self._commit(blocks)
        return replace(self._blocks[index])

    # -- structural edits ----------------------------------------------------

    def merge_with_next(self, index: int) -> Block:
        """Absorb block ``index + 1`` into block *index*.

        The merged block keeps the left block's label, colour and active flag.
        """
        self._check_index(index)
        if index == len(self._blocks) - 1:
            raise TimelineError("Cannot merge the last block with a following block")
        blocks = [replace(b) for b in self._blocks]
        left, right = blocks[index], blocks[index + 1]
        left.end = right.end
        left.silent = left.silent and right.silent
        del blocks[index + 1]
        self._commit(blocks)
        logger.debug("Merged blocks %d and %d", index, index + 1)
        return replace(self._blocks[index])

    def resize(self, index: int, end: float) -> list[Block]:
        """Move the boundary between block *index* and its right neighbour."""
        self._check_index(index)
        blocks = [replace(b) for b in self._blocks]
        self._move_boundary(blocks, index, end)
        self._commit(blocks)
        return [replace(self._blocks[index]), replace(self._blocks[index + 1])]

    @staticmethod
    def _move_boundary(blocks: list[Block], index: int, end: float) -> None:
        if index == len(blocks) - 1:
            raise TimelineError("The last block always ends at the media duration")
        left, right = blocks[index], blocks[index + 1]
        if not left.start < end < right.end:
            raise TimelineError(
                f"Boundary {end} must fall strictly between {left.start} and {right.end}"
            )
        left.end = end
        right.start = end

    # -- selection -----------------------------------------------------------

    @property
    def current(self) -> Block | None:
        if self.current_index < 0:
            return None
        return replace(self._blocks[self.current_index])

    def select(self, index: int) -> Block:
        self._check_index(index)
        self.current_index = index
        return replace(self._blocks[index])

    def select_next(self) -> Block:
        return self.select(min(len(self._blocks) - 1, self.current_index + 1))

    def select_previous(self) -> Block:
        return self.select(max(0, self.current_index - 1))

    # -- queries -------------------------------------------------------------

    def block_index_at(self, time: float) -> int | None:
        """Index of the block containing *time*, or None outside the media."""
        if time < 0 or time > self.duration:
            return None
        starts = [b.start for b in self._blocks]
        index = bisect.bisect_right(starts, time) - 1
        return min(index, len(self._blocks) - 1)

    def next_playable_time(self, time: float) -> float:
        """Where playback should be when it reaches *time* with silence skipping.

        Inside an active block this is *time* itself; inside an inactive block
        it is the start of the next active block, or the media duration if
        none follows.
        """
        index = self.block_index_at(time)
        if index is None or self._blocks[index].active:
            return time
        for b in self._blocks[index + 1:]:
            if b.active:
                return b.start
        return self.duration

    def active_segments(self) -> list[TimeRange]:
        """Time ranges of the active blocks, in timeline order."""
        return [TimeRange(start=b.start, end=b.end) for b in self._blocks if b.active]

    # -- persistence ---------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "input": str(self.input_path) if self.input_path else None,
            "duration": self.duration,
            "blocks": [asdict(b) for b in self._blocks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimelineSession":
        if "duration" not in data or "blocks" not in data:
            raise ValueError("Session data must contain 'duration' and 'blocks'")
        blocks = [Block(**b) for b in data["blocks"]]
        return cls(blocks, float(data["duration"]), data.get("input"))

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: str | Path) -> "TimelineSession":
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
