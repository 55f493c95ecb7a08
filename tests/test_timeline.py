"""Unit tests for the timeline editing session."""

from pathlib import Path

import pytest

from gifcut.editors.timeline import TimelineSession
from gifcut.models import Block, TimelineError, TimeRange


def _session() -> TimelineSession:
    blocks = [
        Block(0.0, 2.0, active=True, label="Segment 1"),
        Block(2.0, 4.0, label="Segment 2", silent=True),
        Block(4.0, 7.0, label="Segment 3"),
        Block(7.0, 10.0, label="Segment 4", silent=True),
    ]
    return TimelineSession(blocks, 10.0, input_path=Path("video.mp4"))


class TestConstruction:
    def test_rejects_invalid_blocks(self):
        with pytest.raises(TimelineError):
            TimelineSession([Block(0.0, 4.0), Block(5.0, 10.0)], 10.0)

    def test_blocks_are_copies(self):
        session = _session()
        session.blocks[0].active = False
        assert session.blocks[0].active is True


class TestAttributes:
    def test_toggle(self):
        session = _session()
        assert session.toggle(2).active is True
        assert session.current_index == 2
        assert session.toggle(2).active is False

    def test_set_label_and_color(self):
        session = _session()
        session.set_label(1, "Label 3")
        session.set_color(1, "#FF5252")
        block = session.blocks[1]
        assert (block.label, block.color) == ("Label 3", "#FF5252")

    def test_index_out_of_range(self):
        with pytest.raises(TimelineError, match="out of range"):
            _session().toggle(4)


class TestMerge:
    def test_merge_with_next(self):
        session = _session()
        merged = session.merge_with_next(0)
        assert (merged.start, merged.end) == (0.0, 4.0)
        assert merged.label == "Segment 1"
        assert merged.active is True
        assert merged.silent is False
        assert len(session) == 3

    def test_merge_two_silent_blocks_stays_silent(self):
        blocks = [Block(0.0, 1.0, silent=True), Block(1.0, 2.0, silent=True)]
        session = TimelineSession(blocks, 2.0)
        assert session.merge_with_next(0).silent is True

    def test_merge_last_block_rejected(self):
        session = _session()
        with pytest.raises(TimelineError, match="last block"):
            session.merge_with_next(3)
        assert len(session) == 4

    def test_selection_clamped_after_merge(self):
        session = _session()
        session.select(3)
        session.merge_with_next(2)
        assert session.current_index == 2


class TestResize:
    def test_moves_shared_boundary(self):
        session = _session()
        left, right = session.resize(1, 3.5)
        assert (left.start, left.end) == (2.0, 3.5)
        assert (right.start, right.end) == (3.5, 7.0)

    @pytest.mark.parametrize("end", [2.0, 1.0, 7.0, 8.0])
    def test_boundary_must_stay_inside_neighbours(self, end):
        session = _session()
        before = session.blocks
        with pytest.raises(TimelineError, match="strictly between"):
            session.resize(1, end)
        assert session.blocks == before

    def test_last_block_end_fixed(self):
        with pytest.raises(TimelineError, match="media duration"):
            _session().resize(3, 9.0)


class TestEdit:
    def test_applies_all_changes(self):
        session = _session()
        block = session.edit(1, active=True, label="pause", color="#FF0000", end=3.0)
        assert (block.start, block.end) == (2.0, 3.0)
        assert block.active is True
        assert block.label == "pause"
        assert block.color == "#FF0000"
        assert session.blocks[2].start == 3.0

    def test_rejected_end_leaves_block_unchanged(self):
        session = _session()
        with pytest.raises(TimelineError):
            session.edit(1, active=True, label="pause", end=99.0)
        block = session.blocks[1]
        assert block.active is False
        assert block.label == "Segment 2"
        assert block.end == 4.0

    def test_no_changes(self):
        session = _session()
        assert session.edit(0) == session.blocks[0]


class TestSelection:
    def test_no_selection(self):
        assert _session().current is None

    def test_next_and_previous_clamp(self):
        session = _session()
        assert session.select_previous().label == "Segment 1"
        session.select(3)
        assert session.select_next().label == "Segment 4"
        assert session.select_previous().label == "Segment 3"


class TestQueries:
    @pytest.mark.parametrize(
        "time, index",
        [(0.0, 0), (1.99, 0), (2.0, 1), (5.0, 2), (9.5, 3), (10.0, 3), (-1.0, None), (10.5, None)],
    )
    def test_block_index_at(self, time, index):
        assert _session().block_index_at(time) == index

    def test_next_playable_time(self):
        session = _session()
        session.set_active(2, True)
        assert session.next_playable_time(1.0) == 1.0
        assert session.next_playable_time(3.0) == 4.0
        assert session.next_playable_time(8.0) == 10.0

    def test_active_segments(self):
        session = _session()
        session.set_active(2, True)
        assert session.active_segments() == [TimeRange(0.0, 2.0), TimeRange(4.0, 7.0)]


class TestPersistence:
    def test_save_and_load(self, tmp_path: Path):
        session = _session()
        session.set_label(2, "chorus")
        path = session.save(tmp_path / "session.json")

        loaded = TimelineSession.load(path)
        assert loaded.blocks == session.blocks
        assert loaded.duration == 10.0
        assert loaded.input_path == Path("video.mp4")

    def test_from_dict_missing_fields(self):
        with pytest.raises(ValueError, match="must contain"):
            TimelineSession.from_dict({"blocks": []})
