"""Silence range normalization."""

from typing import Iterable

from gifcut.models import TimeRange

DEFAULT_MIN_SILENCE_DURATION = 0.1


def normalize_ranges(
    ranges: Iterable[TimeRange],
    duration: float,
    min_silence_duration: float = DEFAULT_MIN_SILENCE_DURATION,
) -> list[TimeRange]:
    """Return sorted, non-overlapping silence ranges inside ``[0, duration]``.

    Overlapping or touching ranges are unioned, then ranges shorter than
    *min_silence_duration* are dropped. Running this on its own output
    returns the same list.
    """
    clamped: list[TimeRange] = []
    for r in sorted(ranges, key=lambda r: (r.start, r.end)):
        if r.end <= r.start:
            continue
        start = max(r.start, 0.0)
        end = min(r.end, duration)
        if end <= start:
            continue
        clamped.append(TimeRange(start=start, end=end))

    merged: list[TimeRange] = []
    for r in clamped:
        if merged and r.start <= merged[-1].end:
            merged[-1].end = max(merged[-1].end, r.end)
        else:
            merged.append(r)

    return [r for r in merged if r.duration >= min_silence_duration]
