"""Parse ffmpeg silencedetect output into silence ranges."""

import re
from typing import Iterator

from gifcut.models import SilenceEvent, TimeRange

# ffmpeg prints marker times with %g, so small values use an exponent
_MARKER_RE = re.compile(r"silence_(start|end):\s*(-?\d+(?:\.\d*)?(?:[eE][-+]?\d+)?)")


def iter_silence_events(text: str) -> Iterator[SilenceEvent]:
    """Yield start/end markers in the order they appear in *text*."""
    for line in text.splitlines():
        for kind, value in _MARKER_RE.findall(line):
            yield SilenceEvent(kind=kind, time=float(value))


def parse_silence_ranges(text: str) -> list[TimeRange]:
    """Pair silencedetect markers into TimeRanges.

    An ``end`` closes the most recent unresolved ``start``. A second start
    replaces an unresolved one, a start that is never closed is dropped, and
    a pair whose end is not after its start is dropped.
    """
    ranges: list[TimeRange] = []
    pending: float | None = None

    for event in iter_silence_events(text):
        if event.kind == "start":
            pending = event.time
            continue
        if pending is None:
            continue
        if event.time > pending:
            ranges.append(TimeRange(start=pending, end=event.time))
        pending = None

    return ranges
