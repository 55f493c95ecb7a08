"""Shared data types used across GifCut."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

DEFAULT_BLOCK_COLOR = "#4CAF50"


class TimelineError(ValueError):
    """Raised when a block sequence or an edit would break timeline coverage."""
    pass


@dataclass(frozen=True)
class SilenceEvent:
    """One silencedetect marker."""

    kind: Literal["start", "end"]
    time: float


@dataclass
class TimeRange:
    """A start/end time pair in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class Block:
    """A timeline block: the unit the user edits and selects for export.

    ``silent`` is set on blocks the pipeline creates to cover silence
    (leading silence, gap fillers, an all-silent file).
    """

    start: float
    end: float
    active: bool = False
    label: str = ""
    color: str = DEFAULT_BLOCK_COLOR
    silent: bool = False

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class ProbeResult:
    """Metadata extracted from a media file via ffprobe."""

    duration: float
    width: int
    height: int
    fps: float
    codec_video: str
    size: int = 0
    has_audio: bool = False
    audio_sample_rate: int | None = None
    codec_audio: str | None = None


@dataclass(frozen=True)
class CropRect:
    """Crop rectangle as percentages (0-100) of the source frame."""

    x: float = 0.0
    y: float = 0.0
    width: float = 100.0
    height: float = 100.0

    def __post_init__(self) -> None:
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"crop {name} must be within 0-100, got {value}")
        if self.width == 0 or self.height == 0:
            raise ValueError("crop width and height must be non-zero")

    @property
    def is_full_frame(self) -> bool:
        return (self.x, self.y, self.width, self.height) == (0, 0, 100, 100)


@dataclass
class ConvertOption:
    """Output options for a GIF export."""

    output_path: Path
    start_time: float | None = None
    end_time: float | None = None
    fps: float | None = None
    width: int | None = None
    height: int | None = None
    crop: CropRect = field(default_factory=CropRect)
    palette: bool = False

    def __post_init__(self) -> None:
        self.output_path = Path(self.output_path)
        for name in ("start_time", "end_time"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        for name in ("fps", "width", "height"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class ExportCommand:
    """A fully specified ffmpeg invocation, minus the binary name."""

    args: tuple[str, ...]
    output_path: Path

    def argv(self, binary: str = "ffmpeg") -> list[str]:
        return [binary, *self.args]


@dataclass
class ConvertStatus:
    """A progress/outcome event reported while an export runs."""

    status: Literal["PROCESSING", "CANCELED", "ERROR", "END"]
    progress: float | None = None
    message: str | None = None
