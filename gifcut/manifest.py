"""JSON manifest schema: the contract between CLI/API and engine."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from gifcut.analyzers.merge import ACTIVE_POLICIES, DEFAULT_MAX_GAP_TO_BRIDGE
from gifcut.analyzers.ranges import DEFAULT_MIN_SILENCE_DURATION
from gifcut.analyzers.segments import (
    DEFAULT_MIN_NON_SILENCE_DURATION,
    DEFAULT_NON_SILENCE_BUFFER,
)
from gifcut.models import ConvertOption, CropRect


@dataclass
class SilenceConfig:
    """Configuration for silence detection and block building."""

    threshold_db: float = -40.0
    min_silence_duration: float = DEFAULT_MIN_SILENCE_DURATION
    non_silence_buffer: float = DEFAULT_NON_SILENCE_BUFFER
    min_non_silence_duration: float = DEFAULT_MIN_NON_SILENCE_DURATION
    max_gap_to_bridge: float = DEFAULT_MAX_GAP_TO_BRIDGE
    active_policy: str = "first"

    def __post_init__(self) -> None:
        if self.active_policy not in ACTIVE_POLICIES:
            raise ValueError(
                f"active_policy must be one of {ACTIVE_POLICIES}, got {self.active_policy!r}"
            )
        for name in (
            "min_silence_duration",
            "non_silence_buffer",
            "min_non_silence_duration",
            "max_gap_to_bridge",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass
class Manifest:
    """Top-level GIF export manifest."""

    input: Path
    output: Path
    version: str = "1"
    silence: SilenceConfig = field(default_factory=SilenceConfig)
    convert: ConvertOption | None = None

    def __post_init__(self) -> None:
        self.input = Path(self.input)
        self.output = Path(self.output)
        if self.convert is None:
            self.convert = ConvertOption(output_path=self.output)


def convert_option_from_dict(data: dict, output: Path) -> ConvertOption:
    """Build a ConvertOption from a JSON-style dict (manifest or web request)."""
    crop = CropRect(**data["crop"]) if data.get("crop") else CropRect()
    return ConvertOption(
        output_path=output,
        start_time=data.get("start_time"),
        end_time=data.get("end_time"),
        fps=data.get("fps"),
        width=data.get("width"),
        height=data.get("height"),
        crop=crop,
        palette=bool(data.get("palette", False)),
    )


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    output = Path(data["output"])
    silence = SilenceConfig(**data["silence"]) if "silence" in data else SilenceConfig()
    convert = convert_option_from_dict(data.get("convert", {}), output)

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=output,
        silence=silence,
        convert=convert,
    )
