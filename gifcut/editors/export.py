"""GIF export: turn selected segments and options into an ffmpeg command."""

from pathlib import Path

from gifcut.models import ConvertOption, CropRect, ExportCommand, TimeRange

EXPORT_SEGMENT_PADDING = 0.1

_PALETTE_GRAPH = "split[a][b];[a]palettegen[p];[b][p]paletteuse"


def format_seconds(value: float) -> str:
    """Render seconds at millisecond precision without trailing zeros."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else format_seconds(value)


def segment_input_args(input_path: Path, segment: TimeRange) -> list[str]:
    """Input options reading one segment with stream copy, padded both sides."""
    start = max(0.0, segment.start - EXPORT_SEGMENT_PADDING)
    end = segment.end + EXPORT_SEGMENT_PADDING
    return [
        "-ss", format_seconds(start),
        "-to", format_seconds(end),
        "-c", "copy",
        "-avoid_negative_ts", "make_zero",
        "-i", str(input_path),
    ]


def crop_filter(crop: CropRect) -> str | None:
    """Percent crop as an ffmpeg crop filter, or None for the full frame."""
    if crop.is_full_frame:
        return None
    width = f"in_w*({_format_number(crop.width)}/100)"
    height = f"in_h*({_format_number(crop.height)}/100)"
    x = f"in_w*({_format_number(crop.x)}/100)"
    y = f"in_h*({_format_number(crop.y)}/100)"
    return f"crop={width}:{height}:{x}:{y}"


def video_filters(option: ConvertOption) -> list[str]:
    """Filters applied after segment selection, in order: fps, scale, crop."""
    filters: list[str] = []
    if option.fps:
        filters.append(f"fps={_format_number(option.fps)}")
    if option.width or option.height:
        filters.append(f"scale=w={option.width or -1}:h={option.height or -1}")
    crop = crop_filter(option.crop)
    if crop:
        filters.append(crop)
    return filters


def trim_args(option: ConvertOption) -> list[str]:
    """Output-side trim window applied on top of the selected segments."""
    args: list[str] = []
    start = option.start_time or 0.0
    if option.start_time:
        args += ["-ss", format_seconds(option.start_time)]
    if option.end_time is not None and option.end_time > start:
        args += ["-t", format_seconds(option.end_time - start)]
    return args


def build_export_command(
    input_path: Path,
    segments: list[TimeRange],
    option: ConvertOption,
) -> ExportCommand:
    """Build the ffmpeg arguments that export *segments* as a GIF.

    Each segment becomes its own stream-copied input; two or more are joined
    with a ``concat`` filter. No segments means the whole input is used.
    Performs no I/O.
    """
    args: list[str] = ["-y"]

    if segments:
        for seg in segments:
            args += segment_input_args(input_path, seg)
    else:
        args += ["-i", str(input_path)]

    chain = video_filters(option)
    if option.palette:
        chain.append(_PALETTE_GRAPH)

    if len(segments) > 1:
        inputs = "".join(f"[{i}:v]" for i in range(len(segments)))
        graph = f"{inputs}concat=n={len(segments)}:v=1:a=0"
        if chain:
            graph += "," + ",".join(chain)
        args += ["-filter_complex", graph + "[outv]", "-map", "[outv]"]
    elif chain:
        args += ["-vf", ",".join(chain)]

    args += trim_args(option)
    args += ["-an", "-f", "gif", str(option.output_path)]

    return ExportCommand(args=tuple(args), output_path=option.output_path)
