"""Thin CLI entry point: builds a Manifest and calls the engine."""

import argparse
import logging
import sys
from pathlib import Path

from gifcut import ffutil
from gifcut.editors.timeline import TimelineSession
from gifcut.engine import detect, export, process
from gifcut.log_setup import setup_logging
from gifcut.manifest import Manifest, SilenceConfig, convert_option_from_dict, load_manifest
from gifcut.models import ConvertStatus, TimelineError


def _add_silence_args(parser: argparse.ArgumentParser, active_policy: str) -> None:
    parser.add_argument("--silence-threshold", type=float, default=-40.0, help="Silence noise floor in dB")
    parser.add_argument("--min-silence", type=float, default=0.1, help="Minimum silence duration (seconds)")
    parser.add_argument("--buffer", type=float, default=0.3, help="Padding around non-silent regions (seconds)")
    parser.add_argument("--min-block", type=float, default=0.3, help="Minimum non-silent block duration (seconds)")
    parser.add_argument("--max-gap", type=float, default=1.0, help="Largest gap bridged into one block (seconds)")
    parser.add_argument(
        "--active-policy", choices=["first", "speech"], default=active_policy,
        help="Which blocks start out selected for export",
    )


def _add_convert_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", "-o", type=Path, help="Output GIF path")
    parser.add_argument("--start", type=float, help="Trim start (seconds)")
    parser.add_argument("--end", type=float, help="Trim end (seconds)")
    parser.add_argument("--fps", type=float, help="Output frame rate")
    parser.add_argument("--width", type=int, help="Output width in pixels")
    parser.add_argument("--height", type=int, help="Output height in pixels")
    parser.add_argument(
        "--crop", type=float, nargs=4, metavar=("X", "Y", "W", "H"),
        help="Crop rectangle as percentages of the frame",
    )
    parser.add_argument("--palette", action="store_true", help="Generate a custom palette")


def _silence_config(args: argparse.Namespace) -> SilenceConfig:
    return SilenceConfig(
        threshold_db=args.silence_threshold,
        min_silence_duration=args.min_silence,
        non_silence_buffer=args.buffer,
        min_non_silence_duration=args.min_block,
        max_gap_to_bridge=args.max_gap,
        active_policy=args.active_policy,
    )


def _manifest_from_args(args: argparse.Namespace, silence: SilenceConfig | None = None) -> Manifest:
    if getattr(args, "manifest", None):
        return load_manifest(args.manifest)
    output = args.output or args.video.with_suffix(".gif")
    crop = dict(zip(("x", "y", "width", "height"), args.crop)) if args.crop else None
    convert = convert_option_from_dict(
        {
            "start_time": args.start,
            "end_time": args.end,
            "fps": args.fps,
            "width": args.width,
            "height": args.height,
            "crop": crop,
            "palette": args.palette,
        },
        output,
    )
    return Manifest(
        input=args.video,
        output=output,
        silence=silence or SilenceConfig(),
        convert=convert,
    )


def _print_blocks(session: TimelineSession) -> None:
    for i, b in enumerate(session.blocks):
        mark = "x" if b.active else " "
        kind = "silence" if b.silent else "sound"
        print(f"  [{mark}] {i:3d}  {b.start:8.3f} - {b.end:8.3f}  {kind:7s}  {b.label}")


def _on_progress(status: ConvertStatus) -> None:
    if status.status == "PROCESSING" and status.progress is not None:
        print(f"  [{status.progress:5.1f}%] encoding")


def _report(result) -> None:
    print()
    if result.status != "END":
        print(f"Export {result.status.lower()}: {result.message}", file=sys.stderr)
        sys.exit(1)
    print(f"Done! Output: {result.output_path}")
    print(f"  Blocks exported: {result.blocks_exported}/{result.blocks_total}")
    print(f"  Duration: {result.duration_original:.1f}s -> {result.duration_exported:.1f}s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gifcut",
        description="GifCut: trim, crop and export video clips as GIFs, skipping silence.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    sub = parser.add_subparsers(dest="command")

    insp = sub.add_parser("inspect", help="Show video metadata")
    insp.add_argument("video", type=Path, help="Input video file")

    det = sub.add_parser("detect", help="Detect silence and write an editable block session")
    det.add_argument("video", type=Path, help="Input video file")
    det.add_argument("--session", "-s", type=Path, help="Where to write the session JSON")
    _add_silence_args(det, active_policy="first")

    exp = sub.add_parser("export", help="Export a video (or a session's active blocks) as GIF")
    exp.add_argument("video", nargs="?", type=Path, help="Input video file")
    exp.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    exp.add_argument("--session", "-s", type=Path, help="Session JSON written by 'detect'")
    _add_convert_args(exp)

    proc = sub.add_parser("process", help="Detect silence and export the non-silent blocks")
    proc.add_argument("video", nargs="?", type=Path, help="Input video file")
    proc.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    _add_silence_args(proc, active_policy="speech")
    _add_convert_args(proc)

    serve = sub.add_parser("serve", help="Launch the web API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, log_file=args.log_file)

    if args.command == "serve":
        from gifcut.web import create_app
        app = create_app()
        print(f"GifCut web API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    if args.command in ("export", "process") and not (args.manifest or args.video):
        print("Error: provide either a VIDEO argument or --manifest.", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "inspect":
            info = ffutil.probe(args.video)
            print(f"{args.video}: {info.width}x{info.height} {info.codec_video} @ {info.fps:.3f} fps")
            print(f"  Duration: {info.duration:.2f}s  Size: {info.size} bytes  Audio: {info.codec_audio or 'none'}")
            return

        if args.command == "detect":
            ffutil.check_ffmpeg()
            manifest = Manifest(
                input=args.video,
                output=args.video.with_suffix(".gif"),
                silence=_silence_config(args),
            )
            session = detect(manifest)
            session_path = session.save(args.session or args.video.with_suffix(".blocks.json"))
            print(f"Detected {len(session)} block(s) in {args.video}:")
            _print_blocks(session)
            print(f"Session written to {session_path}")
            return

        if args.command == "export":
            ffutil.check_ffmpeg()
            manifest = _manifest_from_args(args)
            session = TimelineSession.load(args.session) if args.session else None
            _report(export(manifest, session, on_progress=_on_progress))
            return

        if args.command == "process":
            manifest = _manifest_from_args(args, silence=_silence_config(args))
            _report(process(manifest, on_progress=_on_progress))
            return
    except (ffutil.FFmpegNotFoundError, ffutil.InvalidMediaError, TimelineError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
