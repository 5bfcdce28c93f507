"""SmartZoom — propose zoom blocks and camera paths for a recording.

Developer entry point.  Reads a recording's telemetry JSON (the format
written by :meth:`RecordingMetadata.to_json`), runs zoom detection and
optionally samples the export camera path::

    smartzoom recording.json
    smartzoom recording.json --samples 10 --json
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from camera.camera import precompute_camera_path
from camera.models import RecordingMetadata
from camera.utils import fmt_time, fmt_time_precise
from camera.version import __version__
from camera.zoom_detector import detect_zoom_blocks

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s | %(levelname)s | %(message)s",
)

_logger = logging.getLogger(__name__)


def _global_exception_handler(exc_type, exc_value, exc_tb):
    """Log unhandled exceptions instead of crashing silently."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return
    _logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smartzoom",
        description="Detect zoom blocks from recorded input telemetry.",
    )
    parser.add_argument("recording", help="path to a recording metadata JSON file")
    parser.add_argument("--zooms-per-minute", type=float, default=None,
                        help="cap on zooms per minute of recording")
    parser.add_argument("--min-gap", type=float, default=None,
                        help="minimum gap between zooms in ms")
    parser.add_argument("--samples", type=int, default=0,
                        help="also print N evenly spaced export camera frames")
    parser.add_argument("--fps", type=float, default=60.0)
    parser.add_argument("--json", action="store_true",
                        help="print zoom effects as JSON instead of a table")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point — returns a process exit code."""
    sys.excepthook = _global_exception_handler
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        with open(args.recording, "r", encoding="utf-8") as f:
            metadata = RecordingMetadata.from_json(f.read())
    except (OSError, ValueError, KeyError) as exc:
        _logger.error("Cannot read recording %s: %s", args.recording, exc)
        return 1

    blocks = detect_zoom_blocks(
        metadata.mouse_events,
        metadata.width,
        metadata.height,
        metadata.duration,
        click_events=metadata.click_events,
        key_events=metadata.key_events,
        scroll_events=metadata.scroll_events,
        max_zooms_per_minute=args.zooms_per_minute,
        min_zoom_gap_ms=args.min_gap,
    )
    effects = [b.to_effect() for b in blocks]

    if args.json:
        print(json.dumps([e.to_dict() for e in effects], indent=2))
    else:
        print(f"{len(blocks)} zoom block(s) in {fmt_time(metadata.duration)} of recording")
        for b in blocks:
            print(
                f"{fmt_time_precise(b.start_time)} → {fmt_time_precise(b.end_time)}  "
                f"{b.scale:.1f}x  at ({b.target_x:.0f}, {b.target_y:.0f})  "
                f"importance {b.importance or 0.0:.2f}"
            )

    if args.samples > 0 and metadata.duration > 0:
        path = precompute_camera_path(effects, metadata, metadata.duration, fps=args.fps)
        step = max(1, len(path) // args.samples)
        for i in range(0, len(path), step):
            state = path[i]
            print(
                f"  frame {i:6d}  {fmt_time_precise(i * 1000.0 / args.fps)}  "
                f"scale={state.zoom_scale:.3f}  "
                f"center=({state.zoom_center.x:.3f}, {state.zoom_center.y:.3f})"
            )
    return 0


if __name__ == "__main__":
    sys.exit(main())
