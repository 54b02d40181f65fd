"""Command-line interface for darknetpy."""

import argparse
from pathlib import Path

from . import __version__
from .config import ProcessingConfig

EPILOG = """\
Examples:
  darknetpy dog.jpg --cfg yolov3.cfg --weights yolov3.weights --namefile coco.names
  darknetpy street.mp4 --cfg yolov3.cfg --weights yolov3.weights \\
      --namefile coco.names --memory 5 -o annotated.mp4
  darknetpy dog.jpg --cfg tiny.cfg --weights tiny.weights --names dog,bicycle,car

Detections are averaged over the last --memory frames, so video input
gives steadier boxes than single images. Use --repeat to feed a still
image through the network several times.
"""

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _probability(value: str) -> float:
    number = float(value)
    if not 0.0 <= number <= 1.0:
        raise argparse.ArgumentTypeError(f"{value} is not between 0.0 and 1.0")
    return number


def parse_args(args=None) -> ProcessingConfig:
    """Parse command-line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv).

    Returns:
        ProcessingConfig with parsed options.
    """
    parser = argparse.ArgumentParser(
        prog="darknetpy",
        description="Run a darknet YOLO network over an image or video.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "input",
        type=str,
        help="Input image (.jpg, .png) or video (.mp4, .avi) file",
    )

    parser.add_argument(
        "--cfg",
        type=str,
        required=True,
        help="Network topology (.cfg) file",
    )

    parser.add_argument(
        "--weights",
        type=str,
        required=True,
        help="Trained weights file",
    )

    names = parser.add_mutually_exclusive_group(required=True)
    names.add_argument(
        "--names",
        type=str,
        help="Comma-separated class names, in class id order",
    )
    names.add_argument(
        "--namefile",
        type=str,
        help="Newline-delimited class names file",
    )

    parser.add_argument(
        "--memory",
        type=int,
        default=3,
        help="Frames averaged per detection (default: 3)",
    )

    parser.add_argument(
        "--library",
        type=str,
        default=None,
        help="Path to libdarknet (default: $DARKNET_LIBRARY or the bundled library)",
    )

    parser.add_argument(
        "--thresh",
        type=_probability,
        default=0.5,
        help="Confidence threshold; 0.0-1.0 (default: 0.5)",
    )

    parser.add_argument(
        "--hier-thresh",
        type=_probability,
        default=0.5,
        help="Hierarchy threshold; 0.0-1.0 (default: 0.5)",
    )

    parser.add_argument(
        "--nms",
        type=_probability,
        default=0.5,
        help="Non-max suppression IoU threshold; 0.0-1.0 (default: 0.5)",
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Write an annotated video to this file",
    )

    parser.add_argument(
        "--fps",
        type=int,
        default=15,
        help="Output frames per second for image input; videos keep their rate (default: 15)",
    )

    parser.add_argument(
        "--repeat",
        type=int,
        default=1,
        help="Times to run a still image through the network (default: 1)",
    )

    parser.add_argument(
        "--log-level",
        type=str.upper,
        default="WARNING",
        choices=LOG_LEVELS,
        help="Logging level (default: WARNING)",
    )

    parsed = parser.parse_args(args)

    if not Path(parsed.input).exists():
        parser.error(f"Input file not found: {parsed.input}")
    if parsed.memory < 1:
        parser.error("--memory must be at least 1")
    if parsed.repeat < 1:
        parser.error("--repeat must be at least 1")

    return ProcessingConfig.from_args(
        input_path=parsed.input,
        cfg=parsed.cfg,
        weights=parsed.weights,
        names=(
            [name.strip() for name in parsed.names.split(",") if name.strip()]
            if parsed.names
            else None
        ),
        namefile=parsed.namefile,
        memory=parsed.memory,
        library_path=parsed.library,
        thresh=parsed.thresh,
        hier_thresh=parsed.hier_thresh,
        nms=parsed.nms,
        output_path=parsed.output,
        fps=parsed.fps,
        frames=parsed.repeat,
        log_level=parsed.log_level,
    )
