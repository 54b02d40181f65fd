"""Headless batch detection runner."""

import asyncio
import logging
import sys
from typing import List, Optional

from tqdm import tqdm

from ..config import ProcessingConfig
from ..core.io import FrameReader, VideoWriter
from ..core.utils import draw_detections
from ..detection.base import Detection, Thresholds
from ..detection.darknet import Darknet
from ..errors import DarknetError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: str) -> None:
    logging.basicConfig(level=getattr(logging, log_level), format=LOG_FORMAT)


def format_detections(index: int, detections: List[Detection]) -> str:
    """One line per detection, prefixed with the frame index."""
    if not detections:
        return f"frame {index}: no detections"
    lines = []
    for det in detections:
        b = det.box
        lines.append(
            f"frame {index}: {det.name} {det.prob:.2f} "
            f"x={b.x:.1f} y={b.y:.1f} w={b.w:.1f} h={b.h:.1f}"
        )
    return "\n".join(lines)


async def process_frames(
    darknet: Darknet,
    reader: FrameReader,
    thresholds: Thresholds,
    writer: Optional[VideoWriter] = None,
) -> int:
    """Detect objects in every frame from the reader.

    Args:
        darknet: Loaded detector.
        reader: Frame source.
        thresholds: Detection thresholds.
        writer: Optional sink for annotated frames.

    Returns:
        Total number of detections.
    """
    total = 0
    progress = tqdm(total=reader.frame_count or None, desc="Detecting", file=sys.stderr)
    for index, frame in enumerate(reader):
        detections = await darknet.detect(frame, thresholds)
        total += len(detections)
        tqdm.write(format_detections(index, detections))
        if writer is not None:
            writer.write_frame(draw_detections(frame, detections))
        progress.update(1)
    progress.close()
    return total


async def run_detection(config: ProcessingConfig, darknet: Optional[Darknet] = None) -> int:
    """Run the detector over the configured input.

    Args:
        config: Processing configuration.
        darknet: Detector to use; one is created from the config (and
            disposed afterwards) when omitted.

    Returns:
        Total number of detections.
    """
    owns_detector = darknet is None
    if owns_detector:
        print("Loading network...", file=sys.stderr)
        darknet = Darknet(config.darknet)

    thresholds = Thresholds(
        thresh=config.detection.thresh,
        hier_thresh=config.detection.hier_thresh,
        nms=config.detection.nms,
    )

    try:
        with FrameReader(config.input_path, repeat=config.output.frames) as reader:
            if config.output.path is None:
                return await process_frames(darknet, reader, thresholds)

            ret, first_frame = reader.read_frame()
            if not ret:
                raise RuntimeError(f"Cannot read from {config.input_path}")
            height, width = first_frame.shape[:2]
            fps = reader.fps if reader.is_video else config.output.fps

        with VideoWriter(config.output.path, width, height, fps) as writer:
            with FrameReader(config.input_path, repeat=config.output.frames) as reader:
                total = await process_frames(darknet, reader, thresholds, writer)
        print(f"Output saved to: {config.output.path}", file=sys.stderr)
        return total
    finally:
        if owns_detector:
            darknet.dispose()


def run_headless(config: ProcessingConfig) -> None:
    """Entry point for the command line; exits non-zero on failure."""
    setup_logging(config.log_level)
    try:
        total = asyncio.run(run_detection(config))
    except DarknetError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"{total} detections", file=sys.stderr)
