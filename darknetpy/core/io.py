"""Frame sources and sinks for running a detector over images and videos."""

from pathlib import Path
from typing import Iterator, Optional, Tuple

import cv2
import numpy as np
from PIL import Image


VIDEO_EXTENSIONS = {".mp4", ".avi", ".mov", ".mkv"}


def is_video_file(filename: str) -> bool:
    """Check if filename has a video extension."""
    return Path(filename).suffix.lower() in VIDEO_EXTENSIONS


def load_rgb(path: str) -> np.ndarray:
    """Load an image file as an ``H x W x 3`` uint8 RGB array."""
    with Image.open(path) as img:
        return np.array(img.convert("RGB"))


class FrameReader:
    """Read RGB frames from a video file or a still image.

    A still image is yielded ``repeat`` times so that a detector's memory
    ring sees the same input over several frames.
    """

    def __init__(self, path: str, repeat: int = 1):
        """Initialize the reader.

        Args:
            path: Path to video or image file.
            repeat: How many times to yield a still image.
        """
        self.path = path
        self.is_video = is_video_file(path)
        self._cap = None
        self._image: Optional[np.ndarray] = None
        self._remaining = repeat
        self._fps = 15.0
        self._frame_count = repeat

        if self.is_video:
            self._cap = cv2.VideoCapture(path)
            if not self._cap.isOpened():
                raise IOError(f"Cannot open video file: {path}")
            self._fps = self._cap.get(cv2.CAP_PROP_FPS) or self._fps
            self._frame_count = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))
        else:
            self._image = load_rgb(path)

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def frame_count(self) -> int:
        """Total frames this reader will yield (as reported for videos)."""
        return self._frame_count

    def read_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Read the next frame.

        Returns:
            Tuple of (success, frame). Frame is an RGB numpy array.
        """
        if self.is_video:
            ret, frame = self._cap.read()
            if ret:
                frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            return ret, frame
        if self._remaining > 0:
            self._remaining -= 1
            return True, self._image
        return False, None

    def __iter__(self) -> Iterator[np.ndarray]:
        while True:
            ret, frame = self.read_frame()
            if not ret:
                break
            yield frame

    def close(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class VideoWriter:
    """Write RGB frames to an mp4 file."""

    def __init__(self, path: str, width: int, height: int, fps: float = 15.0):
        self.path = path
        self.width = width
        self.height = height
        self.fps = fps

        fourcc = cv2.VideoWriter_fourcc(*"mp4v")
        self._writer = cv2.VideoWriter(path, fourcc, fps, (width, height))
        if not self._writer.isOpened():
            raise IOError(f"Cannot create video writer: {path}")

    def write_frame(self, frame: np.ndarray):
        """Write an RGB frame."""
        self._writer.write(cv2.cvtColor(frame, cv2.COLOR_RGB2BGR))

    def close(self):
        self._writer.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
