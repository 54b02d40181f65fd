"""Base detection protocol and data structures."""

import os
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple, Union

import numpy as np


@dataclass(frozen=True)
class Box:
    """Axis-aligned box given by its centre and size.

    Attributes:
        x: Centre x.
        y: Centre y.
        w: Width.
        h: Height.
    """

    x: float
    y: float
    w: float
    h: float

    def to_xyxy(self) -> Tuple[float, float, float, float]:
        """Return the box as (x1, y1, x2, y2) corners."""
        return (
            self.x - self.w / 2,
            self.y - self.h / 2,
            self.x + self.w / 2,
            self.y + self.h / 2,
        )


@dataclass(frozen=True)
class Detection:
    """Standardized detection result.

    Attributes:
        name: Class label name.
        prob: Class probability (0.0 to 1.0).
        box: Bounding box in the input image's coordinates.
    """

    name: str
    prob: float
    box: Box


@dataclass(frozen=True)
class Thresholds:
    """Cut-offs passed to the native averaging and NMS calls."""

    thresh: float = 0.5
    hier_thresh: float = 0.5
    nms: float = 0.5


@dataclass
class BufferImage:
    """An interleaved RGB image owned by the caller.

    Attributes:
        data: ``height * width * channels`` bytes.
        width: Width in pixels.
        height: Height in pixels.
        channels: Channel count.
    """

    data: Union[bytes, bytearray, memoryview, np.ndarray]
    width: int
    height: int
    channels: int = 3

    @classmethod
    def from_array(cls, frame: np.ndarray) -> "BufferImage":
        """Wrap an ``H x W x C`` (or ``H x W``) uint8 array."""
        if frame.dtype != np.uint8:
            raise ValueError(f"Expected a uint8 array, got {frame.dtype}")
        if frame.ndim == 2:
            frame = frame[:, :, np.newaxis]
        if frame.ndim != 3:
            raise ValueError(f"Expected an HxWxC array, got shape {frame.shape}")
        height, width, channels = frame.shape
        return cls(
            data=np.ascontiguousarray(frame),
            width=width,
            height=height,
            channels=channels,
        )


ImageSource = Union[str, os.PathLike, BufferImage, np.ndarray]


class Detector(Protocol):
    """Protocol for object detectors."""

    async def detect(
        self, image: ImageSource, thresholds: Optional[Thresholds] = None
    ) -> List[Detection]:
        """Detect objects in an image.

        Args:
            image: Image path, caller buffer, or RGB frame.
            thresholds: Detection cut-offs; defaults to 0.5 for each.

        Returns:
            List of Detection objects.
        """
        ...
