"""Detection module: darknet detector and result types."""

from .base import Box, BufferImage, Detection, Detector, Thresholds
from .darknet import Darknet
from .memory import MemoryRing

__all__ = [
    "Box",
    "BufferImage",
    "Darknet",
    "Detection",
    "Detector",
    "MemoryRing",
    "Thresholds",
]
