"""Python bindings for the darknet YOLO detector."""

__version__ = "0.1.0"

from .config import DarknetConfig
from .detection import Box, BufferImage, Darknet, Detection, Thresholds
from .errors import (
    ConfigurationError,
    DarknetError,
    DisposedError,
    LayoutError,
    NativeCallError,
)

__all__ = [
    "Box",
    "BufferImage",
    "ConfigurationError",
    "Darknet",
    "DarknetConfig",
    "DarknetError",
    "Detection",
    "DisposedError",
    "LayoutError",
    "NativeCallError",
    "Thresholds",
    "__version__",
]
