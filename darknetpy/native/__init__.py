"""ctypes binding for libdarknet."""

from .handles import DetectionsHandle, ImageHandle, MemoryHandle, NetworkHandle
from .library import ASYNC_ENTRY_POINTS, SIGNATURES, DarknetLibrary, default_library_path, load_library
from .structs import BOX, DETECTION, IMAGE, METADATA, NETWORK, check_layout, make_metadata

__all__ = [
    "ASYNC_ENTRY_POINTS",
    "BOX",
    "DETECTION",
    "DarknetLibrary",
    "DetectionsHandle",
    "IMAGE",
    "ImageHandle",
    "METADATA",
    "MemoryHandle",
    "NETWORK",
    "NetworkHandle",
    "SIGNATURES",
    "check_layout",
    "default_library_path",
    "load_library",
    "make_metadata",
]
