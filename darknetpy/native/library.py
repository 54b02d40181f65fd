"""Signatures of the libdarknet entry points used by darknetpy."""

import ctypes
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

from ..errors import ConfigurationError, NativeCallError
from .structs import (
    DETECTION_P,
    FLOAT_P,
    FLOAT_PP,
    IMAGE,
    INT_P,
    METADATA,
    NETWORK_P,
    check_layout,
)

logger = logging.getLogger(__name__)

LIBRARY_ENV = "DARKNET_LIBRARY"

c_int = ctypes.c_int
c_float = ctypes.c_float
c_char_p = ctypes.c_char_p

# name: (restype, argtypes)
SIGNATURES = {
    "load_network": (NETWORK_P, [c_char_p, c_char_p, c_int]),
    "network_output_size": (c_int, [NETWORK_P]),
    "set_batch_network": (None, [NETWORK_P, c_int]),
    "free_network": (None, [NETWORK_P]),
    "get_metadata": (METADATA, [c_char_p]),
    "load_image_color": (IMAGE, [c_char_p, c_int, c_int]),
    "float_to_image": (IMAGE, [c_int, c_int, c_int, FLOAT_P]),
    "copy_image": (IMAGE, [IMAGE]),
    "letterbox_image": (IMAGE, [IMAGE, c_int, c_int]),
    "free_image": (None, [IMAGE]),
    "network_predict_image": (FLOAT_P, [NETWORK_P, IMAGE]),
    "get_network_boxes": (
        DETECTION_P,
        [NETWORK_P, c_int, c_int, c_float, c_float, INT_P, c_int, INT_P],
    ),
    "do_nms_obj": (None, [DETECTION_P, c_int, c_int, c_float]),
    "free_detections": (None, [DETECTION_P, c_int]),
    "network_memory_make": (FLOAT_PP, [c_int, c_int]),
    "network_memory_free": (None, [FLOAT_PP, c_int]),
    "network_remember_memory": (None, [NETWORK_P, FLOAT_PP, c_int]),
    "network_avg_predictions": (
        DETECTION_P,
        [NETWORK_P, c_int, FLOAT_PP, c_int, INT_P, c_int, c_int, c_float, c_float],
    ),
}

# Entry points that run on the network's worker thread instead of the
# caller's event loop.
ASYNC_ENTRY_POINTS = frozenset(
    {
        "float_to_image",
        "letterbox_image",
        "network_predict_image",
        "network_remember_memory",
        "network_avg_predictions",
        "do_nms_obj",
    }
)


def _library_filename() -> str:
    if sys.platform == "darwin":
        return "libdarknet.dylib"
    if sys.platform.startswith("win"):
        return "libdarknet.dll"
    return "libdarknet.so"


def default_library_path() -> Path:
    """Location of libdarknet: $DARKNET_LIBRARY, else next to this module."""
    override = os.environ.get(LIBRARY_ENV)
    if override:
        return Path(override)
    return Path(__file__).resolve().parent / _library_filename()


class DarknetLibrary:
    """Thin wrapper over the loaded shared library.

    All calls go through :meth:`call` so that ctypes failures surface as
    :class:`NativeCallError` naming the entry point.
    """

    def __init__(self, lib, path: Optional[Path] = None):
        self._lib = lib
        self.path = path

    @staticmethod
    def is_async(name: str) -> bool:
        return name in ASYNC_ENTRY_POINTS

    def call(self, name: str, *args):
        if name not in SIGNATURES:
            raise NativeCallError(name, message=f"unknown entry point {name!r}")
        try:
            fn = getattr(self._lib, name)
        except AttributeError as e:
            raise NativeCallError(name, e) from e
        try:
            return fn(*args)
        except (ctypes.ArgumentError, OSError) as e:
            raise NativeCallError(name, e) from e

    def __repr__(self):
        return f"<DarknetLibrary {self.path or self._lib!r}>"


def load_library(path: Union[str, os.PathLike, None] = None) -> DarknetLibrary:
    """Open libdarknet and declare every entry point's signature.

    Args:
        path: Shared library path. Defaults to :func:`default_library_path`.

    Returns:
        The bound library.

    Raises:
        ConfigurationError: If the library file does not exist.
        NativeCallError: If the library cannot be loaded or lacks a symbol.
        LayoutError: If the struct mirrors do not match.
    """
    lib_path = Path(path) if path is not None else default_library_path()
    if not lib_path.exists():
        raise ConfigurationError(f"darknet library not found: {lib_path}")

    check_layout()

    logger.debug("loading %s", lib_path)
    try:
        lib = ctypes.CDLL(str(lib_path))
    except OSError as e:
        raise NativeCallError("dlopen", e) from e

    for name, (restype, argtypes) in SIGNATURES.items():
        try:
            fn = getattr(lib, name)
        except AttributeError as e:
            raise NativeCallError(name, e, message=f"{lib_path} does not export {name}") from e
        fn.restype = restype
        fn.argtypes = argtypes

    return DarknetLibrary(lib, lib_path)
