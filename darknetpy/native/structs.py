"""ctypes mirrors of the structs exported by libdarknet.

Field order must follow darknet.h exactly. ctypes applies the platform's C
alignment rules, so padding (e.g. after ``DETECTION.classes``) is implicit.
"""

import ctypes
from typing import List

from ..errors import LayoutError

POINTER_SIZE = ctypes.sizeof(ctypes.c_void_p)


class BOX(ctypes.Structure):
    _fields_ = [
        ("x", ctypes.c_float),
        ("y", ctypes.c_float),
        ("w", ctypes.c_float),
        ("h", ctypes.c_float),
    ]


class DETECTION(ctypes.Structure):
    _fields_ = [
        ("bbox", BOX),
        ("classes", ctypes.c_int),
        ("prob", ctypes.POINTER(ctypes.c_float)),
        ("mask", ctypes.POINTER(ctypes.c_float)),
        ("objectness", ctypes.c_float),
        ("sort_class", ctypes.c_int),
    ]


class IMAGE(ctypes.Structure):
    _fields_ = [
        ("w", ctypes.c_int),
        ("h", ctypes.c_int),
        ("c", ctypes.c_int),
        ("data", ctypes.POINTER(ctypes.c_float)),
    ]


class METADATA(ctypes.Structure):
    _fields_ = [
        ("classes", ctypes.c_int),
        ("names", ctypes.c_char_p),
    ]


class NETWORK(ctypes.Structure):
    """The network parameter block.

    Only ``w``, ``h`` and ``batch`` are read from Python, but every field
    up to them has to be declared for their offsets to be right.
    """

    _fields_ = [
        ("n", ctypes.c_int),
        ("batch", ctypes.c_int),
        ("seen", ctypes.POINTER(ctypes.c_size_t)),
        ("t", ctypes.POINTER(ctypes.c_int)),
        ("epoch", ctypes.c_float),
        ("subdivisions", ctypes.c_int),
        ("layers", ctypes.c_void_p),
        ("output", ctypes.POINTER(ctypes.c_float)),
        ("policy", ctypes.c_int),
        ("learning_rate", ctypes.c_float),
        ("momentum", ctypes.c_float),
        ("decay", ctypes.c_float),
        ("gamma", ctypes.c_float),
        ("scale", ctypes.c_float),
        ("power", ctypes.c_float),
        ("time_steps", ctypes.c_int),
        ("step", ctypes.c_int),
        ("max_batches", ctypes.c_int),
        ("scales", ctypes.POINTER(ctypes.c_float)),
        ("steps", ctypes.POINTER(ctypes.c_int)),
        ("num_steps", ctypes.c_int),
        ("burn_in", ctypes.c_int),
        ("adam", ctypes.c_int),
        ("B1", ctypes.c_float),
        ("B2", ctypes.c_float),
        ("eps", ctypes.c_float),
        ("inputs", ctypes.c_int),
        ("outputs", ctypes.c_int),
        ("truths", ctypes.c_int),
        ("notruth", ctypes.c_int),
        ("h", ctypes.c_int),
        ("w", ctypes.c_int),
        ("c", ctypes.c_int),
        ("max_crop", ctypes.c_int),
        ("min_crop", ctypes.c_int),
        ("max_ratio", ctypes.c_float),
        ("min_ratio", ctypes.c_float),
        ("center", ctypes.c_int),
        ("angle", ctypes.c_float),
        ("aspect", ctypes.c_float),
        ("exposure", ctypes.c_float),
        ("saturation", ctypes.c_float),
        ("hue", ctypes.c_float),
        ("random", ctypes.c_int),
        ("gpu_index", ctypes.c_int),
        ("hierarchy", ctypes.c_void_p),
        ("input", ctypes.POINTER(ctypes.c_float)),
        ("truth", ctypes.POINTER(ctypes.c_float)),
        ("delta", ctypes.POINTER(ctypes.c_float)),
        ("workspace", ctypes.POINTER(ctypes.c_float)),
        ("train", ctypes.c_int),
        ("index", ctypes.c_int),
        ("cost", ctypes.POINTER(ctypes.c_float)),
        ("clip", ctypes.c_float),
    ]


FLOAT_P = ctypes.POINTER(ctypes.c_float)
FLOAT_PP = ctypes.POINTER(FLOAT_P)
INT_P = ctypes.POINTER(ctypes.c_int)
DETECTION_P = ctypes.POINTER(DETECTION)
NETWORK_P = ctypes.POINTER(NETWORK)


def expected_layout() -> dict:
    """Sizes and offsets as compiled into libdarknet for this pointer width."""
    p = POINTER_SIZE
    # DETECTION: bbox(16) + classes(4) + pad to pointer + prob + mask + objectness + sort_class
    detection_prob = 16 + max(4, p)
    detection_size = detection_prob + 2 * p + 8
    # trailing padding up to pointer alignment
    detection_size += (-detection_size) % p
    image_size = 12 + (-12 % p) + p
    metadata_size = p + p
    # NETWORK: 24 int/float fields and 6 pointers precede h
    network_h = 96 + 6 * p
    return {
        "BOX": 16,
        "DETECTION": detection_size,
        "IMAGE": image_size,
        "METADATA": metadata_size,
        "DETECTION.prob": detection_prob,
        "NETWORK.h": network_h,
        "NETWORK.w": network_h + 4,
    }


def check_layout() -> None:
    """Compare the mirrored structs against the library's compiled layout.

    Raises:
        LayoutError: If any size or offset differs.
    """
    expected = expected_layout()
    actual = {
        "BOX": ctypes.sizeof(BOX),
        "DETECTION": ctypes.sizeof(DETECTION),
        "IMAGE": ctypes.sizeof(IMAGE),
        "METADATA": ctypes.sizeof(METADATA),
        "DETECTION.prob": DETECTION.prob.offset,
        "NETWORK.h": NETWORK.h.offset,
        "NETWORK.w": NETWORK.w.offset,
    }
    mismatched = [
        f"{key}: expected {expected[key]}, got {actual[key]}"
        for key in expected
        if expected[key] != actual[key]
    ]
    if mismatched:
        raise LayoutError("struct layout mismatch: " + "; ".join(mismatched))


def make_metadata(names: List[str]) -> METADATA:
    """Build a METADATA record for a list of class names."""
    meta = METADATA()
    meta.classes = len(names)
    meta.names = "\n".join(names).encode("utf-8")
    return meta
