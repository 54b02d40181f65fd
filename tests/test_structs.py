import ctypes
from unittest.mock import patch

import pytest

from darknetpy.errors import LayoutError
from darknetpy.native import structs
from darknetpy.native.structs import BOX, DETECTION, IMAGE, METADATA, NETWORK, check_layout, make_metadata

only_64bit = pytest.mark.skipif(
    ctypes.sizeof(ctypes.c_void_p) != 8, reason="sizes below are for 64-bit builds"
)


@only_64bit
def test_struct_sizes_match_64bit_abi():
    assert ctypes.sizeof(BOX) == 16
    assert ctypes.sizeof(DETECTION) == 48
    assert ctypes.sizeof(IMAGE) == 24
    assert ctypes.sizeof(METADATA) == 16


@only_64bit
def test_detection_field_offsets():
    assert DETECTION.classes.offset == 16
    assert DETECTION.prob.offset == 24
    assert DETECTION.mask.offset == 32
    assert DETECTION.objectness.offset == 40
    assert DETECTION.sort_class.offset == 44


def test_network_width_follows_height():
    assert NETWORK.w.offset == NETWORK.h.offset + ctypes.sizeof(ctypes.c_int)
    assert NETWORK.batch.offset == ctypes.sizeof(ctypes.c_int)


@only_64bit
def test_network_input_size_offsets():
    assert NETWORK.h.offset == 144
    assert NETWORK.w.offset == 148
    assert structs.expected_layout()["NETWORK.w"] == 148


def test_check_layout_passes():
    check_layout()


def test_check_layout_reports_mismatch():
    expected = structs.expected_layout()
    expected["DETECTION"] += 8
    with patch.object(structs, "expected_layout", return_value=expected):
        with pytest.raises(LayoutError, match="DETECTION"):
            check_layout()


def test_make_metadata_joins_names():
    meta = make_metadata(["dog", "cat", "bird"])
    assert meta.classes == 3
    assert meta.names == b"dog\ncat\nbird"


def test_check_layout_reports_network_offset_mismatch():
    expected = structs.expected_layout()
    expected["NETWORK.w"] -= 4
    with patch.object(structs, "expected_layout", return_value=expected):
        with pytest.raises(LayoutError, match="NETWORK.w"):
            check_layout()
