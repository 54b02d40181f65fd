import ctypes

import pytest

from darknetpy.detection.memory import MemoryRing
from darknetpy.errors import NativeCallError
from darknetpy.native.structs import FLOAT_PP, IMAGE


@pytest.fixture
def network(fake_lib):
    return ctypes.pointer(fake_lib.network)


def test_new_ring_is_empty(library):
    ring = MemoryRing(library, slot_size=4, capacity=3)
    assert ring.capacity == 3
    assert ring.index == 0
    assert ring.populated == 0


def test_remember_cycles_index_and_saturates(library, fake_lib, network):
    ring = MemoryRing(library, slot_size=4, capacity=3)

    indices = []
    populated = []
    for _ in range(7):
        indices.append(ring.index)
        ring.remember(network)
        populated.append(ring.populated)

    assert indices == [0, 1, 2, 0, 1, 2, 0]
    assert populated == [1, 2, 3, 3, 3, 3, 3]
    assert fake_lib.remembered == indices


def test_average_reads_only_populated_slots(library, fake_lib, network):
    ring = MemoryRing(library, slot_size=4, capacity=3)

    fake_lib.network_predict_image(network, IMAGE(fake_lib.network.w, fake_lib.network.h, 3))
    ring.remember(network)
    with ring.average(network, 640, 480, 0.5, 0.5) as dets:
        assert dets.num == 1

    populated, average, w, h, _, _ = fake_lib.averages[-1]
    assert populated == 1
    # Unwritten slots hold -1 and must not be averaged in
    assert average == 1.0
    assert (w, h) == (640, 480)


def test_average_result_is_freed_once(library, fake_lib, network):
    ring = MemoryRing(library, slot_size=4, capacity=1)
    ring.remember(network)
    dets = ring.average(network, 10, 10, 0.5, 0.5)
    dets.release()
    dets.release()
    assert fake_lib.freed["detections"] == 1


def test_failed_remember_does_not_advance(library, fake_lib, network):
    ring = MemoryRing(library, slot_size=4, capacity=3)
    fake_lib.fail.add("network_remember_memory")

    with pytest.raises(NativeCallError):
        ring.remember(network)

    assert ring.index == 0
    assert ring.populated == 0


def test_reset_reallocates(library, fake_lib, network):
    ring = MemoryRing(library, slot_size=4, capacity=3)
    ring.remember(network)

    ring.reset(5)

    assert ring.capacity == 5
    assert ring.index == 0
    assert ring.populated == 0
    assert fake_lib.freed["memory"] == 1
    assert fake_lib.leaks() == ["memory"]


def test_reset_keeps_capacity_by_default(library):
    ring = MemoryRing(library, slot_size=4, capacity=2)
    ring.reset()
    assert ring.capacity == 2


def test_destroy_is_idempotent(library, fake_lib):
    ring = MemoryRing(library, slot_size=4, capacity=3)
    ring.destroy()
    ring.destroy()
    assert fake_lib.freed["memory"] == 1
    with pytest.raises(ValueError):
        ring.slots


def test_capacity_must_be_positive(library):
    with pytest.raises(ValueError):
        MemoryRing(library, slot_size=4, capacity=0)


def test_null_slots_raise(library, fake_lib):
    fake_lib.network_memory_make = lambda count, size: FLOAT_PP()
    with pytest.raises(NativeCallError, match="NULL"):
        MemoryRing(library, slot_size=4, capacity=3)
