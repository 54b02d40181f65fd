"""Shared fixtures, including a pure-Python stand-in for libdarknet."""

import ctypes
import os
from collections import Counter

import pytest

from darknetpy.config import DarknetConfig
from darknetpy.detection.darknet import Darknet
from darknetpy.native.library import DarknetLibrary
from darknetpy.native.structs import DETECTION, DETECTION_P, FLOAT_P, FLOAT_PP, IMAGE, NETWORK


def _address(ptr) -> int:
    return ctypes.cast(ptr, ctypes.c_void_p).value


class FakeDarknet:
    """Implements the libdarknet entry points with ctypes buffers.

    Every allocation is tracked by address so tests can assert that each
    one is freed exactly once. ``network_predict_image`` fills the output
    vector with the call number, and ``network_avg_predictions`` averages
    the populated slots and emits one detection per entry in ``records``.
    """

    def __init__(self, net_w=416, net_h=416, output_size=4, classes=3):
        self.network = NETWORK()
        self.network.w = net_w
        self.network.h = net_h
        self.output_size = output_size
        self.classes = classes
        self._output = (ctypes.c_float * output_size)()

        # (box, probs) per emitted detection record
        self.records = [((0.5, 0.5, 0.2, 0.2), [0.9, 0.0, 0.6])]
        self.fail = set()

        self.calls = []
        self.predictions = 0
        self.averages = []
        self.nms_calls = []
        self.remembered = []
        self.live = {}
        self.freed = Counter()
        self._keep = {}

    # bookkeeping

    def _record(self, name):
        self.calls.append(name)
        if name in self.fail:
            raise OSError(f"{name} failed")

    def _alloc(self, kind, obj, ptr=None):
        address = _address(ptr if ptr is not None else obj)
        self.live[address] = kind
        self._keep[address] = obj
        return address

    def _free(self, kind, address):
        assert self.live.get(address) == kind, f"free of unknown {kind} {address:#x}"
        del self.live[address]
        self.freed[kind] += 1

    def _make_image(self, w, h, c, fill=0.0):
        data = (ctypes.c_float * (w * h * c))(*([fill] * (w * h * c)))
        self._alloc("image", data)
        return IMAGE(w, h, c, ctypes.cast(data, FLOAT_P))

    def leaks(self):
        return sorted(self.live.values())

    # network

    def load_network(self, cfg, weights, clear):
        self._record("load_network")
        ptr = ctypes.pointer(self.network)
        self._alloc("network", self.network, ptr)
        return ptr

    def set_batch_network(self, net, batch):
        self._record("set_batch_network")
        net.contents.batch = batch

    def network_output_size(self, net):
        self._record("network_output_size")
        return self.output_size

    def free_network(self, net):
        self._record("free_network")
        self._free("network", _address(net))

    def get_metadata(self, path):
        raise NotImplementedError

    def get_network_boxes(self, *args):
        raise NotImplementedError

    # images

    def load_image_color(self, path, w, h):
        self._record("load_image_color")
        if not os.path.exists(os.fsdecode(path)):
            return IMAGE()
        return self._make_image(8, 6, 3, fill=0.5)

    def float_to_image(self, w, h, c, data):
        self._record("float_to_image")
        return IMAGE(w, h, c, data)

    def copy_image(self, image):
        self._record("copy_image")
        size = image.w * image.h * image.c
        data = (ctypes.c_float * size)(*image.data[:size])
        self._alloc("image", data)
        return IMAGE(image.w, image.h, image.c, ctypes.cast(data, FLOAT_P))

    def letterbox_image(self, image, w, h):
        self._record("letterbox_image")
        return self._make_image(w, h, image.c, fill=0.5)

    def free_image(self, image):
        self._record("free_image")
        self._free("image", _address(image.data))

    # inference

    def network_predict_image(self, net, image):
        self._record("network_predict_image")
        assert (image.w, image.h) == (self.network.w, self.network.h)
        self.predictions += 1
        for k in range(self.output_size):
            self._output[k] = float(self.predictions)
        return ctypes.cast(self._output, FLOAT_P)

    def network_memory_make(self, count, size):
        self._record("network_memory_make")
        slots = (FLOAT_P * count)()
        rows = []
        for i in range(count):
            row = (ctypes.c_float * size)(*([-1.0] * size))
            rows.append(row)
            slots[i] = ctypes.cast(row, FLOAT_P)
        self._alloc("memory", (slots, rows), slots)
        return ctypes.cast(slots, FLOAT_PP)

    def network_memory_free(self, slots, count):
        self._record("network_memory_free")
        self._free("memory", _address(slots))

    def network_remember_memory(self, net, slots, index):
        self._record("network_remember_memory")
        self.remembered.append(index)
        for k in range(self.output_size):
            slots[index][k] = self._output[k]

    def network_avg_predictions(self, net, size, slots, populated, pnum, w, h, thresh, hier):
        self._record("network_avg_predictions")
        total = sum(slots[i][0] for i in range(populated))
        average = total / populated if populated else 0.0
        self.averages.append((populated, average, w, h, thresh, hier))

        n = len(self.records)
        pnum[0] = n
        dets = (DETECTION * max(n, 1))()
        probs = []
        for i, (box, values) in enumerate(self.records):
            prob = (ctypes.c_float * self.classes)(*values)
            probs.append(prob)
            dets[i].bbox.x, dets[i].bbox.y = box[0] * w, box[1] * h
            dets[i].bbox.w, dets[i].bbox.h = box[2] * w, box[3] * h
            dets[i].classes = self.classes
            dets[i].prob = ctypes.cast(prob, FLOAT_P)
            dets[i].objectness = average
        self._alloc("detections", (dets, probs), dets)
        return ctypes.cast(dets, DETECTION_P)

    def do_nms_obj(self, dets, num, classes, nms):
        self._record("do_nms_obj")
        self.nms_calls.append((num, classes, nms))

    def free_detections(self, dets, num):
        self._record("free_detections")
        self._free("detections", _address(dets))


@pytest.fixture
def fake_lib():
    return FakeDarknet()


@pytest.fixture
def library(fake_lib):
    return DarknetLibrary(fake_lib)


@pytest.fixture
def model_files(tmp_path):
    cfg = tmp_path / "yolo.cfg"
    weights = tmp_path / "yolo.weights"
    cfg.write_text("[net]\n")
    weights.write_bytes(b"\0" * 16)
    return cfg, weights


@pytest.fixture
def config(model_files):
    cfg, weights = model_files
    return DarknetConfig(config=str(cfg), weights=str(weights), names=["a", "b", "c"])


@pytest.fixture
def darknet(config, library):
    net = Darknet(config, library=library)
    yield net
    net.dispose()
