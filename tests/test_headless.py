import numpy as np
import pytest
from PIL import Image

from darknetpy.config import ProcessingConfig
from darknetpy.core.io import FrameReader
from darknetpy.core.utils import draw_detections
from darknetpy.detection.base import Box, Detection
from darknetpy.runners.headless import format_detections, run_detection


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "frame.png"
    Image.fromarray(np.full((6, 8, 3), 200, dtype=np.uint8)).save(path)
    return path


def test_frame_reader_repeats_still_images(image_path):
    with FrameReader(str(image_path), repeat=3) as reader:
        frames = list(reader)
    assert len(frames) == 3
    assert frames[0].shape == (6, 8, 3)
    assert reader.frame_count == 3


def test_format_detections():
    detections = [Detection(name="dog", prob=0.912, box=Box(10, 20, 30, 40))]
    assert format_detections(2, detections) == "frame 2: dog 0.91 x=10.0 y=20.0 w=30.0 h=40.0"
    assert format_detections(0, []) == "frame 0: no detections"


def test_draw_detections_leaves_input_untouched():
    frame = np.zeros((50, 60, 3), dtype=np.uint8)
    output = draw_detections(frame, [Detection(name="cat", prob=0.5, box=Box(30, 25, 20, 20))])

    assert output.shape == frame.shape
    assert frame.sum() == 0
    assert output.sum() > 0


def test_draw_detections_clamps_boxes_outside_frame():
    frame = np.zeros((20, 20, 3), dtype=np.uint8)
    output = draw_detections(frame, [Detection(name="cat", prob=0.5, box=Box(0, 0, 100, 100))])
    assert output.shape == frame.shape


@pytest.mark.asyncio
async def test_run_detection_over_repeated_image(darknet, fake_lib, image_path, config):
    processing = ProcessingConfig.from_args(
        input_path=str(image_path),
        cfg=config.config,
        weights=config.weights,
        names=config.names,
        frames=4,
    )

    total = await run_detection(processing, darknet=darknet)

    assert total == 8
    assert [a[0] for a in fake_lib.averages] == [1, 2, 3, 3]
    assert not darknet.disposed
