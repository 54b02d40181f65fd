"""YOLO detection through pjreddie's darknet shared library."""

import asyncio
import functools
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from typing import List, Optional, Tuple, Union

import numpy as np

from ..config import DarknetConfig
from ..core.codec import to_interleaved, to_planar
from ..errors import ConfigurationError, DisposedError, NativeCallError
from ..native.handles import DetectionsHandle, ImageHandle, NativeHandle, NetworkHandle
from ..native.library import DarknetLibrary, load_library
from ..native.structs import FLOAT_P, IMAGE, make_metadata
from .base import Box, BufferImage, Detection, ImageSource, Thresholds
from .memory import MemoryRing

logger = logging.getLogger(__name__)


def _image_value(image: Union[ImageHandle, IMAGE]) -> IMAGE:
    if isinstance(image, ImageHandle):
        return image.value
    return image


class Darknet:
    """A loaded darknet network with a memory ring for averaged detections.

    Loading takes a while, so create one instance early and reuse it.
    Native calls on the inference path run one at a time on a dedicated
    worker thread and are awaited from the caller's event loop.

    A single instance must not run two :meth:`detect` calls concurrently;
    the memory ring and the network's per-call state are shared.

    Attributes:
        config: The configuration the network was loaded from.
        names: Class names, indexed by class id.
        library: Bound libdarknet.
        output_size: Length of the network's flattened output vector.
        memory: Ring of remembered outputs used for averaging.
    """

    def __init__(self, config: DarknetConfig, library: Optional[DarknetLibrary] = None):
        """Load the network.

        Args:
            config: Network, weights and class names.
            library: Bound libdarknet; loaded from ``config.library_path``
                when omitted.

        Raises:
            ConfigurationError: If the configuration is incomplete.
            NativeCallError: If the network cannot be loaded.
        """
        if config is None:
            raise ConfigurationError("A config file is required")
        config.validate()

        self.config = config
        self.names = config.resolve_names()
        self.meta = make_metadata(self.names)
        self.library = library if library is not None else load_library(config.library_path)
        self._disposed = False

        logger.debug("loading network %s with weights %s", config.config, config.weights)
        raw = self.library.call(
            "load_network", os.fsencode(config.config), os.fsencode(config.weights), 0
        )
        if not raw:
            raise NativeCallError("load_network", message=f"Cannot load network from {config.config}")
        self._network = NetworkHandle(raw, lambda net: self.library.call("free_network", net))
        self.net = raw.contents

        try:
            self.library.call("set_batch_network", raw, 1)
            self.output_size = self.library.call("network_output_size", raw)
            self.memory = MemoryRing(self.library, self.output_size, config.memory)
        except Exception:
            self._network.release()
            raise

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="darknet")

    @property
    def classes(self) -> int:
        return len(self.names)

    @property
    def input_size(self) -> Tuple[int, int]:
        """Declared network input (width, height)."""
        self._check_live()
        return self.net.w, self.net.h

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_live(self) -> None:
        if self._disposed:
            raise DisposedError("Darknet instance has been disposed")

    async def _in_worker(self, fn, *args):
        """Run ``fn`` on the worker thread and await its result.

        A native call cannot be interrupted, so cancelling the awaiting task
        still waits for the call to return before the cancellation unwinds.
        A handle produced by the abandoned call is released.
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, functools.partial(fn, *args))
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            while not future.done():
                try:
                    await asyncio.shield(future)
                except asyncio.CancelledError:
                    continue
            if future.exception() is None and isinstance(future.result(), NativeHandle):
                future.result().release()
            raise

    async def _native(self, name: str, *args):
        if self.library.is_async(name):
            return await self._in_worker(self.library.call, name, *args)
        return self.library.call(name, *args)

    def dispose(self) -> None:
        """Free the network and the memory ring.

        Calling it again does nothing; any other use afterwards raises
        :class:`DisposedError`.
        """
        if self._disposed:
            return
        self._disposed = True
        logger.debug("disposing network")
        try:
            self._network.release()
        finally:
            self.memory.destroy()
            self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()

    def reset_memory(self, capacity: Optional[int] = None) -> None:
        """Reallocate the memory ring, optionally with a new slot count."""
        self._check_live()
        self.memory.reset(capacity)

    # Images

    def load_image(self, path: Union[str, os.PathLike]) -> ImageHandle:
        """Load an image file with darknet's loader.

        Returns:
            An owned handle; release it (or use ``with``) when done.
        """
        self._check_live()
        image = self.library.call("load_image_color", os.fsencode(path), 0, 0)
        if not image.data:
            raise NativeCallError("load_image_color", message=f"Cannot load image {path}")
        return ImageHandle(image, self._free_image)

    def image_from_planar(self, data: np.ndarray, w: int, h: int, c: int) -> ImageHandle:
        """Wrap planar float data as a darknet image without copying.

        The returned handle keeps ``data`` alive; darknet never frees it.
        """
        self._check_live()
        planar = np.ascontiguousarray(data, dtype=np.float32)
        image = self.library.call("float_to_image", w, h, c, planar.ctypes.data_as(FLOAT_P))
        return ImageHandle(image, keepalive=planar)

    async def rgb_buffer_to_image(self, buffer, w: int, h: int, c: int) -> ImageHandle:
        """Convert an interleaved RGB buffer to a darknet image.

        Args:
            buffer: ``h * w * c`` bytes.
            w: Width in pixels.
            h: Height in pixels.
            c: Channel count.

        Returns:
            A handle whose pixel data belongs to Python.
        """
        self._check_live()
        planar = to_planar(buffer, w, h, c)
        image = await self._native("float_to_image", w, h, c, planar.ctypes.data_as(FLOAT_P))
        return ImageHandle(image, keepalive=planar)

    def image_to_rgb_buffer(self, image: Union[ImageHandle, IMAGE]) -> np.ndarray:
        """Read a darknet image back as interleaved uint8 samples."""
        value = _image_value(image)
        size = value.w * value.h * value.c
        planar = np.ctypeslib.as_array(value.data, shape=(size,))
        return to_interleaved(planar, value.w, value.h, value.c)

    async def letterbox_image(self, image: Union[ImageHandle, IMAGE]) -> ImageHandle:
        """Resize and pad an image to the network's input size.

        The source image is left untouched.
        """
        w, h = self.input_size
        copy = self._owned_image("copy_image", self.library.call("copy_image", _image_value(image)))
        with copy:
            return await self._in_worker(self._letterbox, copy.value, w, h)

    def _letterbox(self, image: IMAGE, w: int, h: int) -> ImageHandle:
        return self._owned_image("letterbox_image", self.library.call("letterbox_image", image, w, h))

    def _owned_image(self, entry_point: str, image: IMAGE) -> ImageHandle:
        if not image.data:
            raise NativeCallError(entry_point, message=f"{entry_point} returned an empty image")
        return ImageHandle(image, self._free_image)

    def free_image(self, image: ImageHandle) -> None:
        image.release()

    def _free_image(self, image: IMAGE) -> None:
        self.library.call("free_image", image)

    async def _acquire_image(self, image: ImageSource) -> ImageHandle:
        if isinstance(image, (str, os.PathLike)):
            return self.load_image(image)
        if isinstance(image, np.ndarray):
            image = BufferImage.from_array(image)
        if isinstance(image, BufferImage):
            return await self.rgb_buffer_to_image(image.data, image.width, image.height, image.channels)
        raise TypeError(f"Unsupported image type: {type(image).__name__}")

    # Detection steps

    async def detection(
        self,
        image: Union[ImageHandle, IMAGE],
        w: int,
        h: int,
        thresh: float,
        hier_thresh: float,
    ) -> DetectionsHandle:
        """Run the network, remember its output and average the ring.

        Args:
            image: Network-sized input image.
            w: Width of the source image; boxes are scaled to it.
            h: Height of the source image.
            thresh: Confidence threshold.
            hier_thresh: Hierarchy threshold.

        Returns:
            Owning handle for the raw detection array.
        """
        self._check_live()
        net = self._network.value
        logger.debug("setting input image")
        await self._native("network_predict_image", net, _image_value(image))
        await self._in_worker(self.memory.remember, net)
        logger.debug("predicting")
        return await self._in_worker(self.memory.average, net, w, h, thresh, hier_thresh)

    async def nms(self, dets: DetectionsHandle, nms: float) -> None:
        """Run non-max suppression over a detection array in place."""
        self._check_live()
        if dets.num:
            await self._native("do_nms_obj", dets.value, dets.num, self.classes, nms)

    def interpretation(self, dets: DetectionsHandle) -> List[Detection]:
        """Decode a detection array into one Detection per positive class."""
        detections = []
        for det in dets.records():
            b = det.bbox
            box = Box(x=b.x, y=b.y, w=b.w, h=b.h)
            for j in range(self.classes):
                prob = det.prob[j]
                if prob > 0:
                    detections.append(Detection(name=self.names[j], prob=float(prob), box=box))
        return detections

    def free_detections(self, dets: DetectionsHandle) -> None:
        dets.release()

    async def detect(
        self, image: ImageSource, thresholds: Optional[Thresholds] = None
    ) -> List[Detection]:
        """Detect objects in an image.

        Args:
            image: Path loaded by darknet, a BufferImage, or an ``H x W x C``
                uint8 array.
            thresholds: Confidence, hierarchy and NMS thresholds.

        Returns:
            Detections with boxes in the input image's coordinates.
        """
        self._check_live()
        thresholds = thresholds or Thresholds()

        with ExitStack() as stack:
            source = stack.enter_context(await self._acquire_image(image))
            w, h = source.width, source.height

            net_input = source
            if (w, h) != self.input_size:
                net_input = stack.enter_context(await self.letterbox_image(source))

            dets = stack.enter_context(
                await self.detection(net_input, w, h, thresholds.thresh, thresholds.hier_thresh)
            )

            logger.debug("doing nms")
            await self.nms(dets, thresholds.nms)

            logger.debug("interpreting %d results", dets.num)
            return self.interpretation(dets)
