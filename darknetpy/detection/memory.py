"""Ring of native prediction slots for temporally averaged detections."""

import ctypes
import logging

from ..errors import NativeCallError
from ..native.handles import DetectionsHandle, MemoryHandle
from ..native.library import DarknetLibrary

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 3


class MemoryRing:
    """Fixed-capacity circular buffer of network output snapshots.

    Each :meth:`remember` copies the network's current output into the slot
    at :attr:`index` and moves the index on. Averaging only ever reads the
    first :attr:`populated` slots, so a freshly created ring never exposes
    uninitialized memory.

    Not thread-safe: callers must not run two operations concurrently.

    Args:
        library: Bound libdarknet.
        slot_size: Floats per slot (the network's output size).
        capacity: Number of slots.
    """

    def __init__(self, library: DarknetLibrary, slot_size: int, capacity: int = DEFAULT_CAPACITY):
        self.library = library
        self.slot_size = slot_size
        self._capacity = capacity
        self._index = 0
        self._populated = 0
        self._slots = None
        self.create(capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def index(self) -> int:
        """Slot the next remember() writes to."""
        return self._index

    @property
    def populated(self) -> int:
        """Number of slots written since the last create()."""
        return self._populated

    @property
    def slots(self) -> MemoryHandle:
        if self._slots is None or self._slots.released:
            raise ValueError("memory ring has been destroyed")
        return self._slots

    def create(self, capacity: int) -> None:
        """Allocate ``capacity`` slots and rewind the ring."""
        if capacity < 1:
            raise ValueError(f"memory capacity must be at least 1, got {capacity}")
        logger.debug("making memory with %d slots", capacity)
        raw = self.library.call("network_memory_make", capacity, self.slot_size)
        if not raw:
            raise NativeCallError("network_memory_make", message="network_memory_make returned NULL")
        self._slots = MemoryHandle(
            raw, capacity, lambda slots: self.library.call("network_memory_free", slots, capacity)
        )
        self._capacity = capacity
        self._index = 0
        self._populated = 0

    def destroy(self) -> None:
        """Free the slots. Safe to call more than once."""
        if self._slots is not None:
            self._slots.release()
            self._slots = None

    def reset(self, capacity: int = None) -> None:
        """Free the slots and allocate a new ring.

        Args:
            capacity: New slot count; keeps the current one if None.
        """
        if capacity is None:
            capacity = self._capacity
        logger.debug("resetting memory to %d slots", capacity)
        self.destroy()
        self.create(capacity)

    def remember(self, network) -> None:
        """Store the network's current output in the next slot."""
        logger.debug("remember network: index=%d populated=%d", self._index, self._populated)
        self.library.call("network_remember_memory", network, self.slots.value, self._index)
        self._index = (self._index + 1) % self._capacity
        self._populated = min(self._populated + 1, self._capacity)

    def average(self, network, w: int, h: int, thresh: float, hier_thresh: float) -> DetectionsHandle:
        """Average the populated slots into a detection array.

        Args:
            network: Network pointer.
            w: Width of the source image.
            h: Height of the source image.
            thresh: Confidence threshold.
            hier_thresh: Hierarchy threshold.

        Returns:
            Owning handle for the native detection array.
        """
        num = ctypes.c_int(0)
        dets = self.library.call(
            "network_avg_predictions",
            network,
            self.slot_size,
            self.slots.value,
            self._populated,
            ctypes.pointer(num),
            w,
            h,
            thresh,
            hier_thresh,
        )
        count = num.value
        if not dets:
            if count:
                raise NativeCallError(
                    "network_avg_predictions",
                    message=f"network_avg_predictions returned NULL for {count} detections",
                )
            return DetectionsHandle(dets, 0)
        return DetectionsHandle(
            dets, count, lambda d: self.library.call("free_detections", d, count)
        )
