"""Owning wrappers for memory allocated by libdarknet.

Nothing on the native side is garbage collected: every allocation has an
explicit free call. Each handle type wraps one kind of allocation, frees it
at most once, and can be used as a context manager so the free happens on
every exit path.
"""

from typing import Any, Callable, Optional

from .structs import IMAGE


class NativeHandle:
    """Base for a single native allocation."""

    kind = "native"

    def __init__(self, value: Any, release: Optional[Callable[[Any], None]] = None):
        self._value = value
        self._release = release
        self._released = False

    @property
    def value(self) -> Any:
        if self._released:
            raise ValueError(f"{self.kind} handle used after release")
        return self._value

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Free the native allocation. Calling it again does nothing."""
        if self._released:
            return
        self._released = True
        if self._release is not None:
            self._release(self._value)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    def __repr__(self):
        state = "released" if self._released else "live"
        return f"<{type(self).__name__} {state}>"


class NetworkHandle(NativeHandle):
    """A loaded network (``network *``)."""

    kind = "network"


class ImageHandle(NativeHandle):
    """An ``image`` struct.

    Args:
        image: The IMAGE value returned by the library.
        release: Free function, or None when the pixel data belongs to
            a Python buffer.
        keepalive: Python object that owns the pixel data, if any.
    """

    kind = "image"

    def __init__(self, image: IMAGE, release=None, keepalive=None):
        super().__init__(image, release)
        self._keepalive = keepalive

    @property
    def owned(self) -> bool:
        """True if libdarknet allocated the pixel data and must free it."""
        return self._release is not None

    @property
    def width(self) -> int:
        return self._value.w

    @property
    def height(self) -> int:
        return self._value.h

    @property
    def channels(self) -> int:
        return self._value.c

    def release(self) -> None:
        super().release()
        self._keepalive = None


class DetectionsHandle(NativeHandle):
    """A ``detection *`` array and its length."""

    kind = "detections"

    def __init__(self, dets, num: int, release=None):
        super().__init__(dets, release)
        self.num = num

    def records(self):
        """Yield each DETECTION in the array."""
        dets = self.value
        for i in range(self.num):
            yield dets[i]

    def __len__(self):
        return self.num


class MemoryHandle(NativeHandle):
    """The ``float **`` slot array used by the memory ring."""

    kind = "memory"

    def __init__(self, slots, count: int, release=None):
        super().__init__(slots, release)
        self.count = count
