"""Conversion between interleaved RGB bytes and darknet's planar floats.

Callers hold images as ``H x W x C`` uint8 buffers. darknet stores them as
``C x H x W`` float32 planes scaled to [0, 1]:

    planar[k*w*h + i*w + j] = interleaved[i*(c*w) + j*c + k] / 255

The round trip is exact for 8-bit input because the inverse rounds to the
nearest sample; arbitrary float input is quantized to 8 bits.
"""

import numpy as np


def _as_uint8(buffer, size: int) -> np.ndarray:
    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise ValueError(f"Expected uint8 samples, got {buffer.dtype}")
        data = buffer.reshape(-1)
    else:
        data = np.frombuffer(buffer, dtype=np.uint8)
    if data.size != size:
        raise ValueError(f"Buffer has {data.size} samples, expected {size}")
    return data


def to_planar(buffer, w: int, h: int, c: int) -> np.ndarray:
    """Convert an interleaved RGB buffer to darknet's planar float layout.

    Args:
        buffer: ``h * w * c`` bytes (bytes, bytearray, memoryview or ndarray).
        w: Width in pixels.
        h: Height in pixels.
        c: Channel count.

    Returns:
        Contiguous float32 array of length ``w * h * c``.

    Raises:
        ValueError: If the buffer size does not match ``w * h * c``,
            or an array buffer is not uint8.
    """
    data = _as_uint8(buffer, w * h * c)
    planar = data.reshape(h, w, c).transpose(2, 0, 1).astype(np.float32) / 255.0
    return np.ascontiguousarray(planar, dtype=np.float32).reshape(-1)


def to_interleaved(planar, w: int, h: int, c: int) -> np.ndarray:
    """Convert darknet planar floats back to an interleaved uint8 buffer.

    Args:
        planar: ``c * h * w`` floats in [0, 1].
        w: Width in pixels.
        h: Height in pixels.
        c: Channel count.

    Returns:
        Contiguous uint8 array of length ``w * h * c``.
    """
    data = np.asarray(planar, dtype=np.float32).reshape(-1)
    if data.size != w * h * c:
        raise ValueError(f"Buffer has {data.size} samples, expected {w * h * c}")
    scaled = np.rint(data.reshape(c, h, w).transpose(1, 2, 0) * 255.0)
    return np.ascontiguousarray(np.clip(scaled, 0, 255).astype(np.uint8)).reshape(-1)
