"""Pixel buffer container and 8-bit storage helpers.

Every algorithm in this package works on a ``numpy.uint8`` array shaped
``(height, width, 4)`` holding red, green, blue and alpha. :class:`PixelBuffer`
is the validated boundary type handed over by a host application; the stage
functions accept and return plain arrays so they compose without wrappers.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Union

import numpy as np
from PIL import Image

LOGGER = logging.getLogger("adjustment_engine")

CHANNELS = 4


class InvalidBufferError(ValueError):
    """Raised when a pixel buffer is structurally unusable."""


def to_uint8(values: np.ndarray) -> np.ndarray:
    """Store float values the way an 8-bit clamped array does.

    Values are rounded to the nearest integer (ties to even), clamped to
    [0, 255] and converted to ``uint8``. Non-finite values become 0.
    """
    values = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def ensure_rgba(arr: np.ndarray, *, name: str = "buffer") -> np.ndarray:
    """Validate that *arr* is an RGBA ``uint8`` pixel array.

    Raises:
        InvalidBufferError: If the array has the wrong dtype, rank, channel
            count, or an empty dimension.
    """
    if not isinstance(arr, np.ndarray):
        raise InvalidBufferError(f"{name} must be a numpy array, got {type(arr).__name__}")
    if arr.dtype != np.uint8:
        raise InvalidBufferError(f"{name} must have dtype uint8, got {arr.dtype}")
    if arr.ndim != 3 or arr.shape[2] != CHANNELS:
        raise InvalidBufferError(f"{name} must have shape (height, width, 4), got {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidBufferError(f"{name} has an empty dimension: {arr.shape[1]}x{arr.shape[0]}")
    return arr


def with_rgb(source: np.ndarray, rgb: np.ndarray) -> np.ndarray:
    """Return a new buffer with *rgb* channels and the alpha of *source*."""
    out = np.empty_like(source)
    out[..., :3] = to_uint8(rgb) if rgb.dtype != np.uint8 else rgb
    out[..., 3] = source[..., 3]
    return out


@dataclasses.dataclass(frozen=True)
class PixelBuffer:
    """A width x height grid of RGBA pixels with 8-bit channels.

    Attributes:
        width: Number of pixel columns.
        height: Number of pixel rows.
        data: ``uint8`` array shaped ``(height, width, 4)``.
    """

    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if not isinstance(self.width, (int, np.integer)) or not isinstance(self.height, (int, np.integer)):
            raise InvalidBufferError("Buffer dimensions must be integers")
        if self.width <= 0 or self.height <= 0:
            raise InvalidBufferError(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}"
            )
        ensure_rgba(self.data, name="PixelBuffer.data")
        if self.data.shape[:2] != (self.height, self.width):
            raise InvalidBufferError(
                f"Declared size {self.width}x{self.height} does not match data shape "
                f"{self.data.shape[1]}x{self.data.shape[0]}"
            )

    @classmethod
    def from_bytes(cls, width: int, height: int, raw: Union[bytes, bytearray, memoryview, np.ndarray]) -> "PixelBuffer":
        """Build a buffer from a flat RGBA byte sequence.

        Raises:
            InvalidBufferError: If the dimensions are not positive or the
                byte count differs from ``width * height * 4``.
        """
        if width <= 0 or height <= 0:
            raise InvalidBufferError(f"Buffer dimensions must be positive, got {width}x{height}")
        flat = np.frombuffer(raw, dtype=np.uint8) if not isinstance(raw, np.ndarray) else raw.reshape(-1)
        expected = width * height * CHANNELS
        if flat.size != expected:
            raise InvalidBufferError(
                f"Buffer length {flat.size} does not match {width}x{height}x{CHANNELS} = {expected}"
            )
        return cls(width, height, flat.astype(np.uint8, copy=True).reshape(height, width, CHANNELS))

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PixelBuffer":
        """Wrap a copy of an existing ``(height, width, 4)`` array."""
        ensure_rgba(arr)
        return cls(int(arr.shape[1]), int(arr.shape[0]), arr.copy())

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Convert a Pillow image to an RGBA buffer."""
        rgba = image.convert("RGBA") if image.mode != "RGBA" else image
        return cls.from_array(np.asarray(rgba, dtype=np.uint8))

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.data)

    def to_bytes(self) -> bytes:
        return self.data.tobytes()

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.data.copy())


__all__ = [
    "CHANNELS",
    "InvalidBufferError",
    "PixelBuffer",
    "ensure_rgba",
    "to_uint8",
    "with_rgb",
]
