"""Kernel convolution over RGBA buffers with replicated edges."""
from __future__ import annotations

import dataclasses
import logging
from typing import Optional, Sequence, Union

import numpy as np

from .buffers import ensure_rgba, to_uint8, with_rgb

LOGGER = logging.getLogger("adjustment_engine")

KernelLike = Union["Kernel", np.ndarray, Sequence[float], Sequence[Sequence[float]]]


@dataclasses.dataclass(frozen=True)
class Kernel:
    """Convolution weights with an optional normalisation divisor.

    Attributes:
        weights: 1D or 2D array of floating-point weights. Each dimension must
            have odd length so the kernel has a centre sample.
        divisor: Explicit divisor. ``None`` or ``0`` means the sum of the
            weights is used (or 1 when that sum is zero).
    """

    weights: np.ndarray
    divisor: Optional[float] = None

    def __post_init__(self) -> None:
        weights = np.asarray(self.weights, dtype=np.float64)
        if weights.ndim not in (1, 2) or weights.size == 0:
            raise ValueError(f"Kernel must be a non-empty 1D or 2D array, got shape {weights.shape}")
        if any(length % 2 == 0 for length in weights.shape):
            raise ValueError(f"Kernel dimensions must be odd, got shape {weights.shape}")
        object.__setattr__(self, "weights", weights)

    @property
    def resolved_divisor(self) -> float:
        if self.divisor:
            return float(self.divisor)
        total = float(self.weights.sum())
        return total if total != 0 else 1.0


def _as_kernel(kernel: KernelLike, divisor: Optional[float] = None) -> Kernel:
    if isinstance(kernel, Kernel):
        if divisor is None:
            return kernel
        return Kernel(kernel.weights, divisor)
    return Kernel(np.asarray(kernel, dtype=np.float64), divisor)


def convolve(arr: np.ndarray, kernel: KernelLike, divisor: Optional[float] = None, offset: float = 0.0) -> np.ndarray:
    """Apply a square 2D kernel to the RGB channels of *arr*.

    Out-of-bounds samples replicate the nearest edge pixel. Each output
    channel is ``sum / divisor + offset``, rounded and clamped to 8 bits.
    Alpha is copied unchanged.

    Args:
        arr: Input RGBA buffer. It is not modified.
        kernel: 2D kernel (or :class:`Kernel`).
        divisor: Normalisation divisor; auto-computed when omitted or zero.
        offset: Constant added after normalisation.

    Returns:
        Newly allocated RGBA buffer.
    """
    ensure_rgba(arr)
    resolved = _as_kernel(kernel, divisor)
    weights = resolved.weights
    if weights.ndim != 2:
        raise ValueError("convolve expects a 2D kernel; use separable_convolve for 1D kernels")
    k_h, k_w = weights.shape
    half_h, half_w = k_h // 2, k_w // 2
    height, width = arr.shape[:2]

    rgb = arr[..., :3].astype(np.float64)
    padded = np.pad(rgb, ((half_h, half_h), (half_w, half_w), (0, 0)), mode="edge")
    total = np.zeros_like(rgb)
    for ky in range(k_h):
        for kx in range(k_w):
            weight = weights[ky, kx]
            if weight == 0:
                continue
            total += padded[ky:ky + height, kx:kx + width] * weight

    result = total / resolved.resolved_divisor + offset
    return with_rgb(arr, to_uint8(result))


def convolve_1d(arr: np.ndarray, kernel: KernelLike, axis: int) -> np.ndarray:
    """Apply a 1D kernel along *axis* (0 = vertical, 1 = horizontal).

    The kernel is used as given (no normalisation). The result is stored in
    8-bit channels and alpha is copied unchanged.
    """
    ensure_rgba(arr)
    weights = _as_kernel(kernel).weights
    if weights.ndim != 1:
        raise ValueError("convolve_1d expects a 1D kernel")
    if axis not in (0, 1):
        raise ValueError(f"axis must be 0 or 1, got {axis}")
    half = weights.size // 2
    length = arr.shape[axis]

    rgb = arr[..., :3].astype(np.float64)
    pad_width = [(0, 0), (0, 0), (0, 0)]
    pad_width[axis] = (half, half)
    padded = np.pad(rgb, pad_width, mode="edge")
    total = np.zeros_like(rgb)
    for k, weight in enumerate(weights):
        if weight == 0:
            continue
        window = padded[k:k + length] if axis == 0 else padded[:, k:k + length]
        total += window * weight
    return with_rgb(arr, to_uint8(total))


def separable_convolve(arr: np.ndarray, kernel: KernelLike) -> np.ndarray:
    """Convolve horizontally then vertically with the same 1D kernel.

    Equivalent to a 2D convolution with the outer product of a symmetric
    kernel at O(n*k) cost. The intermediate pass is stored in 8 bits. A
    kernel of length 1 is a no-op and returns a copy.
    """
    ensure_rgba(arr)
    weights = _as_kernel(kernel).weights
    if weights.size == 1:
        return arr.copy()
    horizontal = convolve_1d(arr, weights, axis=1)
    return convolve_1d(horizontal, weights, axis=0)


__all__ = [
    "Kernel",
    "convolve",
    "convolve_1d",
    "separable_convolve",
]
