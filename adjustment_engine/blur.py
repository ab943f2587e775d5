"""Gaussian and box blur built on the separable convolution primitives."""
from __future__ import annotations

import functools
import logging
import math
from typing import Callable, Optional

import numpy as np

from .buffers import ensure_rgba, to_uint8, with_rgb
from .convolution import separable_convolve

LOGGER = logging.getLogger("adjustment_engine")

MAX_GAUSSIAN_RADIUS = 20
MAX_BOX_RADIUS = 10

BlurFunction = Callable[[np.ndarray, float], np.ndarray]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_radius(radius: float, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, round_half_up(radius)))


@functools.lru_cache(maxsize=64)
def _gaussian_kernel_cached(radius: int, sigma: Optional[float] = None) -> np.ndarray:
    if radius <= 0:
        kernel = np.array([1.0], dtype=np.float64)
        kernel.setflags(write=False)
        return kernel
    sigma = sigma or radius / 3.0
    ax = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(ax ** 2) / (2.0 * sigma ** 2))
    kernel /= np.sum(kernel)
    kernel.setflags(write=False)
    return kernel


def gaussian_kernel(radius: int, sigma: Optional[float] = None) -> np.ndarray:
    """Generate a normalised 1D Gaussian kernel with ``2*radius+1`` taps.

    The cached kernel is read-only; this returns a writable copy.

    Args:
        radius: Kernel half-width in pixels.
        sigma: Standard deviation, defaults to ``radius / 3``.

    Returns:
        1D float64 array summing to 1.
    """
    return _gaussian_kernel_cached(int(radius), sigma).copy()


def gaussian_kernel_cached(radius: int, sigma: Optional[float] = None) -> np.ndarray:
    """Return the cached read-only Gaussian kernel."""
    return _gaussian_kernel_cached(int(radius), sigma)


gaussian_kernel.cache_clear = _gaussian_kernel_cached.cache_clear  # type: ignore[attr-defined]
gaussian_kernel.cache_info = _gaussian_kernel_cached.cache_info  # type: ignore[attr-defined]


def gaussian_blur(arr: np.ndarray, radius: float, sigma: Optional[float] = None) -> np.ndarray:
    """Blur an RGBA buffer with a separable Gaussian kernel.

    Args:
        arr: Input RGBA buffer.
        radius: Blur radius, rounded and clamped to [0, 20].
        sigma: Standard deviation; ``None`` or ``0`` selects ``radius / 3``
            (or 1 for a zero radius).

    Returns:
        Blurred RGBA buffer. A zero radius returns an identical copy.
    """
    ensure_rgba(arr)
    resolved_radius = clamp_radius(radius, 0, MAX_GAUSSIAN_RADIUS)
    if not sigma:
        sigma = resolved_radius / 3.0 if resolved_radius > 0 else 1.0
    kernel = gaussian_kernel_cached(resolved_radius, float(sigma))
    LOGGER.debug("Gaussian blur radius=%s sigma=%.3f", resolved_radius, sigma)
    return separable_convolve(arr, kernel)


def box_blur(arr: np.ndarray, radius: float) -> np.ndarray:
    """Fast preview blur using two mean-filter passes.

    The radius is rounded and clamped to [1, 10]; edges are replicated. The
    result differs from :func:`gaussian_blur` and the two must not be mixed
    within one rendering run.
    """
    ensure_rgba(arr)
    resolved_radius = clamp_radius(radius, 1, MAX_BOX_RADIUS)
    size = 2 * resolved_radius + 1
    height, width = arr.shape[:2]
    LOGGER.debug("Box blur radius=%s", resolved_radius)

    rgb = arr[..., :3].astype(np.float64)
    padded = np.pad(rgb, ((0, 0), (resolved_radius, resolved_radius), (0, 0)), mode="edge")
    horizontal = sum(padded[:, k:k + width] for k in range(size)) / size
    intermediate = to_uint8(horizontal).astype(np.float64)

    padded = np.pad(intermediate, ((resolved_radius, resolved_radius), (0, 0), (0, 0)), mode="edge")
    vertical = sum(padded[k:k + height] for k in range(size)) / size
    return with_rgb(arr, to_uint8(vertical))


BLUR_METHODS = {
    "gaussian": gaussian_blur,
    "box": box_blur,
}


def resolve_blur(method: str) -> BlurFunction:
    """Look up a blur implementation by name (``gaussian`` or ``box``)."""
    try:
        return BLUR_METHODS[method]
    except KeyError as exc:
        raise ValueError(f"Unknown blur method {method!r}; choose from {sorted(BLUR_METHODS)}") from exc


__all__ = [
    "BLUR_METHODS",
    "BlurFunction",
    "box_blur",
    "clamp_radius",
    "gaussian_blur",
    "gaussian_kernel",
    "gaussian_kernel_cached",
    "resolve_blur",
    "round_half_up",
]
