"""Haze removal with the dark channel prior (He, Sun and Tang, CVPR 2009).

In haze-free outdoor patches at least one colour channel is close to zero
somewhere. The patch minimum of the per-pixel RGB minimum (the dark channel)
therefore measures how much airlight a region carries, which gives both the
atmospheric light and a per-pixel transmission estimate.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .buffers import ensure_rgba, to_uint8, with_rgb

LOGGER = logging.getLogger("adjustment_engine")

DEFAULT_PATCH_SIZE = 15
FAST_SCALE = 4
TOP_FRACTION = 0.001
OMEGA = 0.95
REFINE_RADIUS = 30
MIN_TRANSMISSION = 0.1
MIN_ATMOSPHERIC_LIGHT = 1.0
HAZE_BLEND = 0.6


def _min_filter_1d(values: np.ndarray, half: int, axis: int) -> np.ndarray:
    if half <= 0:
        return values.copy()
    pad = [(0, 0)] * values.ndim
    pad[axis] = (half, half)
    padded = np.moveaxis(np.pad(values, pad, mode="edge"), axis, 0)
    length = values.shape[axis]
    result = padded[:length].copy()
    for offset in range(1, 2 * half + 1):
        np.minimum(result, padded[offset:offset + length], out=result)
    return np.moveaxis(result, 0, axis)


def _patch_minimum(values: np.ndarray, patch_size: int) -> np.ndarray:
    half = patch_size // 2
    return _min_filter_1d(_min_filter_1d(values, half, axis=1), half, axis=0)


def dark_channel(arr: np.ndarray, patch_size: int = DEFAULT_PATCH_SIZE) -> np.ndarray:
    """Return the dark channel of *arr* normalised to [0, 1].

    Each value is the smallest RGB component found within a
    ``patch_size`` square around the pixel, with edges replicated.
    """
    ensure_rgba(arr)
    per_pixel = arr[..., :3].min(axis=-1)
    return _patch_minimum(per_pixel, patch_size).astype(np.float64) / 255.0


def _bilinear_upsample(small: np.ndarray, height: int, width: int, scale: int) -> np.ndarray:
    small_height, small_width = small.shape

    def _axis(size: int, small_size: int):
        positions = np.arange(size, dtype=np.float64) / scale
        lower = np.minimum(np.floor(positions).astype(np.intp), small_size - 1)
        upper = np.minimum(lower + 1, small_size - 1)
        fraction = np.clip(positions - lower, 0.0, 1.0)
        return lower, upper, fraction

    y0, y1, fy = _axis(height, small_height)
    x0, x1, fx = _axis(width, small_width)
    fx = fx[None, :]
    top = small[y0][:, x0] * (1.0 - fx) + small[y0][:, x1] * fx
    bottom = small[y1][:, x0] * (1.0 - fx) + small[y1][:, x1] * fx
    return top * (1.0 - fy[:, None]) + bottom * fy[:, None]


def fast_dark_channel(arr: np.ndarray, patch_size: int = DEFAULT_PATCH_SIZE) -> np.ndarray:
    """Approximate :func:`dark_channel` at quarter resolution.

    The input is point-sampled every fourth pixel, processed with a patch of
    ``max(3, patch_size // 4)`` and upsampled bilinearly. Images smaller
    than four pixels along an axis use the full-resolution computation.
    """
    ensure_rgba(arr)
    height, width = arr.shape[:2]
    small_height, small_width = height // FAST_SCALE, width // FAST_SCALE
    if small_height < 1 or small_width < 1:
        return dark_channel(arr, patch_size)
    small = arr[: small_height * FAST_SCALE : FAST_SCALE, : small_width * FAST_SCALE : FAST_SCALE]
    small_dark = dark_channel(small, max(3, patch_size // FAST_SCALE))
    return _bilinear_upsample(small_dark, height, width, FAST_SCALE)


def estimate_atmospheric_light(arr: np.ndarray, dark: np.ndarray) -> np.ndarray:
    """Estimate the airlight colour as a float array ``(r, g, b)``.

    Among the 0.1% of pixels with the highest dark channel (at least one
    pixel), the one with the largest ``r + g + b`` wins. An all-black
    candidate set falls back to white.
    """
    ensure_rgba(arr)
    count = max(1, int(dark.size * TOP_FRACTION))
    order = np.argsort(-dark.ravel(), kind="stable")[:count]
    candidates = arr[..., :3].reshape(-1, 3)[order].astype(np.float64)
    intensity = candidates.sum(axis=-1)
    if intensity.max() <= 0:
        return np.array([255.0, 255.0, 255.0])
    return candidates[int(np.argmax(intensity))]


def transmission_map(
    arr: np.ndarray,
    atmospheric_light: np.ndarray,
    omega: float = OMEGA,
    patch_size: int = DEFAULT_PATCH_SIZE,
    fast: bool = True,
) -> np.ndarray:
    """Return ``1 - omega * dark(I / A)`` for every pixel."""
    light = np.maximum(np.asarray(atmospheric_light, dtype=np.float64), MIN_ATMOSPHERIC_LIGHT)
    normalised = with_rgb(arr, to_uint8(np.minimum(255.0, arr[..., :3] / light * 255.0)))
    dark = fast_dark_channel(normalised, patch_size) if fast else dark_channel(normalised, patch_size)
    return 1.0 - omega * dark


def refine_transmission(transmission: np.ndarray, radius: int = REFINE_RADIUS) -> np.ndarray:
    """Smooth a transmission map with a ``2 * (radius // 2) + 1`` box filter."""
    half = radius // 2
    if half <= 0:
        return np.asarray(transmission, dtype=np.float64).copy()
    size = 2 * half + 1
    padded = np.pad(np.asarray(transmission, dtype=np.float64), half, mode="edge")
    summed = np.cumsum(np.cumsum(padded, axis=0), axis=1)
    summed = np.pad(summed, ((1, 0), (1, 0)))
    window = summed[size:, size:] - summed[:-size, size:] - summed[size:, :-size] + summed[:-size, :-size]
    return window / float(size * size)


def apply_dehaze(
    arr: np.ndarray,
    dehaze: float,
    *,
    fast: bool = False,
    patch_size: int = DEFAULT_PATCH_SIZE,
    atmospheric_light: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Remove (positive) or add (negative) haze for a -100..100 slider value.

    Positive values recover ``J = (I - A) / t + A`` with ``omega`` scaled by
    the slider strength and ``t`` floored at 0.1. Negative values blend the
    image toward the atmospheric light by up to 60%. 0 returns a copy.
    """
    ensure_rgba(arr)
    strength = max(-100.0, min(100.0, dehaze)) / 100.0
    if strength == 0:
        return arr.copy()

    if atmospheric_light is None:
        dark = fast_dark_channel(arr, patch_size) if fast else dark_channel(arr, patch_size)
        atmospheric_light = estimate_atmospheric_light(arr, dark)
    light = np.maximum(np.asarray(atmospheric_light, dtype=np.float64), MIN_ATMOSPHERIC_LIGHT)
    rgb = arr[..., :3].astype(np.float64)

    if strength < 0:
        blend = HAZE_BLEND * abs(strength)
        LOGGER.debug("Adding haze blend=%.3f airlight=%s", blend, light.tolist())
        return with_rgb(arr, to_uint8(rgb * (1.0 - blend) + light * blend))

    transmission = transmission_map(arr, light, OMEGA * strength, patch_size, fast)
    transmission = np.maximum(refine_transmission(transmission), MIN_TRANSMISSION)
    LOGGER.debug(
        "Dehaze strength=%.2f airlight=%s transmission=[%.3f, %.3f]",
        strength,
        light.tolist(),
        float(transmission.min()),
        float(transmission.max()),
    )
    recovered = (rgb - light) / transmission[..., None] + light
    return with_rgb(arr, to_uint8(recovered))


__all__ = [
    "apply_dehaze",
    "dark_channel",
    "estimate_atmospheric_light",
    "fast_dark_channel",
    "refine_transmission",
    "transmission_map",
]
