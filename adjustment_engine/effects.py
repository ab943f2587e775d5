"""Finishing effects: radial vignette and film grain."""
from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
from PIL import Image

from .buffers import ensure_rgba, to_uint8, with_rgb

LOGGER = logging.getLogger("adjustment_engine")

GRAIN_STRENGTH = 40.0
MAX_GRAIN_SCALE = 4.0


def _unit(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(100.0, value)) / 100.0


def _smoothstep(edge0: float, edge1: float, x: np.ndarray) -> np.ndarray:
    t = np.clip((x - edge0) / max(edge1 - edge0, 1e-6), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def vignette_mask(height: int, width: int, size: float = 50.0, feather: float = 50.0) -> np.ndarray:
    """Return the vignette weight in [0, 1] for every pixel.

    Distance is measured from the image centre and normalised so the corners
    sit at 1. The falloff starts at ``0.2 + 0.6 * size`` and widens with
    *feather*; both arguments are 0-100 slider values.
    """
    ys = (np.arange(height, dtype=np.float64) + 0.5) / height - 0.5
    xs = (np.arange(width, dtype=np.float64) + 0.5) / width - 0.5
    distance = np.sqrt(ys[:, None] ** 2 + xs[None, :] ** 2) / math.sqrt(0.5)
    inner = 0.2 + 0.6 * _unit(size)
    outer = inner + 0.05 + 0.75 * _unit(feather)
    return _smoothstep(inner, outer, distance)


def apply_vignette(arr: np.ndarray, amount: float, size: float = 50.0, feather: float = 50.0) -> np.ndarray:
    """Darken the image edges by up to *amount* percent."""
    ensure_rgba(arr)
    strength = _unit(amount)
    if strength == 0:
        return arr.copy()
    mask = vignette_mask(arr.shape[0], arr.shape[1], size, feather)
    LOGGER.debug("Vignette amount=%.2f size=%s feather=%s", strength, size, feather)
    scale = 1.0 - strength * mask
    return with_rgb(arr, to_uint8(arr[..., :3].astype(np.float64) * scale[..., None]))


def grain_scale(size: float) -> float:
    """Map a 0-100 grain size to the noise cell size in pixels (1 to 4)."""
    return 1.0 + _unit(size) * (MAX_GRAIN_SCALE - 1.0)


def grain_noise(height: int, width: int, size: float = 50.0, seed: Optional[int] = 0) -> np.ndarray:
    """Zero-mean unit-variance noise field, upsampled for coarser grain."""
    scale = grain_scale(size)
    small_height = max(1, int(math.ceil(height / scale)))
    small_width = max(1, int(math.ceil(width / scale)))
    rng = np.random.default_rng(seed)
    noise = rng.standard_normal((small_height, small_width)).astype(np.float32)
    if (small_height, small_width) == (height, width):
        return noise.astype(np.float64)
    resized = Image.fromarray(noise).resize((width, height), Image.Resampling.BILINEAR)
    return np.asarray(resized, dtype=np.float64)


def apply_grain(
    arr: np.ndarray,
    amount: float,
    size: float = 50.0,
    *,
    seed: Optional[int] = 0,
) -> np.ndarray:
    """Add monochrome film grain.

    The same noise value is added to all three channels of a pixel with a
    standard deviation of up to 40 levels at ``amount=100``. Identical
    seeds give identical output.
    """
    ensure_rgba(arr)
    strength = _unit(amount)
    if strength == 0:
        return arr.copy()
    noise = grain_noise(arr.shape[0], arr.shape[1], size, seed)
    LOGGER.debug("Grain amount=%.2f size=%s seed=%s", strength, size, seed)
    rgb = arr[..., :3].astype(np.float64) + (noise * strength * GRAIN_STRENGTH)[..., None]
    return with_rgb(arr, to_uint8(rgb))


__all__ = [
    "apply_grain",
    "apply_vignette",
    "grain_noise",
    "grain_scale",
    "vignette_mask",
]
