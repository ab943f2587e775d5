"""Perceptual luminance and HSL conversions used by the tone stages.

All helpers accept scalars or numpy arrays of matching shape, so the same
code serves single-pixel checks and whole-buffer processing. RGB values are
on the 0-255 scale, hue is in degrees and saturation/lightness in [0, 1].
"""
from __future__ import annotations

from typing import Tuple, Union

import numpy as np

from .buffers import ensure_rgba

ArrayLike = Union[float, np.ndarray]

REC709_WEIGHTS = (0.2126, 0.7152, 0.0722)


def _round_half_up(values: ArrayLike) -> ArrayLike:
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5)


def luminance(r: ArrayLike, g: ArrayLike, b: ArrayLike) -> ArrayLike:
    """Rec. 709 relative luminance on the 0-255 scale."""
    return REC709_WEIGHTS[0] * r + REC709_WEIGHTS[1] * g + REC709_WEIGHTS[2] * b


def normalized_luminance(r: ArrayLike, g: ArrayLike, b: ArrayLike) -> ArrayLike:
    """Rec. 709 luminance normalised to [0, 1]."""
    return luminance(r, g, b) / 255.0


def luminance_map(arr: np.ndarray) -> np.ndarray:
    """Return the normalised luminance of every pixel as a 2D float array."""
    ensure_rgba(arr)
    rgb = arr[..., :3].astype(np.float64)
    return normalized_luminance(rgb[..., 0], rgb[..., 1], rgb[..., 2])


def rgb_to_hsl(r: ArrayLike, g: ArrayLike, b: ArrayLike) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convert 0-255 RGB to hue (degrees), saturation and lightness.

    Achromatic inputs (``r == g == b``) yield hue 0 and saturation 0. When
    several channels share the maximum, red takes precedence over green and
    green over blue.
    """
    r = np.asarray(r, dtype=np.float64) / 255.0
    g = np.asarray(g, dtype=np.float64) / 255.0
    b = np.asarray(b, dtype=np.float64) / 255.0

    maxc = np.maximum(np.maximum(r, g), b)
    minc = np.minimum(np.minimum(r, g), b)
    lightness = (maxc + minc) / 2.0
    delta = maxc - minc
    chromatic = delta != 0

    denominator = np.where(lightness > 0.5, 2.0 - maxc - minc, maxc + minc)
    saturation = np.divide(delta, denominator, out=np.zeros_like(delta), where=chromatic & (denominator != 0))

    safe_delta = np.where(chromatic, delta, 1.0)
    hue_r = (g - b) / safe_delta + np.where(g < b, 6.0, 0.0)
    hue_g = (b - r) / safe_delta + 2.0
    hue_b = (r - g) / safe_delta + 4.0
    hue = np.select([maxc == r, maxc == g], [hue_r, hue_g], default=hue_b) / 6.0
    hue = np.where(chromatic, hue, 0.0) * 360.0
    return hue, saturation, lightness


def _hue_to_channel(p: np.ndarray, q: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = np.where(t < 0, t + 1.0, t)
    t = np.where(t > 1, t - 1.0, t)
    return np.select(
        [t < 1.0 / 6.0, t < 0.5, t < 2.0 / 3.0],
        [p + (q - p) * 6.0 * t, q, p + (q - p) * (2.0 / 3.0 - t) * 6.0],
        default=p,
    )


def hsl_to_rgb(h: ArrayLike, s: ArrayLike, l: ArrayLike) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convert hue (degrees), saturation and lightness to 0-255 RGB.

    Channels are rounded half up, so RGB -> HSL -> RGB reproduces 8-bit input
    within one level and achromatic input exactly.
    """
    h = np.asarray(h, dtype=np.float64) / 360.0
    s = np.asarray(s, dtype=np.float64)
    l = np.asarray(l, dtype=np.float64)

    q = np.where(l < 0.5, l * (1.0 + s), l + s - l * s)
    p = 2.0 * l - q
    r = _hue_to_channel(p, q, h + 1.0 / 3.0)
    g = _hue_to_channel(p, q, h)
    b = _hue_to_channel(p, q, h - 1.0 / 3.0)

    achromatic = s == 0
    r = np.where(achromatic, l, r)
    g = np.where(achromatic, l, g)
    b = np.where(achromatic, l, b)
    return _round_half_up(r * 255.0), _round_half_up(g * 255.0), _round_half_up(b * 255.0)


def preserve_color_with_luminance(
    r: ArrayLike, g: ArrayLike, b: ArrayLike, new_luminance: ArrayLike
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Rebuild RGB at a new lightness while keeping hue and saturation.

    The target is clamped to [0, 1]. For a grey pixel the result is
    ``round(255 * new_luminance)`` on every channel.
    """
    hue, saturation, _ = rgb_to_hsl(r, g, b)
    target = np.clip(np.asarray(new_luminance, dtype=np.float64), 0.0, 1.0)
    return hsl_to_rgb(hue, saturation, target)


__all__ = [
    "REC709_WEIGHTS",
    "hsl_to_rgb",
    "luminance",
    "luminance_map",
    "normalized_luminance",
    "preserve_color_with_luminance",
    "rgb_to_hsl",
]
