"""Highlight and shadow adjustments with colour preservation."""
from __future__ import annotations

import logging

import numpy as np

from .buffers import ensure_rgba, to_uint8, with_rgb
from .luminance import normalized_luminance, preserve_color_with_luminance, rgb_to_hsl
from .tone_curves import DEFAULT_FEATHER, TonalRange, dual_tone_adjustment, selective_tone_adjustment

LOGGER = logging.getLogger("adjustment_engine")

MIN_LUMINANCE = 0.001


def _normalise_slider(value: float) -> float:
    return max(-100.0, min(100.0, value)) / 100.0


def _rebuild_color(r, g, b, original: np.ndarray, adjusted: np.ndarray) -> np.ndarray:
    # HSL lightness moves by the luminance change; the two differ for saturated pixels
    _, _, lightness = rgb_to_hsl(r, g, b)
    return np.stack(preserve_color_with_luminance(r, g, b, lightness + (adjusted - original)), axis=-1)


def apply_selective_tone(
    arr: np.ndarray,
    adjustment: float,
    tonal_range: TonalRange,
    *,
    feather: float = DEFAULT_FEATHER,
    preserve_color: bool = True,
) -> np.ndarray:
    """Brighten or darken one tonal range of an RGBA buffer.

    Args:
        arr: Input RGBA buffer.
        adjustment: Slider value in [-100, 100]; 0 returns a copy.
        tonal_range: ``"highlights"`` or ``"shadows"``.
        feather: Mask transition width.
        preserve_color: Rebuild colour through HSL. Pixels darker than
            0.001 luminance, or all pixels when disabled, are scaled
            proportionally instead.

    Returns:
        Adjusted RGBA buffer with alpha copied.
    """
    ensure_rgba(arr)
    normalized = _normalise_slider(adjustment)
    if normalized == 0:
        return arr.copy()

    rgb = arr[..., :3].astype(np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    original = normalized_luminance(r, g, b)
    adjusted = selective_tone_adjustment(original, normalized, tonal_range, feather)
    LOGGER.debug("Selective tone range=%s adjustment=%.2f feather=%.2f", tonal_range, normalized, feather)

    ratio = (adjusted / np.maximum(original, MIN_LUMINANCE))[..., None]
    proportional = np.clip(rgb * ratio, 0.0, 255.0)
    if not preserve_color:
        return with_rgb(arr, to_uint8(proportional))

    preserved = _rebuild_color(r, g, b, original, adjusted)
    use_hsl = (original > MIN_LUMINANCE)[..., None]
    return with_rgb(arr, to_uint8(np.where(use_hsl, preserved, proportional)))


def apply_dual_selective_tone(
    arr: np.ndarray,
    highlight_adjustment: float,
    shadow_adjustment: float,
    *,
    feather: float = DEFAULT_FEATHER,
) -> np.ndarray:
    """Adjust highlights then shadows on the same luminance value.

    The colour-preserving reconstruction runs once per pixel, after both
    luminance adjustments. Returns a copy when both sliders are 0.
    """
    ensure_rgba(arr)
    highlight = _normalise_slider(highlight_adjustment)
    shadow = _normalise_slider(shadow_adjustment)
    if highlight == 0 and shadow == 0:
        return arr.copy()

    rgb = arr[..., :3].astype(np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    original = normalized_luminance(r, g, b)
    adjusted = dual_tone_adjustment(original, highlight, shadow, feather)
    LOGGER.debug("Dual selective tone highlights=%.2f shadows=%.2f feather=%.2f", highlight, shadow, feather)
    preserved = _rebuild_color(r, g, b, original, adjusted)
    return with_rgb(arr, to_uint8(preserved))


def optimal_feather(adjustment: float) -> float:
    """Wider feathering for stronger adjustments: 0.2, 0.3 or 0.4."""
    magnitude = abs(adjustment)
    if magnitude < 30:
        return 0.2
    if magnitude < 60:
        return 0.3
    return 0.4


__all__ = [
    "apply_dual_selective_tone",
    "apply_selective_tone",
    "optimal_feather",
]
