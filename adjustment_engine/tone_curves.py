"""Parametric tone curves for feathered highlight and shadow adjustments."""
from __future__ import annotations

from typing import Literal, Union

import numpy as np

ArrayLike = Union[float, np.ndarray]
TonalRange = Literal["highlights", "shadows"]

HIGHLIGHT_CENTER = 0.75
SHADOW_CENTER = 0.25
DEFAULT_FEATHER = 0.3
MASK_STEEPNESS = 5.0

KNEE_HIGH = 0.95
KNEE_LOW = 0.05
KNEE_SLOPE = 0.3
MIN_FEATHER = 1e-6

_CENTERS = {"highlights": HIGHLIGHT_CENTER, "shadows": SHADOW_CENTER}


def _check_range(tonal_range: str) -> None:
    if tonal_range not in _CENTERS:
        raise ValueError(f"tonal_range must be 'highlights' or 'shadows', got {tonal_range!r}")


def tonal_mask(
    luminance: ArrayLike,
    tonal_range: TonalRange,
    center: float = 0.7,
    feather: float = DEFAULT_FEATHER,
) -> ArrayLike:
    """Sigmoid weight in [0, 1] describing how strongly a pixel is targeted.

    Highlights use ``distance = luminance - center``, shadows
    ``center - luminance``; the mask is ``1 / (1 + exp(-5 * distance / feather))``.
    """
    _check_range(tonal_range)
    luminance = np.asarray(luminance, dtype=np.float64)
    distance = luminance - center if tonal_range == "highlights" else center - luminance
    return 1.0 / (1.0 + np.exp(-MASK_STEEPNESS * distance / max(feather, MIN_FEATHER)))


def parametric_curve(x: ArrayLike, midpoint: float = 0.5, contrast: float = 1.0) -> ArrayLike:
    """Smooth S-curve ``1 / (1 + exp(-6 * (x - midpoint) * contrast))`` of clamped *x*."""
    x = np.clip(np.asarray(x, dtype=np.float64), 0.0, 1.0)
    return 1.0 / (1.0 + np.exp(-(x - midpoint) * contrast * 6.0))


def gaussian_weight(x: ArrayLike, center: float, width: float) -> ArrayLike:
    """Bell-shaped weight; *width* is the full width at half maximum."""
    sigma = max(width, MIN_FEATHER) / 2.355
    distance = np.asarray(x, dtype=np.float64) - center
    return np.exp(-(distance * distance) / (2.0 * sigma * sigma))


def adjustment_multiplier(
    luminance: ArrayLike,
    adjustment: float,
    tonal_range: TonalRange,
    feather: float = DEFAULT_FEATHER,
) -> ArrayLike:
    """Blend the full-strength multiplier with 1.0 using the tonal mask.

    Brightening uses ``1 + adjustment``; darkening ``1 + adjustment * 0.5``.
    Pixels outside the targeted range get a multiplier close to 1.
    """
    _check_range(tonal_range)
    mask = tonal_mask(luminance, tonal_range, _CENTERS[tonal_range], feather)
    multiplier = 1.0 + adjustment if adjustment > 0 else 1.0 + adjustment * 0.5
    return 1.0 + (multiplier - 1.0) * mask


def soft_knee(luminance: ArrayLike) -> ArrayLike:
    """Compress values beyond 0.95 / below 0.05 to 30% of their excess."""
    luminance = np.asarray(luminance, dtype=np.float64)
    high = KNEE_HIGH + (luminance - KNEE_HIGH) * KNEE_SLOPE
    low = KNEE_LOW - (KNEE_LOW - luminance) * KNEE_SLOPE
    return np.where(luminance > KNEE_HIGH, high, np.where(luminance < KNEE_LOW, low, luminance))


def selective_tone_adjustment(
    luminance: ArrayLike,
    adjustment: float,
    tonal_range: TonalRange,
    feather: float = DEFAULT_FEATHER,
) -> ArrayLike:
    """Return the new luminance for a single-range adjustment.

    Args:
        luminance: Original normalised luminance.
        adjustment: Strength in [-1, 1].
        tonal_range: ``"highlights"`` or ``"shadows"``.
        feather: Mask transition width.

    Returns:
        Adjusted luminance with the soft knee applied near 0 and 1. The knee
        only limits an adjustment: a brightening never ends below the
        original luminance and a darkening never ends above it.
    """
    luminance = np.asarray(luminance, dtype=np.float64)
    multiplier = adjustment_multiplier(luminance, adjustment, tonal_range, feather)
    adjusted = soft_knee(luminance * multiplier)
    if adjustment > 0:
        return np.maximum(adjusted, luminance)
    if adjustment < 0:
        return np.minimum(adjusted, luminance)
    return adjusted


def dual_tone_adjustment(
    luminance: ArrayLike,
    highlight_adjust: float,
    shadow_adjust: float,
    feather: float = DEFAULT_FEATHER,
) -> ArrayLike:
    """Apply the highlight then the shadow adjustment and clamp to [0, 1].

    The order is fixed; the two ranges do not commute.
    """
    adjusted = np.asarray(luminance, dtype=np.float64)
    if highlight_adjust != 0:
        adjusted = selective_tone_adjustment(adjusted, highlight_adjust, "highlights", feather)
    if shadow_adjust != 0:
        adjusted = selective_tone_adjustment(adjusted, shadow_adjust, "shadows", feather)
    return np.clip(adjusted, 0.0, 1.0)


__all__ = [
    "DEFAULT_FEATHER",
    "HIGHLIGHT_CENTER",
    "SHADOW_CENTER",
    "TonalRange",
    "adjustment_multiplier",
    "dual_tone_adjustment",
    "gaussian_weight",
    "parametric_curve",
    "selective_tone_adjustment",
    "soft_knee",
    "tonal_mask",
]
