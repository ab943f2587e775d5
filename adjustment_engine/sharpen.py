"""Unsharp-mask sharpening and the sharpness slider mapping.

The unsharp mask blurs the input, treats ``original - blurred`` as an edge
signal, and adds the scaled edge back wherever it clears a noise threshold:

- ``amount`` is a percentage (0-500) converted to a multiplier
- ``radius`` selects the blur used to isolate edges
- ``threshold`` (0-255 levels) gates out low-contrast noise
"""
from __future__ import annotations

import dataclasses
import logging

import numpy as np

from .blur import BlurFunction, gaussian_blur
from .buffers import ensure_rgba, to_uint8, with_rgb

LOGGER = logging.getLogger("adjustment_engine")

BLUR_SIGNAL = -1.0


@dataclasses.dataclass(frozen=True)
class UnsharpMaskParams:
    """Unsharp mask settings.

    Attributes:
        amount: Strength in percent (0-500). A negative value signals that the
            caller should blur instead of sharpen.
        radius: Edge detection radius in pixels.
        threshold: Minimum per-channel difference, in levels, to sharpen.
    """

    amount: float
    radius: float
    threshold: float

    @property
    def is_blur(self) -> bool:
        return self.amount < 0


def unsharp_mask(
    arr: np.ndarray,
    params: UnsharpMaskParams,
    *,
    blur: BlurFunction = gaussian_blur,
) -> np.ndarray:
    """Sharpen an RGBA buffer with an unsharp mask.

    For each RGB channel ``edge = original - blurred``. Where
    ``|edge| >= threshold`` the output is ``original + edge * amount / 100``
    clamped to [0, 255]; elsewhere the original value is kept exactly.

    Args:
        arr: Input RGBA buffer.
        params: Amount, radius and threshold.
        blur: Blur implementation used to isolate edges.

    Returns:
        Sharpened RGBA buffer with alpha copied.
    """
    ensure_rgba(arr)
    amount = max(0.0, min(500.0, params.amount)) / 100.0
    radius = max(0.1, min(250.0, params.radius))
    threshold = max(0.0, min(255.0, params.threshold))

    blurred = blur(arr, radius)
    original = arr[..., :3].astype(np.float64)
    edge = original - blurred[..., :3].astype(np.float64)
    sharpened = original + edge * amount
    gate = np.abs(edge) >= threshold
    LOGGER.debug(
        "Unsharp mask amount=%.3f radius=%.2f threshold=%.2f gated=%s",
        amount,
        radius,
        threshold,
        int(np.count_nonzero(~gate)),
    )
    result = np.where(gate, to_uint8(sharpened), arr[..., :3])
    return with_rgb(arr, result.astype(np.uint8))


def sharpness_to_unsharp_mask(sharpness: float) -> UnsharpMaskParams:
    """Map a -100..100 sharpness slider to unsharp mask parameters.

    Positive values ramp the amount along a power curve up to 300%, the
    radius linearly from 1.0 to 2.5 px and the threshold up to 5 levels.
    Negative values return ``amount=-1`` with a blur radius of up to 10 px;
    the caller performs the blur.
    """
    normalized = max(-100.0, min(100.0, sharpness)) / 100.0
    if normalized == 0:
        return UnsharpMaskParams(amount=0.0, radius=0.0, threshold=0.0)
    if normalized > 0:
        amount = normalized ** 0.8 * 300.0
        radius = 1.0 + normalized * 1.5
        threshold = min(5.0, normalized * 5.0)
        return UnsharpMaskParams(amount=amount, radius=radius, threshold=threshold)
    return UnsharpMaskParams(amount=BLUR_SIGNAL, radius=abs(normalized) * 10.0, threshold=0.0)


def apply_sharpness(
    arr: np.ndarray,
    sharpness: float,
    *,
    blur: BlurFunction = gaussian_blur,
) -> np.ndarray:
    """Sharpen or soften according to a -100..100 slider value."""
    params = sharpness_to_unsharp_mask(sharpness)
    if params.amount == 0:
        return arr.copy()
    if params.is_blur:
        LOGGER.debug("Sharpness %s requests blur radius=%.2f", sharpness, params.radius)
        return blur(arr, params.radius)
    return unsharp_mask(arr, params, blur=blur)


def fast_sharpen(arr: np.ndarray, strength: float) -> np.ndarray:
    """Preview-quality sharpening with a 3x3 cross kernel.

    Neighbour taps are ``-strength * 0.5`` and the centre tap is
    ``1 + 2 * strength``. The one-pixel border is copied unchanged.
    """
    ensure_rgba(arr)
    out = arr.copy()
    height, width = arr.shape[:2]
    if height < 3 or width < 3:
        return out
    w = strength * 0.5
    center = 1.0 + w * 4.0
    rgb = arr[..., :3].astype(np.float64)
    neighbours = rgb[:-2, 1:-1] + rgb[2:, 1:-1] + rgb[1:-1, :-2] + rgb[1:-1, 2:]
    sharpened = rgb[1:-1, 1:-1] * center - neighbours * w
    out[1:-1, 1:-1, :3] = to_uint8(sharpened)
    return out


__all__ = [
    "BLUR_SIGNAL",
    "UnsharpMaskParams",
    "apply_sharpness",
    "fast_sharpen",
    "sharpness_to_unsharp_mask",
    "unsharp_mask",
]
