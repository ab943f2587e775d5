"""Processing profiles for balancing fidelity against interactive speed.

Profiles choose the blur implementation shared by every blur call site of a
render, the dark channel variant used by dehaze, and the parameter limits:

- **quality**: Gaussian blur, full-resolution dark channel, documented ranges
- **balanced**: Gaussian blur, quarter-resolution dark channel, documented ranges
- **preview**: box blur and fast sharpening, quarter-resolution dark channel,
  conservative slider ranges

Example Usage
-------------

    from adjustment_engine import PROCESSING_PROFILES

    profile = PROCESSING_PROFILES["preview"]
    blur = profile.blur()  # box_blur
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .blur import BlurFunction, resolve_blur
from .parameters import LIMITS, ParameterLimits


@dataclass(frozen=True)
class ProcessingProfile:
    """Configuration for quality/performance trade-offs in rendering.

    Attributes:
        name: Profile identifier.
        blur_method: ``"gaussian"`` or ``"box"``; used for every blur in a run.
        fast_dehaze: Estimate the dark channel at quarter resolution.
        limits_name: Key into :data:`adjustment_engine.parameters.LIMITS`.
        fast_sharpen: Replace the unsharp mask with the 3x3 preview kernel
            for positive sharpness.
    """

    name: str
    blur_method: str
    fast_dehaze: bool
    limits_name: str
    fast_sharpen: bool = False

    def blur(self) -> BlurFunction:
        """Return the blur implementation for this profile."""
        return resolve_blur(self.blur_method)

    def limits(self) -> ParameterLimits:
        """Return the parameter ranges enforced by this profile."""
        return LIMITS[self.limits_name]


DEFAULT_PROFILE_NAME = "quality"

PROCESSING_PROFILES: Dict[str, ProcessingProfile] = {
    "quality": ProcessingProfile(
        name="quality",
        blur_method="gaussian",
        fast_dehaze=False,
        limits_name="documented",
    ),
    "balanced": ProcessingProfile(
        name="balanced",
        blur_method="gaussian",
        fast_dehaze=True,
        limits_name="documented",
    ),
    "preview": ProcessingProfile(
        name="preview",
        blur_method="box",
        fast_dehaze=True,
        limits_name="safe",
        fast_sharpen=True,
    ),
}


__all__ = [
    "DEFAULT_PROFILE_NAME",
    "PROCESSING_PROFILES",
    "ProcessingProfile",
]
