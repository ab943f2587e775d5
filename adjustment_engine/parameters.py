"""Adjustment parameters, range clamping, presets and extreme-value detection."""
from __future__ import annotations

import dataclasses
import logging
import math
from typing import Dict, Mapping, Optional, Tuple

LOGGER = logging.getLogger("adjustment_engine")

ADJUST_FIELDS = (
    "brightness",
    "contrast",
    "exposure",
    "highlights",
    "shadows",
    "whites",
    "blacks",
    "clarity",
    "sharpness",
    "dehaze",
)
COLOR_FIELDS = ("temperature", "tint", "saturation", "vibrance")
EFFECT_FIELDS = (
    "vignette_amount",
    "vignette_size",
    "vignette_feather",
    "grain_amount",
    "grain_size",
    "fade_amount",
)
SLIDER_FIELDS = ADJUST_FIELDS + COLOR_FIELDS + EFFECT_FIELDS

EXTREME_THRESHOLD = 50
EXTREME_COUNT = 5


@dataclasses.dataclass
class AdjustmentParameters:
    """Slider values for one render.

    Bidirectional sliders live in [-100, 100] and amount-only effects in
    [0, 100]; 0 means "no change" everywhere. Values outside the documented
    ranges are accepted here and clamped by :func:`clamp_parameters`.
    """

    brightness: float = 0.0
    contrast: float = 0.0
    exposure: float = 0.0
    highlights: float = 0.0
    shadows: float = 0.0
    whites: float = 0.0
    blacks: float = 0.0
    clarity: float = 0.0
    sharpness: float = 0.0
    dehaze: float = 0.0
    temperature: float = 0.0
    tint: float = 0.0
    saturation: float = 0.0
    vibrance: float = 0.0
    vignette_amount: float = 0.0
    vignette_size: float = 50.0
    vignette_feather: float = 50.0
    grain_amount: float = 0.0
    grain_size: float = 50.0
    fade_amount: float = 0.0
    grain_seed: Optional[int] = 0

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> "AdjustmentParameters":
        """Build parameters from a mapping, accepting hyphenated keys.

        Raises:
            ValueError: If a key does not name a parameter or a slider value
                is missing.
        """
        known = {field.name for field in dataclasses.fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = key.replace("-", "_")
            if name not in known:
                raise ValueError(f"Unknown adjustment parameter {key!r}")
            if name == "grain_seed":
                kwargs[name] = value
            elif value is None:
                raise ValueError(f"Missing value for adjustment parameter {key!r}")
            else:
                kwargs[name] = float(value)
        return cls(**kwargs)

    def replace(self, **changes: float) -> "AdjustmentParameters":
        return dataclasses.replace(self, **changes)

    def sliders(self) -> Dict[str, float]:
        """Slider values keyed by field name, excluding the grain seed."""
        return {name: getattr(self, name) for name in SLIDER_FIELDS}


@dataclasses.dataclass(frozen=True)
class ParameterLimits:
    """Inclusive ``(minimum, maximum)`` range for every slider."""

    name: str
    ranges: Mapping[str, Tuple[float, float]]

    def clamp(self, field: str, value: float) -> float:
        minimum, maximum = self.ranges[field]
        return max(minimum, min(maximum, value))


def _limits(name: str, bidirectional: float, sharpness: Tuple[float, float], effect: float, shape: Tuple[float, float]) -> ParameterLimits:
    ranges: Dict[str, Tuple[float, float]] = {
        field: (-bidirectional, bidirectional) for field in ADJUST_FIELDS + COLOR_FIELDS
    }
    ranges["sharpness"] = sharpness
    for field in ("vignette_amount", "grain_amount", "fade_amount"):
        ranges[field] = (0.0, effect)
    for field in ("vignette_size", "vignette_feather", "grain_size"):
        ranges[field] = shape
    return ParameterLimits(name=name, ranges=ranges)


DOCUMENTED_LIMITS = _limits("documented", 100.0, (-100.0, 100.0), 100.0, (0.0, 100.0))
SAFE_LIMITS = _limits("safe", 75.0, (0.0, 75.0), 75.0, (25.0, 75.0))

LIMITS: Dict[str, ParameterLimits] = {
    DOCUMENTED_LIMITS.name: DOCUMENTED_LIMITS,
    SAFE_LIMITS.name: SAFE_LIMITS,
}

_NEUTRAL = AdjustmentParameters()


def clamp_parameters(
    params: AdjustmentParameters,
    limits: ParameterLimits = DOCUMENTED_LIMITS,
) -> AdjustmentParameters:
    """Return a copy of *params* with every slider inside *limits*.

    Non-finite values are replaced by the slider's neutral default before
    clamping, so NaN never reaches a stage.
    """
    changes: Dict[str, float] = {}
    for name in SLIDER_FIELDS:
        value = float(getattr(params, name))
        if not math.isfinite(value):
            LOGGER.debug("Replacing non-finite %s=%s with neutral value", name, value)
            value = getattr(_NEUTRAL, name)
        clamped = limits.clamp(name, value)
        if clamped != value:
            LOGGER.debug("Clamped %s from %s to %s (%s limits)", name, value, clamped, limits.name)
        changes[name] = clamped
    return dataclasses.replace(params, **changes)


@dataclasses.dataclass(frozen=True)
class ExtremeCombinationWarning:
    """Advisory returned when many sliders sit at high magnitudes at once."""

    count: int
    parameters: Tuple[str, ...]
    message: str

    def __str__(self) -> str:
        return self.message


def detect_extreme_combination(params: AdjustmentParameters) -> Optional[ExtremeCombinationWarning]:
    """Flag five or more sliders beyond a magnitude of 50.

    Bidirectional sliders count when ``|value| > 50``, effect sliders when
    ``value > 50``. Returns ``None`` for safe combinations.
    """
    extreme = [
        name for name in ADJUST_FIELDS + COLOR_FIELDS if abs(getattr(params, name)) > EXTREME_THRESHOLD
    ]
    extreme.extend(name for name in EFFECT_FIELDS if getattr(params, name) > EXTREME_THRESHOLD)
    if len(extreme) < EXTREME_COUNT:
        return None
    message = (
        f"Too many extreme filter values ({len(extreme)}). This might cause rendering issues. "
        "Consider reducing some values."
    )
    return ExtremeCombinationWarning(count=len(extreme), parameters=tuple(extreme), message=message)


PRESETS: Dict[str, AdjustmentParameters] = {
    "neutral": AdjustmentParameters(),
    "vivid": AdjustmentParameters(
        contrast=15,
        highlights=-10,
        shadows=10,
        clarity=20,
        saturation=20,
        vibrance=30,
    ),
    "matte": AdjustmentParameters(
        contrast=-15,
        blacks=-20,
        saturation=-10,
        fade_amount=30,
        grain_amount=10,
    ),
    "crisp": AdjustmentParameters(
        contrast=10,
        clarity=35,
        sharpness=40,
        dehaze=15,
    ),
    "moody": AdjustmentParameters(
        exposure=-10,
        contrast=20,
        highlights=-30,
        shadows=-15,
        temperature=-15,
        saturation=-20,
        vignette_amount=40,
        grain_amount=15,
    ),
}


def resolve_preset(name: str) -> AdjustmentParameters:
    """Return a copy of the named preset."""
    try:
        return dataclasses.replace(PRESETS[name])
    except KeyError as exc:
        raise ValueError(f"Unknown preset {name!r}; choose from {sorted(PRESETS)}") from exc


__all__ = [
    "ADJUST_FIELDS",
    "AdjustmentParameters",
    "COLOR_FIELDS",
    "DOCUMENTED_LIMITS",
    "EFFECT_FIELDS",
    "ExtremeCombinationWarning",
    "LIMITS",
    "PRESETS",
    "ParameterLimits",
    "SAFE_LIMITS",
    "SLIDER_FIELDS",
    "clamp_parameters",
    "detect_extreme_combination",
    "resolve_preset",
]
