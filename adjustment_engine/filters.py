"""Global colour adjustments expressed as a chain of filter operations.

Brightness, contrast, exposure, whites, blacks, temperature, tint,
saturation, vibrance and fade do not need neighbourhood information, so
instead of per-stage pixel loops each slider contributes a few primitive
operations (``brightness``, ``contrast``, ``saturate``, ``sepia`` and
``hue_rotate``). The chain is built once per render and then evaluated over
the buffer in a single pass. Primitive semantics follow the W3C Filter
Effects definitions on normalised sRGB values, with a clamp to [0, 1] after
every operation.
"""
from __future__ import annotations

import dataclasses
import logging
import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import TYPE_CHECKING, List, Sequence

import numpy as np

from .buffers import ensure_rgba, to_uint8, with_rgb

if TYPE_CHECKING:
    from .parameters import AdjustmentParameters

LOGGER = logging.getLogger("adjustment_engine")

_ROUNDING = Context(prec=400, rounding=ROUND_HALF_UP)

FILTER_KINDS = ("brightness", "contrast", "saturate", "sepia", "hue_rotate")


@dataclasses.dataclass(frozen=True)
class FilterOp:
    """One primitive colour operation.

    Attributes:
        kind: One of ``brightness``, ``contrast``, ``saturate``, ``sepia`` or
            ``hue_rotate``.
        amount: Multiplier for the first four kinds, degrees for ``hue_rotate``.
    """

    kind: str
    amount: float

    def __post_init__(self) -> None:
        if self.kind not in FILTER_KINDS:
            raise ValueError(f"Unknown filter kind {self.kind!r}; choose from {FILTER_KINDS}")

    def css(self) -> str:
        """Render the operation in CSS ``filter`` syntax."""
        if self.kind == "hue_rotate":
            return f"hue-rotate({self.amount:g}deg)"
        return f"{self.kind}({self.amount:g})"


def _op(kind: str, amount: float) -> FilterOp:
    if not math.isfinite(amount):
        return FilterOp(kind, amount)
    # halves round away from zero on the exact binary value
    step = Decimal("0.1") if kind == "hue_rotate" else Decimal("0.001")
    return FilterOp(kind, float(Decimal(amount).quantize(step, context=_ROUNDING)))


def _exposure_ops(exposure: float) -> List[FilterOp]:
    magnitude = abs(exposure)
    ops = [_op("brightness", 2 ** (exposure * 2 / 100))]
    if magnitude > 30:
        compensation = 0.15 * min(magnitude / 100, 1)
        ops.append(_op("contrast", 1 - compensation if exposure > 0 else 1 + compensation))
    if magnitude > 50:
        compensation = 0.1 * min((magnitude - 50) / 50, 1)
        ops.append(_op("saturate", 1 - compensation if exposure > 0 else 1 + compensation))
    return ops


def _whites_ops(whites: float) -> List[FilterOp]:
    k = abs(whites) / 100
    if whites < 0:
        ops = [_op("brightness", 1 - 0.25 * k), _op("contrast", 1 + 0.5 * k)]
        if abs(whites) > 20:
            ops.append(_op("saturate", 1 + 0.15 * k))
        return ops
    ops = [_op("brightness", 1 + 0.4 * k), _op("contrast", 1 - 0.5 * k)]
    if whites > 20:
        ops.append(_op("saturate", 1 - 0.2 * k))
    return ops


def _blacks_ops(blacks: float) -> List[FilterOp]:
    k = abs(blacks) / 100
    if blacks < 0:
        ops = [_op("brightness", 1 + 0.45 * k), _op("contrast", 1 - 0.6 * k)]
        if abs(blacks) > 20:
            ops.append(_op("saturate", 1 + 0.2 * k))
        return ops
    ops = [_op("brightness", 1 - 0.3 * k), _op("contrast", 1 + 0.6 * k)]
    if blacks > 20:
        ops.append(_op("saturate", 1 - 0.15 * k))
    return ops


def _temperature_ops(temperature: float) -> List[FilterOp]:
    normalized = temperature / 100
    magnitude = abs(normalized)
    hue = 190 * magnitude if temperature < 0 else -25 * magnitude
    return [
        _op("sepia", 0.35 * magnitude),
        _op("hue_rotate", hue),
        _op("saturate", 1 + 0.15 * magnitude),
        _op("brightness", 1 + 0.03 * normalized),
    ]


def _tint_ops(tint: float) -> List[FilterOp]:
    k = abs(tint) / 100
    hue = 80 * k if tint < 0 else -60 * k
    return [_op("hue_rotate", hue), _op("saturate", 1 + 0.12 * k)]


def _vibrance_ops(vibrance: float) -> List[FilterOp]:
    k = abs(vibrance) / 100
    if vibrance < 0:
        return [_op("saturate", 1 - 0.4 * k), _op("brightness", 1 + 0.05 * k)]
    ops = [_op("saturate", 1 + 0.8 * k), _op("contrast", 1 + 0.08 * k)]
    if vibrance > 50:
        ops.append(_op("brightness", 1 - 0.05 * (k - 0.5)))
    return ops


def build_filter_chain(params: "AdjustmentParameters") -> List[FilterOp]:
    """Translate the global sliders into an ordered list of operations.

    Sliders at 0 contribute nothing, so neutral parameters give an empty
    chain. The order is brightness, contrast, exposure, whites, blacks,
    temperature, tint, saturation, vibrance, fade.
    """
    chain: List[FilterOp] = []
    if params.brightness != 0:
        chain.append(_op("brightness", (params.brightness + 100) / 100))
    if params.contrast < 0:
        chain.append(_op("contrast", 1 + params.contrast / 100))
    elif params.contrast > 0:
        chain.append(_op("contrast", 1 + (params.contrast / 100) ** 1.2 * 1.5))
    if params.exposure != 0:
        chain.extend(_exposure_ops(params.exposure))
    if params.whites != 0:
        chain.extend(_whites_ops(params.whites))
    if params.blacks != 0:
        chain.extend(_blacks_ops(params.blacks))
    if params.temperature != 0:
        chain.extend(_temperature_ops(params.temperature))
    if params.tint != 0:
        chain.extend(_tint_ops(params.tint))
    if params.saturation < 0:
        chain.append(_op("saturate", 1 + params.saturation / 100))
    elif params.saturation > 0:
        chain.append(_op("saturate", 1 + (params.saturation / 100) ** 0.9 * 1.5))
    if params.vibrance != 0:
        chain.extend(_vibrance_ops(params.vibrance))
    if params.fade_amount > 0:
        k = params.fade_amount / 100
        chain.extend([
            _op("contrast", 1 - 0.6 * k),
            _op("brightness", 1 + 0.15 * k),
            _op("saturate", 1 - 0.15 * k),
        ])
    return chain


def saturate_matrix(amount: float) -> np.ndarray:
    s = max(0.0, amount)
    return np.array([
        [0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s],
    ])


def sepia_matrix(amount: float) -> np.ndarray:
    inverse = 1.0 - max(0.0, min(1.0, amount))
    return np.array([
        [0.393 + 0.607 * inverse, 0.769 - 0.769 * inverse, 0.189 - 0.189 * inverse],
        [0.349 - 0.349 * inverse, 0.686 + 0.314 * inverse, 0.168 - 0.168 * inverse],
        [0.272 - 0.272 * inverse, 0.534 - 0.534 * inverse, 0.131 + 0.869 * inverse],
    ])


def hue_rotate_matrix(degrees: float) -> np.ndarray:
    angle = math.radians(degrees)
    cos, sin = math.cos(angle), math.sin(angle)
    return np.array([
        [0.213 + cos * 0.787 - sin * 0.213, 0.715 - cos * 0.715 - sin * 0.715, 0.072 - cos * 0.072 + sin * 0.928],
        [0.213 - cos * 0.213 + sin * 0.143, 0.715 + cos * 0.285 + sin * 0.140, 0.072 - cos * 0.072 - sin * 0.283],
        [0.213 - cos * 0.213 - sin * 0.787, 0.715 - cos * 0.715 + sin * 0.715, 0.072 + cos * 0.928 + sin * 0.072],
    ])


_MATRICES = {
    "saturate": saturate_matrix,
    "sepia": sepia_matrix,
    "hue_rotate": hue_rotate_matrix,
}


def apply_filter_op(rgb: np.ndarray, op: FilterOp) -> np.ndarray:
    """Apply one operation to normalised RGB values and clamp to [0, 1]."""
    if op.kind == "brightness":
        result = rgb * max(0.0, op.amount)
    elif op.kind == "contrast":
        result = (rgb - 0.5) * max(0.0, op.amount) + 0.5
    else:
        result = rgb @ _MATRICES[op.kind](op.amount).T
    return np.clip(result, 0.0, 1.0)


def apply_filter_chain(arr: np.ndarray, chain: Sequence[FilterOp]) -> np.ndarray:
    """Evaluate *chain* over an RGBA buffer; an empty chain returns a copy."""
    ensure_rgba(arr)
    if not chain:
        return arr.copy()
    LOGGER.debug("Filter chain: %s", describe_filter_chain(chain))
    rgb = arr[..., :3].astype(np.float64) / 255.0
    for op in chain:
        rgb = apply_filter_op(rgb, op)
    return with_rgb(arr, to_uint8(rgb * 255.0))


def describe_filter_chain(chain: Sequence[FilterOp]) -> str:
    """CSS ``filter`` string equivalent of *chain* (``none`` when empty)."""
    return " ".join(op.css() for op in chain) if chain else "none"


__all__ = [
    "FILTER_KINDS",
    "FilterOp",
    "apply_filter_chain",
    "apply_filter_op",
    "build_filter_chain",
    "describe_filter_chain",
    "hue_rotate_matrix",
    "saturate_matrix",
    "sepia_matrix",
]
