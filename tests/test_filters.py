from __future__ import annotations

import numpy as np
import pytest

from adjustment_engine.filters import (
    FilterOp,
    apply_filter_chain,
    apply_filter_op,
    build_filter_chain,
    describe_filter_chain,
    hue_rotate_matrix,
    saturate_matrix,
    sepia_matrix,
)
from adjustment_engine.parameters import AdjustmentParameters

from .documentation import documents


def _chain(**sliders):
    return [(op.kind, op.amount) for op in build_filter_chain(AdjustmentParameters(**sliders))]


def test_neutral_parameters_build_empty_chain():
    assert build_filter_chain(AdjustmentParameters()) == []


@pytest.mark.parametrize(
    "sliders,expected",
    [
        ({"brightness": 50}, [("brightness", 1.5)]),
        ({"brightness": -100}, [("brightness", 0.0)]),
        ({"contrast": -50}, [("contrast", 0.5)]),
        ({"contrast": 100}, [("contrast", 2.5)]),
        ({"saturation": -100}, [("saturate", 0.0)]),
        ({"saturation": 100}, [("saturate", 2.5)]),
    ],
)
def test_simple_slider_mappings(sliders, expected):
    assert _chain(**sliders) == expected


@documents("Exposure adds contrast and saturation compensation at high magnitudes")
def test_exposure_compensation():
    assert _chain(exposure=20) == [("brightness", 1.32)]
    assert _chain(exposure=40) == [("brightness", 1.741), ("contrast", 0.94)]
    assert _chain(exposure=60) == [("brightness", 2.297), ("contrast", 0.91), ("saturate", 0.98)]
    assert _chain(exposure=-60) == [("brightness", 0.435), ("contrast", 1.09), ("saturate", 1.02)]


def test_temperature_warms_and_cools():
    assert _chain(temperature=100) == [
        ("sepia", 0.35),
        ("hue_rotate", -25.0),
        ("saturate", 1.15),
        ("brightness", 1.03),
    ]
    assert _chain(temperature=-100) == [
        ("sepia", 0.35),
        ("hue_rotate", 190.0),
        ("saturate", 1.15),
        ("brightness", 0.97),
    ]


def test_fade_only_for_positive_amounts():
    assert _chain(fade_amount=100) == [("contrast", 0.4), ("brightness", 1.15), ("saturate", 0.85)]
    assert _chain(fade_amount=-20) == []


def test_chain_order_follows_slider_order():
    kinds = [op.kind for op in build_filter_chain(AdjustmentParameters(brightness=10, tint=10, contrast=10))]

    assert kinds == ["brightness", "contrast", "hue_rotate", "saturate"]


def test_matrices_are_identity_at_neutral_amounts():
    assert np.allclose(saturate_matrix(1), np.eye(3))
    assert np.allclose(sepia_matrix(0), np.eye(3))
    assert np.allclose(hue_rotate_matrix(0), np.eye(3))


def test_saturate_zero_gives_grey():
    rgb = np.array([[[200, 50, 10]]], dtype=np.float64) / 255
    out = apply_filter_op(rgb, FilterOp("saturate", 0))

    assert out[0, 0, 0] == pytest.approx(out[0, 0, 1])
    assert out[0, 0, 1] == pytest.approx(out[0, 0, 2])


def test_operations_clamp_between_steps(solid_rgba):
    arr = solid_rgba(2, 2, (200, 200, 200), alpha=17)
    out = apply_filter_chain(arr, [FilterOp("brightness", 2), FilterOp("brightness", 0.5)])

    assert np.all(out[..., :3] == 128)
    assert np.all(out[..., 3] == 17)


def test_empty_chain_returns_copy(random_rgba):
    arr = random_rgba(3, 3)
    out = apply_filter_chain(arr, [])

    assert out is not arr
    assert np.array_equal(out, arr)


def test_css_rendering():
    chain = [FilterOp("brightness", 1.5), FilterOp("hue_rotate", -25), FilterOp("sepia", 0.35)]

    assert describe_filter_chain(chain) == "brightness(1.5) hue-rotate(-25deg) sepia(0.35)"
    assert describe_filter_chain([]) == "none"


def test_unknown_filter_kind_is_rejected():
    with pytest.raises(ValueError, match="Unknown filter kind"):
        FilterOp("blur", 2)


def test_amounts_round_halves_away_from_zero():
    assert _chain(brightness=6.25) == [("brightness", 1.063)]
    hue = [amount for kind, amount in _chain(temperature=25) if kind == "hue_rotate"]
    assert hue == [-6.3]


def test_unclamped_extremes_do_not_break_rounding():
    chain = build_filter_chain(AdjustmentParameters(brightness=float("inf"), contrast=1e200))

    assert chain[0].amount == float("inf")
    assert chain[1].amount > 1e200
