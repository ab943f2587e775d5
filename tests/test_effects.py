from __future__ import annotations

import numpy as np
import pytest
from hypothesis import given, strategies as st

from adjustment_engine.effects import (
    apply_grain,
    apply_vignette,
    grain_noise,
    grain_scale,
    vignette_mask,
)

from .documentation import documents


def test_zero_amounts_return_copies(random_rgba):
    arr = random_rgba(6, 6)

    for out in (apply_vignette(arr, 0), apply_grain(arr, 0)):
        assert out is not arr
        assert np.array_equal(out, arr)


@documents("A full vignette darkens corners and leaves the centre alone")
def test_vignette_darkens_corners(solid_rgba):
    arr = solid_rgba(9, 9, (200, 200, 200))
    out = apply_vignette(arr, 100)

    assert np.all(out[4, 4, :3] == 200)
    assert np.all(out[0, 0, :3] < 100)
    assert np.array_equal(out[..., 3], arr[..., 3])


@given(st.floats(0, 100), st.floats(0, 100), st.integers(1, 40), st.integers(1, 40))
def test_vignette_mask_is_a_weight(size, feather, height, width):
    mask = vignette_mask(height, width, size, feather)

    assert mask.shape == (height, width)
    assert np.all((mask >= 0) & (mask <= 1))


def test_larger_vignette_size_darkens_less(solid_rgba):
    arr = solid_rgba(15, 15, (180, 180, 180))
    small = apply_vignette(arr, 80, size=10)
    large = apply_vignette(arr, 80, size=90)

    assert large[..., :3].astype(int).sum() > small[..., :3].astype(int).sum()


def test_grain_is_deterministic_per_seed(random_rgba):
    arr = random_rgba(16, 16)

    assert np.array_equal(apply_grain(arr, 50, seed=7), apply_grain(arr, 50, seed=7))
    assert not np.array_equal(apply_grain(arr, 50, seed=1), apply_grain(arr, 50, seed=2))


def test_grain_is_monochrome(solid_rgba):
    arr = solid_rgba(12, 12, (128, 128, 128))
    out = apply_grain(arr, 70, seed=3)

    assert np.array_equal(out[..., 0], out[..., 1])
    assert np.array_equal(out[..., 1], out[..., 2])
    assert np.array_equal(out[..., 3], arr[..., 3])


def test_grain_keeps_mean_brightness(solid_rgba):
    arr = solid_rgba(64, 64, (128, 128, 128))
    out = apply_grain(arr, 50, seed=11)

    assert out[..., :3].astype(float).mean() == pytest.approx(128, abs=3)
    assert out[..., 0].std() > 5


@pytest.mark.parametrize("size,expected", [(0, 1.0), (50, 2.5), (100, 4.0), (250, 4.0), (float("nan"), 1.0)])
def test_grain_scale(size, expected):
    assert grain_scale(size) == pytest.approx(expected)


@pytest.mark.parametrize("size", [0, 50, 100])
def test_grain_noise_matches_requested_shape(size):
    assert grain_noise(10, 7, size, seed=0).shape == (10, 7)
