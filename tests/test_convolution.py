from __future__ import annotations

import numpy as np
import pytest

from adjustment_engine.convolution import Kernel, convolve, convolve_1d, separable_convolve

from .documentation import documents

IDENTITY_3X3 = [[0, 0, 0], [0, 1, 0], [0, 0, 0]]


def test_kernel_auto_divisor_is_weight_sum():
    assert Kernel(np.array([1.0, 2.0, 1.0])).resolved_divisor == 4.0


def test_kernel_auto_divisor_falls_back_to_one_for_zero_sum():
    assert Kernel(np.array([-1.0, 0.0, 1.0])).resolved_divisor == 1.0


def test_kernel_explicit_divisor_wins():
    assert Kernel(np.ones((3, 3)), divisor=3).resolved_divisor == 3.0


@pytest.mark.parametrize("weights", [np.ones(2), np.ones((3, 4)), np.ones((1, 1, 1)), np.array([])])
def test_kernel_rejects_unusable_shapes(weights):
    with pytest.raises(ValueError):
        Kernel(weights)


def test_identity_kernel_reproduces_input(random_rgba):
    arr = random_rgba(5, 6)
    out = convolve(arr, IDENTITY_3X3)

    assert out is not arr
    assert np.array_equal(out, arr)


@documents("Edges replicate the nearest pixel instead of padding with zeros")
def test_box_kernel_does_not_darken_edges(solid_rgba):
    arr = solid_rgba(4, 4, (200, 100, 50))
    out = convolve(arr, np.ones((5, 5)))

    assert np.array_equal(out, arr)


def test_offset_is_added_after_normalisation(solid_rgba):
    arr = solid_rgba(3, 3, (10, 100, 250))
    out = convolve(arr, IDENTITY_3X3, offset=10)

    assert tuple(out[1, 1, :3]) == (20, 110, 255)


def test_zero_sum_kernel_detects_edges(solid_rgba):
    arr = solid_rgba(3, 5, (0, 0, 0))
    arr[:, 3:, :3] = 100
    out = convolve(arr, [[0, 0, 0], [-1, 0, 1], [0, 0, 0]])

    assert out[1, 2, 0] == 100
    assert out[1, 0, 0] == 0


def test_convolution_copies_alpha(random_rgba):
    arr = random_rgba(4, 4)
    out = separable_convolve(arr, np.array([0.25, 0.5, 0.25]))

    assert np.array_equal(out[..., 3], arr[..., 3])


def test_length_one_kernel_is_a_copy(random_rgba):
    arr = random_rgba(3, 3)
    out = separable_convolve(arr, np.array([1.0]))

    assert out is not arr
    assert np.array_equal(out, arr)


@documents("Separable passes approximate the outer-product kernel within 8-bit rounding")
def test_separable_matches_outer_product_within_one_level(random_rgba):
    arr = random_rgba(8, 9)
    kernel = np.array([0.25, 0.5, 0.25])

    separable = separable_convolve(arr, kernel).astype(int)
    full = convolve(arr, np.outer(kernel, kernel)).astype(int)

    assert np.max(np.abs(separable - full)) <= 1


def test_convolve_requires_2d_kernel(random_rgba):
    with pytest.raises(ValueError, match="2D"):
        convolve(random_rgba(2, 2), [1.0, 2.0, 1.0])


def test_convolve_1d_validates_axis(random_rgba):
    with pytest.raises(ValueError, match="axis"):
        convolve_1d(random_rgba(2, 2), [1.0], axis=2)


def test_convolve_does_not_modify_input(random_rgba):
    arr = random_rgba(4, 4)
    before = arr.copy()
    convolve(arr, np.ones((3, 3)))

    assert np.array_equal(arr, before)
