from __future__ import annotations

import numpy as np
import pytest

from adjustment_engine.dehaze import (
    apply_dehaze,
    dark_channel,
    estimate_atmospheric_light,
    fast_dark_channel,
    refine_transmission,
)

from .documentation import documents


def test_dark_channel_of_uniform_image_is_channel_minimum(solid_rgba):
    arr = solid_rgba(6, 9, (10, 200, 30))
    dark = dark_channel(arr)

    assert dark.shape == (6, 9)
    assert np.allclose(dark, 10 / 255)


def test_dark_channel_spreads_over_patch_only(solid_rgba):
    arr = solid_rgba(20, 20, (255, 255, 255))
    arr[10, 10, :3] = 0
    dark = dark_channel(arr, 15)

    assert dark[3, 3] == 0
    assert dark[17, 17] == 0
    assert dark[2, 10] == 1
    assert dark[10, 18] == 1


def test_fast_dark_channel_keeps_full_resolution(random_rgba):
    arr = random_rgba(17, 23)
    dark = fast_dark_channel(arr)

    assert dark.shape == (17, 23)
    assert np.all((dark >= 0) & (dark <= 1))


def test_fast_dark_channel_falls_back_on_tiny_images(random_rgba):
    arr = random_rgba(3, 3)

    assert np.array_equal(fast_dark_channel(arr), dark_channel(arr))


def test_atmospheric_light_uses_brightest_dark_channel_pixel(random_rgba):
    arr = random_rgba(10, 10)
    arr[3, 7, :3] = (10, 20, 30)
    dark = np.zeros((10, 10))
    dark[3, 7] = 1.0

    assert estimate_atmospheric_light(arr, dark).tolist() == [10.0, 20.0, 30.0]


def test_atmospheric_light_falls_back_to_white_for_black_images(solid_rgba):
    arr = solid_rgba(4, 4, (0, 0, 0))

    assert estimate_atmospheric_light(arr, dark_channel(arr)).tolist() == [255.0, 255.0, 255.0]


def test_zero_dehaze_returns_copy(random_rgba):
    arr = random_rgba(5, 5)
    out = apply_dehaze(arr, 0)

    assert out is not arr
    assert np.array_equal(out, arr)


@documents("Removing haze pushes pixels away from the airlight")
def test_positive_dehaze_moves_away_from_airlight(rng):
    arr = np.empty((20, 20, 4), dtype=np.uint8)
    arr[..., :3] = rng.integers(100, 201, size=(20, 20, 3), dtype=np.uint8)
    arr[..., 3] = 90
    light = np.array([220.0, 220.0, 220.0])

    out = apply_dehaze(arr, 80, atmospheric_light=light)

    assert np.all(out[..., :3] <= arr[..., :3])
    assert out[..., :3].astype(float).mean() < arr[..., :3].astype(float).mean() - 5
    assert np.array_equal(out[..., 3], arr[..., 3])


def test_fast_dehaze_matches_shape_and_alpha(random_rgba):
    arr = random_rgba(16, 24)
    out = apply_dehaze(arr, 50, fast=True)

    assert out.shape == arr.shape
    assert out.dtype == np.uint8
    assert np.array_equal(out[..., 3], arr[..., 3])


@documents("Negative dehaze blends toward the airlight")
def test_negative_dehaze_adds_haze(solid_rgba):
    arr = solid_rgba(3, 3, (0, 0, 0))
    arr[0, 0, :3] = 255
    out = apply_dehaze(arr, -100, atmospheric_light=np.array([200.0, 200.0, 200.0]))

    assert np.all(out[1:, :, :3] == 120)
    assert np.all(out[0, 0, :3] == 222)


def test_refine_keeps_uniform_maps_uniform():
    transmission = np.full((12, 12), 0.5)

    assert np.allclose(refine_transmission(transmission), 0.5)


@pytest.mark.parametrize("shape", [(7, 13), (31, 5), (1, 1)])
def test_refine_preserves_shape(shape, rng):
    transmission = rng.random(shape)
    refined = refine_transmission(transmission)

    assert refined.shape == shape
    assert refined.min() >= transmission.min() - 1e-9
    assert refined.max() <= transmission.max() + 1e-9
