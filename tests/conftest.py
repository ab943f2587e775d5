from __future__ import annotations

from typing import Callable, Sequence

import numpy as np
import pytest


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(2024)


@pytest.fixture
def solid_rgba() -> Callable[..., np.ndarray]:
    """Factory for uniform RGBA buffers."""

    def _make(height: int, width: int, color: Sequence[int] = (128, 128, 128), alpha: int = 255) -> np.ndarray:
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[..., :3] = np.asarray(color, dtype=np.uint8)
        arr[..., 3] = alpha
        return arr

    return _make


@pytest.fixture
def random_rgba(rng: np.random.Generator) -> Callable[..., np.ndarray]:
    """Factory for random RGBA buffers with varied alpha."""

    def _make(height: int, width: int, low: int = 0, high: int = 256) -> np.ndarray:
        arr = rng.integers(low, high, size=(height, width, 4), dtype=np.uint8)
        arr[..., 3] = rng.integers(0, 256, size=(height, width), dtype=np.uint8)
        return arr

    return _make
