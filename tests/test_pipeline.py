from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from hypothesis import HealthCheck, given, settings, strategies as st
from hypothesis.extra.numpy import arrays
from PIL import Image

from adjustment_engine import pipeline
from adjustment_engine.buffers import InvalidBufferError, PixelBuffer
from adjustment_engine.io_utils import ProcessingContext
from adjustment_engine.luminance import luminance_map
from adjustment_engine.parameters import AdjustmentParameters
from adjustment_engine.pipeline import (
    build_stages,
    collect_images,
    ensure_output_path,
    process_single_image,
    render,
)

from .documentation import documents

STAGE_ORDER = ["dehaze", "selective_tone", "clarity", "sharpen", "vignette", "grain"]

_rgba = arrays(
    np.uint8,
    st.tuples(st.integers(1, 6), st.integers(1, 6), st.just(4)),
)


@documents("Neutral parameters reproduce the input exactly")
@given(_rgba)
def test_neutral_render_is_identity(arr):
    result = render(arr)

    assert np.array_equal(result.buffer.data, arr)
    assert result.applied_stages == ()
    assert result.filter_chain == []
    assert result.warning is None


_slider = st.floats(-300, 300, allow_nan=False)


@documents("Any parameters produce a valid buffer with the input alpha")
@settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(
    _rgba,
    st.fixed_dictionaries(
        {
            "brightness": _slider,
            "contrast": _slider,
            "shadows": _slider,
            "highlights": _slider,
            "clarity": _slider,
            "sharpness": _slider,
            "dehaze": _slider,
            "temperature": _slider,
            "vignette_amount": _slider,
            "grain_amount": _slider,
            "fade_amount": _slider,
        }
    ),
    st.sampled_from(["quality", "balanced", "preview"]),
)
def test_render_output_is_always_valid(arr, sliders, profile):
    result = render(arr, AdjustmentParameters(**sliders), profile=profile)

    assert result.buffer.data.shape == arr.shape
    assert result.buffer.data.dtype == np.uint8
    assert np.array_equal(result.buffer.data[..., 3], arr[..., 3])


def test_build_stages_lists_fixed_order():
    stages = build_stages(AdjustmentParameters(clarity=10, grain_amount=5))

    assert [stage.name for stage in stages] == STAGE_ORDER
    assert [stage.name for stage in stages if stage.enabled] == ["clarity", "grain"]


def test_render_reports_applied_stages_in_order(random_rgba):
    params = AdjustmentParameters(grain_amount=20, shadows=30, dehaze=10, vignette_amount=40)
    result = render(random_rgba(8, 8), params)

    assert result.applied_stages == ("dehaze", "selective_tone", "vignette", "grain")


def test_render_does_not_mutate_input(random_rgba):
    arr = random_rgba(6, 6)
    snapshot = arr.copy()
    render(arr, AdjustmentParameters(clarity=60, sharpness=40, brightness=20))

    assert np.array_equal(arr, snapshot)


def test_render_accepts_pixel_buffers(random_rgba):
    buffer = PixelBuffer.from_array(random_rgba(3, 5))
    result = render(buffer, AdjustmentParameters(brightness=10))

    assert (result.buffer.width, result.buffer.height) == (5, 3)


@pytest.mark.parametrize(
    "bad",
    [
        np.zeros((4, 4, 3), dtype=np.uint8),
        np.zeros((4, 4, 4), dtype=np.float32),
        np.zeros((0, 4, 4), dtype=np.uint8),
        [[0, 0, 0, 0]],
    ],
)
def test_render_rejects_invalid_buffers(bad):
    with pytest.raises(InvalidBufferError):
        render(bad, AdjustmentParameters(brightness=10))


def test_render_clamps_parameters_and_returns_warning(random_rgba):
    params = AdjustmentParameters(
        brightness=150, contrast=80, saturation=90, vibrance=70, exposure=-60, clarity=55
    )
    result = render(random_rgba(4, 4), params)

    assert result.parameters.brightness == 100
    assert result.warning is not None
    assert result.warning.count == 6
    assert "Too many extreme filter values (6)" in result.warning.message


def test_preview_profile_uses_safe_limits(random_rgba):
    result = render(random_rgba(4, 4), AdjustmentParameters(contrast=100, sharpness=90), profile="preview")

    assert result.parameters.contrast == 75
    assert result.parameters.sharpness == 75


def test_unknown_profile_is_rejected(random_rgba):
    with pytest.raises(ValueError, match="Unknown profile"):
        render(random_rgba(2, 2), profile="cinematic")


@documents("Scenario: brightening a grey image")
def test_brightness_on_grey_image(solid_rgba):
    arr = solid_rgba(4, 4, (128, 128, 128), alpha=200)
    result = render(arr, AdjustmentParameters(brightness=50))

    assert np.all(result.buffer.data[..., :3] == 192)
    assert np.all(result.buffer.data[..., 3] == 200)
    assert [op.css() for op in result.filter_chain] == ["brightness(1.5)"]


@documents("Scenario: lifting shadows on a black and white image")
def test_shadow_lift_through_render():
    arr = np.zeros((2, 2, 4), dtype=np.uint8)
    arr[0, 0, :3] = 255
    arr[..., 3] = 255
    result = render(arr, AdjustmentParameters(shadows=100))

    before = luminance_map(arr)
    after = luminance_map(result.buffer.data)
    assert np.all(after[arr[..., 0] == 0] > before[arr[..., 0] == 0])
    assert np.all(result.buffer.data[0, 0, :3] >= 240)
    assert result.applied_stages == ("selective_tone",)


def _write_png(path: Path, arr: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(arr).save(path)


def test_collect_images_handles_recursive(tmp_path: Path):
    (tmp_path / "nested").mkdir()
    for name in ("b.png", "a.JPG", "notes.txt", "nested/c.tif"):
        (tmp_path / name).write_bytes(b"")

    flat = [path.name for path in collect_images(tmp_path, recursive=False)]
    deep = [path.relative_to(tmp_path).as_posix() for path in collect_images(tmp_path, recursive=True)]

    assert flat == ["a.JPG", "b.png"]
    assert deep == ["a.JPG", "b.png", "nested/c.tif"]


def test_ensure_output_path_mirrors_tree(tmp_path: Path):
    source = tmp_path / "in" / "day" / "shot.png"
    destination = ensure_output_path(tmp_path / "in", tmp_path / "out", source, "_adjusted", True)

    assert destination == tmp_path / "out" / "day" / "shot_adjusted.png"
    assert destination.parent.is_dir()


def test_process_single_image_round_trip(tmp_path: Path, random_rgba):
    arr = random_rgba(5, 7)
    source = tmp_path / "in" / "frame.png"
    destination = tmp_path / "out" / "frame_adjusted.png"
    _write_png(source, arr)

    assert process_single_image(source, destination, AdjustmentParameters(brightness=20)) is True

    with Image.open(destination) as written:
        saved = np.asarray(written.convert("RGBA"))
    expected = render(arr, AdjustmentParameters(brightness=20)).buffer.data
    assert np.array_equal(saved, expected)
    assert [path.name for path in destination.parent.iterdir()] == ["frame_adjusted.png"]


def test_process_single_image_dry_run_writes_nothing(tmp_path: Path, random_rgba):
    source = tmp_path / "in" / "frame.png"
    destination = tmp_path / "out" / "frame.png"
    _write_png(source, random_rgba(3, 3))

    assert process_single_image(source, destination, AdjustmentParameters(), dry_run=True) is False
    assert not destination.exists()


def test_process_single_image_rejects_directory_destination(tmp_path: Path, random_rgba):
    source = tmp_path / "frame.png"
    _write_png(source, random_rgba(2, 2))
    destination = tmp_path / "taken.png"
    destination.mkdir()

    with pytest.raises(ValueError, match="directory"):
        process_single_image(source, destination, AdjustmentParameters())


def test_process_single_image_cleanup_on_failure(
    tmp_path: Path, random_rgba, monkeypatch: pytest.MonkeyPatch
):
    source = tmp_path / "in" / "frame.png"
    destination = tmp_path / "out" / "frame.png"
    _write_png(source, random_rgba(3, 3))

    def failing_save(path, buffer, **kwargs):
        Path(path).write_bytes(b"partial")
        raise RuntimeError("disk full")

    monkeypatch.setattr(pipeline, "save_pixel_buffer", failing_save)

    with pytest.raises(RuntimeError, match="disk full"):
        process_single_image(source, destination, AdjustmentParameters())
    assert list(destination.parent.iterdir()) == []


def test_processing_context_keeps_extension(tmp_path: Path):
    destination = tmp_path / "image.png"
    with ProcessingContext(destination) as staged:
        assert staged.suffix == ".png"
        assert staged.parent == tmp_path
        staged.write_bytes(b"done")

    assert destination.read_bytes() == b"done"
    assert not staged.exists()
