"""Render orchestration plus batch helpers shared between the CLI and integrations.

A render runs the per-pixel stages in a fixed order, each consuming the
previous stage's output:

    dehaze -> selective_tone -> clarity -> sharpen -> vignette -> grain

and then evaluates the global filter chain (brightness, contrast, exposure,
whites, blacks, temperature, tint, saturation, vibrance, fade) over the
result. Stages whose controlling sliders are neutral are skipped, which is
what makes neutral parameters an exact identity.
"""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

import numpy as np
from tqdm import tqdm

from .buffers import PixelBuffer, ensure_rgba
from .clarity import apply_clarity
from .dehaze import apply_dehaze
from .effects import apply_grain, apply_vignette
from .filters import FilterOp, apply_filter_chain, build_filter_chain
from .io_utils import ProcessingContext, load_pixel_buffer, save_pixel_buffer
from .parameters import (
    AdjustmentParameters,
    ExtremeCombinationWarning,
    clamp_parameters,
    detect_extreme_combination,
)
from .profiles import DEFAULT_PROFILE_NAME, PROCESSING_PROFILES, ProcessingProfile
from .selective_tone import apply_dual_selective_tone
from .sharpen import apply_sharpness, fast_sharpen

LOGGER = logging.getLogger("adjustment_engine")
WORKER_LOGGER = LOGGER.getChild("worker")

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".tif", ".tiff", ".webp", ".bmp")

StageFunction = Callable[[np.ndarray], np.ndarray]


def _ensure_profile(profile: Union[ProcessingProfile, str, None]) -> ProcessingProfile:
    if profile is None:
        return PROCESSING_PROFILES[DEFAULT_PROFILE_NAME]
    if isinstance(profile, str):
        try:
            return PROCESSING_PROFILES[profile]
        except KeyError as exc:
            raise ValueError(f"Unknown profile {profile!r}; choose from {sorted(PROCESSING_PROFILES)}") from exc
    return profile


@dataclasses.dataclass(frozen=True)
class PipelineStage:
    """One per-pixel step of a render.

    Attributes:
        name: Stage identifier.
        enabled: ``False`` when the controlling sliders are neutral.
        apply: Function mapping an RGBA array to a new RGBA array.
    """

    name: str
    enabled: bool
    apply: StageFunction


@dataclasses.dataclass
class RenderResult:
    """Output of :func:`render`.

    Attributes:
        buffer: Rendered pixels; same size and alpha as the input.
        parameters: The clamped parameters that were actually applied.
        warning: Extreme-combination advisory, or ``None``.
        filter_chain: Global operations evaluated after the pixel stages.
        applied_stages: Names of the pixel stages that ran, in order.
    """

    buffer: PixelBuffer
    parameters: AdjustmentParameters
    warning: Optional[ExtremeCombinationWarning] = None
    filter_chain: List[FilterOp] = dataclasses.field(default_factory=list)
    applied_stages: Tuple[str, ...] = ()


def _sharpen_stage(params: AdjustmentParameters, profile: ProcessingProfile) -> StageFunction:
    blur = profile.blur()
    if profile.fast_sharpen and params.sharpness > 0:
        return lambda arr: fast_sharpen(arr, params.sharpness / 100.0)
    return lambda arr: apply_sharpness(arr, params.sharpness, blur=blur)


def build_stages(
    params: AdjustmentParameters,
    profile: Union[ProcessingProfile, str, None] = None,
) -> List[PipelineStage]:
    """Return the ordered pixel stages for *params*.

    Every stage is listed, including disabled ones, so callers can inspect
    the fixed order. One blur implementation, chosen by the profile, serves
    every stage that blurs.
    """
    profile = _ensure_profile(profile)
    blur = profile.blur()
    return [
        PipelineStage(
            "dehaze",
            params.dehaze != 0,
            lambda arr: apply_dehaze(arr, params.dehaze, fast=profile.fast_dehaze),
        ),
        PipelineStage(
            "selective_tone",
            params.highlights != 0 or params.shadows != 0,
            lambda arr: apply_dual_selective_tone(arr, params.highlights, params.shadows),
        ),
        PipelineStage(
            "clarity",
            params.clarity != 0,
            lambda arr: apply_clarity(arr, params.clarity, blur=blur),
        ),
        PipelineStage("sharpen", params.sharpness != 0, _sharpen_stage(params, profile)),
        PipelineStage(
            "vignette",
            params.vignette_amount > 0,
            lambda arr: apply_vignette(arr, params.vignette_amount, params.vignette_size, params.vignette_feather),
        ),
        PipelineStage(
            "grain",
            params.grain_amount > 0,
            lambda arr: apply_grain(arr, params.grain_amount, params.grain_size, seed=params.grain_seed),
        ),
    ]


def _as_array(buffer: Union[PixelBuffer, np.ndarray]) -> np.ndarray:
    if isinstance(buffer, PixelBuffer):
        return ensure_rgba(buffer.data)
    return ensure_rgba(buffer)


def render(
    buffer: Union[PixelBuffer, np.ndarray],
    params: Optional[AdjustmentParameters] = None,
    *,
    profile: Union[ProcessingProfile, str, None] = None,
) -> RenderResult:
    """Render *buffer* with *params*.

    The input is validated before any work is done and is never modified.
    Parameters are clamped to the profile's limits; an extreme combination
    is logged and returned as a warning alongside a valid result.

    Raises:
        InvalidBufferError: If the buffer is structurally invalid.
    """
    source = _as_array(buffer)
    profile = _ensure_profile(profile)
    clamped = clamp_parameters(params or AdjustmentParameters(), profile.limits())

    warning = detect_extreme_combination(clamped)
    if warning is not None:
        LOGGER.warning("%s (%s)", warning.message, ", ".join(warning.parameters))

    result = source
    applied: List[str] = []
    for stage in build_stages(clamped, profile):
        if not stage.enabled:
            continue
        LOGGER.debug("Running stage %s", stage.name)
        result = stage.apply(result)
        applied.append(stage.name)

    chain = build_filter_chain(clamped)
    result = apply_filter_chain(result, chain)

    output = np.clip(result, 0, 255).astype(np.uint8)
    output[..., 3] = source[..., 3]
    LOGGER.debug(
        "Rendered %sx%s with profile %s: stages=%s filters=%s",
        source.shape[1],
        source.shape[0],
        profile.name,
        applied or "none",
        len(chain),
    )
    return RenderResult(
        buffer=PixelBuffer.from_array(output),
        parameters=clamped,
        warning=warning,
        filter_chain=chain,
        applied_stages=tuple(applied),
    )


def _wrap_with_progress(
    iterable: Iterable[Path],
    *,
    total: Optional[int],
    description: str,
    enabled: bool,
) -> Iterable[Path]:
    """Return *iterable* wrapped with a :mod:`tqdm` progress bar when enabled."""

    if not enabled:
        return iterable
    return tqdm(iterable, total=total, desc=description, unit="image")


def collect_images(folder: Path, recursive: bool) -> Iterator[Path]:
    """Yield image files in *folder* (sorted), descending into subfolders when *recursive*."""
    candidates = folder.rglob("*") if recursive else folder.glob("*")
    for path in sorted(candidates):
        if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS:
            yield path


def ensure_output_path(
    input_root: Path,
    output_root: Path,
    source: Path,
    suffix: str,
    recursive: bool,
    *,
    create: bool = True,
) -> Path:
    relative = source.relative_to(input_root) if recursive else Path(source.name)
    destination = output_root / relative
    if create:
        destination.parent.mkdir(parents=True, exist_ok=True)
    new_name = destination.stem + suffix + destination.suffix
    return destination.with_name(new_name)


def _process_image_worker(
    source: Path,
    destination: Path,
    params: AdjustmentParameters,
    *,
    profile: ProcessingProfile,
    dry_run: bool = False,
) -> bool:
    """Core implementation for processing a single image file.

    Returns ``True`` when an output file was written. This helper is isolated so it
    can be safely used with :class:`concurrent.futures.ProcessPoolExecutor`.
    """

    WORKER_LOGGER.info("Processing %s -> %s", source, destination)
    if destination.exists() and not destination.is_file():
        path_type = "directory" if destination.is_dir() else "non-file"
        raise ValueError(f"Destination path exists but is a {path_type}: {destination}")

    loaded = load_pixel_buffer(source)
    result = render(loaded.buffer, params, profile=profile)
    if dry_run:
        WORKER_LOGGER.info("Dry run enabled, skipping save for %s", destination)
        return False

    with ProcessingContext(destination) as staged_path:
        save_pixel_buffer(
            staged_path,
            result.buffer,
            icc_profile=loaded.icc_profile,
            exif=loaded.exif,
        )
    return True


def process_single_image(
    source: Path,
    destination: Path,
    params: AdjustmentParameters,
    *,
    dry_run: bool = False,
    profile: Union[ProcessingProfile, str, None] = None,
) -> bool:
    """Public wrapper around :func:`_process_image_worker`."""

    return _process_image_worker(
        source,
        destination,
        params,
        profile=_ensure_profile(profile),
        dry_run=dry_run,
    )


__all__ = [
    "IMAGE_EXTENSIONS",
    "PipelineStage",
    "RenderResult",
    "build_stages",
    "collect_images",
    "ensure_output_path",
    "process_single_image",
    "render",
]
