"""Non-destructive photo adjustment engine.

The engine renders an RGBA pixel buffer with a set of slider values. It never
modifies its input, so a host can re-render from the original whenever a
slider changes.

Module Organization
-------------------

buffers
    Pixel buffer container, validation and 8-bit storage helpers.

convolution, blur
    Kernel convolution with replicated edges; separable Gaussian and box blur.

sharpen, clarity
    Unsharp-mask sharpening and multi-scale local contrast.

luminance, tone_curves, selective_tone
    Rec. 709 luminance, HSL colour preservation and feathered
    highlight/shadow adjustments.

dehaze, effects
    Dark channel prior haze removal, vignette and film grain.

filters
    Global colour sliders expressed as a chain of filter operations.

parameters, profiles
    Slider record, range clamping, presets and quality/speed profiles.

pipeline, io_utils, cli
    Fixed-order render orchestration, file I/O and the batch command line.

Example Usage
-------------

    from adjustment_engine import AdjustmentParameters, PixelBuffer, render

    buffer = PixelBuffer.from_bytes(width, height, raw_rgba)
    result = render(buffer, AdjustmentParameters(shadows=40, clarity=25))
    if result.warning:
        print(result.warning.message)
    rendered = result.buffer.to_bytes()
"""
from __future__ import annotations

import logging

from .blur import box_blur, gaussian_blur, gaussian_kernel, gaussian_kernel_cached
from .buffers import InvalidBufferError, PixelBuffer
from .clarity import apply_clarity, decompose_multi_scale, reconstruct_from_scales
from .cli import build_parameters, default_output_folder, main, parse_args, run_pipeline
from .convolution import Kernel, convolve, separable_convolve
from .filters import FilterOp, apply_filter_chain, build_filter_chain
from .io_utils import ProcessingContext, load_pixel_buffer, save_pixel_buffer
from .luminance import luminance, preserve_color_with_luminance
from .parameters import (
    DOCUMENTED_LIMITS,
    PRESETS,
    SAFE_LIMITS,
    AdjustmentParameters,
    ExtremeCombinationWarning,
    clamp_parameters,
    detect_extreme_combination,
)
from .pipeline import (
    PipelineStage,
    RenderResult,
    build_stages,
    collect_images,
    ensure_output_path,
    process_single_image,
    render,
)
from .profiles import DEFAULT_PROFILE_NAME, PROCESSING_PROFILES, ProcessingProfile
from .selective_tone import apply_dual_selective_tone, apply_selective_tone
from .sharpen import UnsharpMaskParams, sharpness_to_unsharp_mask, unsharp_mask

LOGGER = logging.getLogger("adjustment_engine")

__all__ = [
    "AdjustmentParameters",
    "DEFAULT_PROFILE_NAME",
    "DOCUMENTED_LIMITS",
    "ExtremeCombinationWarning",
    "FilterOp",
    "InvalidBufferError",
    "Kernel",
    "PRESETS",
    "PROCESSING_PROFILES",
    "PipelineStage",
    "PixelBuffer",
    "ProcessingContext",
    "ProcessingProfile",
    "RenderResult",
    "SAFE_LIMITS",
    "UnsharpMaskParams",
    "apply_clarity",
    "apply_dual_selective_tone",
    "apply_filter_chain",
    "apply_selective_tone",
    "box_blur",
    "build_filter_chain",
    "build_parameters",
    "build_stages",
    "clamp_parameters",
    "collect_images",
    "convolve",
    "decompose_multi_scale",
    "default_output_folder",
    "detect_extreme_combination",
    "ensure_output_path",
    "gaussian_blur",
    "gaussian_kernel",
    "gaussian_kernel_cached",
    "load_pixel_buffer",
    "luminance",
    "main",
    "parse_args",
    "preserve_color_with_luminance",
    "process_single_image",
    "reconstruct_from_scales",
    "render",
    "run_pipeline",
    "save_pixel_buffer",
    "separable_convolve",
    "sharpness_to_unsharp_mask",
    "unsharp_mask",
]
