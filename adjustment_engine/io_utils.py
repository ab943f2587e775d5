"""Image file loading and atomic saving for batch rendering.

The engine itself never touches the filesystem; these helpers bridge image
files on disk to :class:`~adjustment_engine.buffers.PixelBuffer` for the CLI
and other hosts.

Key Components
--------------

LoadedImage
    Pixel buffer plus the source metadata worth carrying to the output.

ProcessingContext
    Context manager for atomic file writes with staged temporary files.
"""
from __future__ import annotations

import contextlib
import dataclasses
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from PIL import Image

from .buffers import PixelBuffer

LOGGER = logging.getLogger("adjustment_engine")

RGB_ONLY_FORMATS = {"JPEG", "BMP"}
JPEG_QUALITY = 95


@dataclasses.dataclass
class ProcessingContext:
    """Context manager for atomic file writes using staged temporary files.

    Writes go to a hidden file beside the destination which replaces the
    destination on success and is removed on failure.

    Attributes:
        destination: Final output file path.
        suffix: Temporary file suffix (default: ".tmp").
    """

    destination: Path
    suffix: str = ".tmp"

    def __post_init__(self) -> None:
        self._staged_path: Optional[Path] = None

    def _temp_path(self) -> Path:
        name = f".{self.destination.stem}{self.suffix}-{uuid.uuid4().hex}{self.destination.suffix}"
        return self.destination.parent / name

    def __enter__(self) -> Path:
        self.destination.parent.mkdir(parents=True, exist_ok=True)
        self._staged_path = self._temp_path()
        return self._staged_path

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._staged_path is None:
            return False

        staged = self._staged_path
        self._staged_path = None

        if exc_type is None:
            try:
                os.replace(staged, self.destination)
            except Exception:
                with contextlib.suppress(Exception):
                    staged.unlink()
                raise
        else:
            with contextlib.suppress(FileNotFoundError):
                staged.unlink()
        return False


@dataclasses.dataclass
class LoadedImage:
    """A decoded image.

    Attributes:
        buffer: RGBA pixels.
        format: Pillow format name of the source (``PNG``, ``JPEG``...).
        icc_profile: Embedded ICC profile bytes, passed through untouched.
        exif: Raw EXIF bytes, passed through untouched.
    """

    buffer: PixelBuffer
    format: Optional[str] = None
    icc_profile: Optional[bytes] = None
    exif: Optional[bytes] = None


def load_pixel_buffer(path: Path) -> LoadedImage:
    """Decode *path* with Pillow and convert it to an RGBA buffer."""
    with Image.open(path) as image:
        image.load()
        info = image.info if isinstance(image.info, dict) else {}
        loaded = LoadedImage(
            buffer=PixelBuffer.from_image(image),
            format=image.format,
            icc_profile=info.get("icc_profile"),
            exif=info.get("exif"),
        )
    LOGGER.debug("Loaded %s (%sx%s, %s)", path, loaded.buffer.width, loaded.buffer.height, loaded.format)
    return loaded


def _format_for(path: Path) -> str:
    extension = path.suffix.lower()
    registered = Image.registered_extensions()
    if extension not in registered:
        raise ValueError(f"Cannot determine an image format for {path}")
    return registered[extension]


def save_pixel_buffer(
    path: Path,
    buffer: PixelBuffer,
    *,
    format: Optional[str] = None,
    icc_profile: Optional[bytes] = None,
    exif: Optional[bytes] = None,
    quality: int = JPEG_QUALITY,
) -> None:
    """Encode *buffer* to *path*.

    The format defaults to the one registered for the file extension. Formats
    without an alpha channel receive RGB data.
    """
    image_format = (format or _format_for(path)).upper()
    image = buffer.to_image()
    if image_format in RGB_ONLY_FORMATS:
        image = image.convert("RGB")

    save_kwargs: Dict[str, Any] = {}
    if icc_profile:
        save_kwargs["icc_profile"] = icc_profile
    if exif and image_format in {"JPEG", "PNG", "TIFF", "WEBP"}:
        save_kwargs["exif"] = exif
    if image_format in {"JPEG", "WEBP"}:
        save_kwargs["quality"] = quality
    LOGGER.debug("Saving %s as %s with %s", path, image_format, sorted(save_kwargs))
    image.save(path, format=image_format, **save_kwargs)


__all__ = [
    "LoadedImage",
    "ProcessingContext",
    "load_pixel_buffer",
    "save_pixel_buffer",
]
