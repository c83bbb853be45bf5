"""Image decoding and lossless PNG encoding using Pillow."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from . import RasterImage
from .errors import InvalidImageError
from ..utils import validators

logger = logging.getLogger(__name__)


def from_pil(image: Image.Image) -> RasterImage:
    """Convert a Pillow image into a read-only RGB/RGBA raster."""

    has_alpha = "A" in image.getbands() or "transparency" in image.info
    converted = image.convert("RGBA" if has_alpha else "RGB")
    pixels = np.array(converted, dtype=np.uint8)
    pixels.setflags(write=False)
    return RasterImage(width=converted.width, height=converted.height, has_alpha=has_alpha, pixels=pixels)


def to_pil(image: RasterImage) -> Image.Image:
    """Return a Pillow copy of the raster; the source buffer is left untouched."""

    return Image.fromarray(np.array(image.pixels, dtype=np.uint8))


def from_array(pixels: np.ndarray) -> RasterImage:
    """Wrap an HxWx3 or HxWx4 uint8 array as a raster (copied, read-only)."""

    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise InvalidImageError("<array>", reason=f"expected HxWx3 or HxWx4 pixels, got {pixels.shape}")
    data = np.array(pixels, dtype=np.uint8)
    data.setflags(write=False)
    height, width = data.shape[:2]
    return RasterImage(width=width, height=height, has_alpha=data.shape[2] == 4, pixels=data)


class PillowCodec:
    """Decode any Pillow-readable image; encode losslessly as PNG."""

    def decode(self, data: bytes, label: str = "<bytes>") -> RasterImage:
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                raster = from_pil(img)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise InvalidImageError(label, reason=str(exc)) from exc
        if raster.width == 0 or raster.height == 0:
            raise InvalidImageError(label, reason="Image has no pixels")
        logger.debug("Decoded %s -> %sx%s alpha=%s", label, raster.width, raster.height, raster.has_alpha)
        return raster

    def encode(self, image: RasterImage) -> bytes:
        buffer = io.BytesIO()
        to_pil(image).save(buffer, format="PNG")
        return buffer.getvalue()


DEFAULT_CODEC = PillowCodec()


def load_image(path: Path, codec: PillowCodec | None = None) -> RasterImage:
    """Load an image file from disk."""

    validated = validators.validate_image_path(path)
    return (codec or DEFAULT_CODEC).decode(validated.read_bytes(), label=str(validated))
