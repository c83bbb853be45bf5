"""Image and document factories shared by the test modules."""

import io
from pathlib import Path

import numpy as np
from PIL import Image

from stagestudio.core import BackgroundLayer, RasterImage, Resolution
from stagestudio.core.document import StageDocument
from stagestudio.core.image_codec import from_array


def gradient_pixels(width: int, height: int, alpha: bool = False) -> np.ndarray:
    xs = np.linspace(0, 255, width, dtype=np.uint8)
    ys = np.linspace(0, 255, height, dtype=np.uint8)
    channels = 4 if alpha else 3
    pixels = np.zeros((height, width, channels), dtype=np.uint8)
    pixels[..., 0] = xs[np.newaxis, :]
    pixels[..., 1] = ys[:, np.newaxis]
    pixels[..., 2] = 128
    if alpha:
        pixels[..., 3] = 200
    return pixels


def make_image(width: int, height: int, alpha: bool = False) -> RasterImage:
    return from_array(gradient_pixels(width, height, alpha))


def sized_image(width: int, height: int) -> RasterImage:
    """Raster that only carries dimensions; enough for geometry and validation."""

    return RasterImage(width=width, height=height, has_alpha=False, pixels=np.zeros((1, 1, 3), dtype=np.uint8))


def make_document(
    name: str = "Night Market",
    image: RasterImage | None = None,
    resolution: Resolution = Resolution.SD,
) -> StageDocument:
    document = StageDocument(name=name, resolution=resolution)
    if image is not None:
        document.add_layer(BackgroundLayer(name="Background", image=image))
    return document


def write_png(path: Path, width: int, height: int, alpha: bool = False) -> Path:
    Image.fromarray(gradient_pixels(width, height, alpha)).save(path)
    return path


def png_bytes(width: int, height: int, alpha: bool = False) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(gradient_pixels(width, height, alpha)).save(buffer, format="PNG")
    return buffer.getvalue()
