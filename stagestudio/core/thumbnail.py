"""Stage-select thumbnail generation."""

from __future__ import annotations

import logging
from typing import Optional

from PIL import Image

from . import RasterImage
from .image_codec import from_pil, to_pil

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = (240, 100)
TARGET_ASPECT = THUMBNAIL_SIZE[0] / THUMBNAIL_SIZE[1]
# Share of the vertical excess trimmed from the top when cropping tall images.
TOP_CROP_SHARE = 0.1


def compute_crop_box(width: int, height: int) -> tuple[float, float, float, float]:
    """Return the (left, top, right, bottom) source window matching the thumbnail aspect.

    Wide images lose equal amounts on both sides. Tall images keep a window near
    the top: 10% of the excess height comes off the top, the rest off the bottom.
    """

    if width <= 0 or height <= 0:
        raise ValueError("Image dimensions must be positive")

    if width / height > TARGET_ASPECT:
        crop_width = height * TARGET_ASPECT
        left = max(0.0, (width - crop_width) / 2)
        return left, 0.0, left + crop_width, float(height)

    crop_height = width / TARGET_ASPECT
    top = max(0.0, (height - crop_height) * TOP_CROP_SHARE)
    return 0.0, top, float(width), top + crop_height


def generate_thumbnail(image: RasterImage) -> Optional[RasterImage]:
    """Crop and scale a background to a 240x100 RGBA thumbnail."""

    if image.width <= 0 or image.height <= 0:
        return None

    box = compute_crop_box(image.width, image.height)
    source = to_pil(image).convert("RGBA")
    thumbnail = source.resize(THUMBNAIL_SIZE, Image.Resampling.LANCZOS, box=box)
    logger.debug("Thumbnail crop box for %sx%s: %s", image.width, image.height, box)
    return from_pil(thumbnail)
