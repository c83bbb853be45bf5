"""Validation helpers for user inputs."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TypeVar

from ..core import Engine, Resolution, TileMode
from ..core.errors import InvalidImageError, ValidationError

ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp"}

E = TypeVar("E", bound=Enum)


def validate_image_path(path: Path) -> Path:
    """Ensure the image path exists and appears to be a supported format."""

    if not path:
        raise InvalidImageError(Path("<unset>"), reason="No path provided")
    if not path.exists():
        raise InvalidImageError(path, reason="File not found")
    if path.suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
        raise InvalidImageError(path, reason="Unsupported format")
    return path


def _parse_enum(enum_cls: type[E], value, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be one of: {', '.join(m.value for m in enum_cls)}")
    text = value.strip().lower().replace("×", "x").replace(" ", "_").replace("-", "_").replace(".", "_")
    for member in enum_cls:
        if text in (member.value, member.name.lower()):
            return member
    raise ValidationError(f"{field} must be one of: {', '.join(m.value for m in enum_cls)}")


def parse_resolution(value) -> Resolution:
    """Parse a resolution given as '1280x720', 'HD' or 'custom'."""

    return _parse_enum(Resolution, value, "Resolution")


def parse_engine(value) -> Engine:
    """Parse an engine given as 'ikemen_go', 'MUGEN 1.1', 'mugen-1.0'..."""

    return _parse_enum(Engine, value, "Engine")


def parse_tile_mode(value) -> TileMode:
    return _parse_enum(TileMode, value, "Tiling")


def parse_point(value, field: str, cast=int) -> tuple:
    """Parse a coordinate pair from 'x, y' or a two-item sequence."""

    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",")]
    elif isinstance(value, (list, tuple)):
        parts = list(value)
    else:
        raise ValidationError(f"{field} must be a pair like 'x, y'")
    if len(parts) != 2:
        raise ValidationError(f"{field} must have exactly two values")
    try:
        return cast(parts[0]), cast(parts[1])
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be numeric") from exc

