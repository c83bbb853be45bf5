"""Core data model for the stage export pipeline."""

__all__ = [
    "Resolution",
    "Engine",
    "EngineCapabilities",
    "TileMode",
    "PackageFormat",
    "RasterImage",
    "CameraSettings",
    "PlayerSettings",
    "ShadowSettings",
    "BackgroundLayer",
    "StageSpec",
    "DerivedGeometry",
    "Sprite",
    "IssueCode",
    "ValidationIssue",
    "ValidationResult",
    "ExportOutcome",
    "DEFAULT_LOCALCOORD",
]

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import numpy as np

from ..utils.file_tools import safe_stage_name

DEFAULT_LOCALCOORD = (1280, 720)


class Resolution(Enum):
    """Target local coordinate space of the exported stage."""

    HD = "1280x720"
    FULL_HD = "1920x1080"
    CLASSIC = "320x240"
    SD = "640x480"
    CUSTOM = "custom"

    @property
    def size(self) -> Optional[tuple[int, int]]:
        if self is Resolution.CUSTOM:
            return None
        width, height = self.value.split("x")
        return int(width), int(height)

    @property
    def is_fixed(self) -> bool:
        return self is not Resolution.CUSTOM

    @property
    def screen_size(self) -> tuple[int, int]:
        """Screen size used for camera and player math."""

        return self.size or DEFAULT_LOCALCOORD

    @property
    def display_name(self) -> str:
        return _RESOLUTION_NAMES[self]


_RESOLUTION_NAMES = {
    Resolution.HD: "HD (1280x720)",
    Resolution.FULL_HD: "Full HD (1920x1080)",
    Resolution.CLASSIC: "Classic (320x240)",
    Resolution.SD: "SD (640x480)",
    Resolution.CUSTOM: "Custom (native image size)",
}


@dataclass(frozen=True)
class EngineCapabilities:
    """Feature table consulted when rendering the stage definition."""

    display_name: str
    supports_zoom: bool
    mugen_version: str
    version_marker: Optional[tuple[str, str]] = None


class Engine(Enum):
    """Game engine variant the stage is exported for."""

    IKEMEN_GO = "ikemen_go"
    MUGEN_1_1 = "mugen_1_1"
    MUGEN_1_0 = "mugen_1_0"

    @property
    def capabilities(self) -> EngineCapabilities:
        return _ENGINE_CAPABILITIES[self]


_ENGINE_CAPABILITIES = {
    Engine.IKEMEN_GO: EngineCapabilities(
        display_name="IKEMEN GO",
        supports_zoom=True,
        mugen_version="1.1",
        version_marker=("ikemenversion", "1.0"),
    ),
    Engine.MUGEN_1_1: EngineCapabilities(display_name="MUGEN 1.1", supports_zoom=True, mugen_version="1.1"),
    Engine.MUGEN_1_0: EngineCapabilities(display_name="MUGEN 1.0", supports_zoom=False, mugen_version="1.0"),
}


class TileMode(Enum):
    """Background tiling along each axis."""

    NONE = "none"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    BOTH = "both"

    @property
    def def_value(self) -> str:
        horizontal = int(self in (TileMode.HORIZONTAL, TileMode.BOTH))
        vertical = int(self in (TileMode.VERTICAL, TileMode.BOTH))
        return f"{horizontal}, {vertical}"


class PackageFormat(Enum):
    """How the exported files are published."""

    ZIP = "zip"
    FOLDER = "folder"


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Decoded image: 8-bit RGB or RGBA pixels in row-major order."""

    width: int
    height: int
    has_alpha: bool
    pixels: np.ndarray

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class CameraSettings:
    """Camera bounds rectangle plus tracking parameters."""

    bound_left: int = -160
    bound_right: int = 160
    bound_high: int = -25
    tension: int = 50
    vertical_follow: float = 0.2
    floor_tension: int = 160
    zoom_enabled: bool = True
    start_zoom: float = 1.0
    zoom_out: float = 0.5
    zoom_in: float = 1.5

    @property
    def bound_low(self) -> int:
        return 0


@dataclass(frozen=True)
class PlayerSettings:
    """Player start positions; Y and facing are fixed by convention."""

    p1_x: int = -70
    p2_x: int = 70

    p1_facing = 1
    p2_facing = -1


@dataclass(frozen=True)
class ShadowSettings:
    enabled: bool = True
    intensity: int = 128
    yscale: float = 0.4


@dataclass(frozen=True)
class BackgroundLayer:
    """One background image and its placement in the stage.

    Immutable like the settings classes; edits go through
    :meth:`StageDocument.edit_layer`, which swaps in an updated copy.
    """

    name: str
    image: RasterImage
    position: tuple[int, int] = (0, 0)
    delta: tuple[float, float] = (1.0, 1.0)
    tiling: TileMode = TileMode.NONE
    layer_index: int = 0
    visible: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class StageSpec:
    """Immutable snapshot of a stage, taken before an export run."""

    name: str
    resolution: Resolution
    engine: Engine
    camera: CameraSettings
    players: PlayerSettings
    shadow: ShadowSettings
    ground_line_y: int
    layers: tuple[BackgroundLayer, ...] = ()
    author: str = ""

    @property
    def primary_layer(self) -> Optional[BackgroundLayer]:
        return self.layers[0] if self.layers else None

    @property
    def image_size(self) -> Optional[tuple[int, int]]:
        layer = self.primary_layer
        return layer.image.size if layer else None

    @property
    def screen_size(self) -> tuple[int, int]:
        return self.resolution.screen_size

    @property
    def visible_layers(self) -> tuple[BackgroundLayer, ...]:
        return tuple(layer for layer in self.layers if layer.visible)

    @property
    def safe_name(self) -> str:
        return safe_stage_name(self.name)


@dataclass(frozen=True)
class DerivedGeometry:
    """Default camera, player and placement values for an image/resolution pair."""

    screen_width: int
    screen_height: int
    ground_line_y: int
    pan_x: int
    pan_y: int
    camera_bound_left: int
    camera_bound_right: int
    camera_bound_high: int
    player_bound_left: int
    player_bound_right: int
    placement_x: int
    placement_y: int
    p1_start_x: int
    p2_start_x: int
    camera_bound_low: int = 0


@dataclass(frozen=True)
class Sprite:
    """A single encoded image destined for the sprite container."""

    group: int
    index: int
    width: int
    height: int
    axis_x: int
    axis_y: int
    data: bytes
    has_alpha: bool

    @property
    def format_code(self) -> int:
        # 11 = PNG24, 12 = PNG32
        return 12 if self.has_alpha else 11

    @property
    def color_depth(self) -> int:
        return 32 if self.has_alpha else 24


class IssueCode(str, Enum):
    MISSING_NAME = "missing_name"
    INVALID_NAME = "invalid_name"
    NO_LAYERS = "no_layers"
    NO_VISIBLE_LAYERS = "no_visible_layers"
    IMAGE_TOO_SMALL = "image_too_small"
    IMAGE_TOO_LARGE = "image_too_large"
    INVALID_GROUND_LINE = "invalid_ground_line"
    BOUNDS_EXCEED_IMAGE = "bounds_exceed_image"
    PLAYER_OUT_OF_BOUNDS = "player_out_of_bounds"
    INVALID_BOUNDS = "invalid_bounds"


@dataclass(frozen=True)
class ValidationIssue:
    code: IssueCode
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Export-blocking errors and confirm-to-proceed warnings."""

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


@dataclass
class ExportOutcome:
    """Result of a completed export run."""

    output_path: Path
    stage_name: str
    sff_size: int
    def_size: int
    sprite_count: int
    warnings: tuple[ValidationIssue, ...] = ()
