"""Stage project files: JSON settings validated with pydantic.

Example::

    {
      "name": "Night Market",
      "resolution": "1280x720",
      "engine": "ikemen_go",
      "camera": {"tension": 60, "bound_left": -300},
      "layers": [{"name": "Background", "image": "market.png"}]
    }

Values left out of the file take the derived defaults; values present are
recorded as manual overrides on the resulting document.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from . import BackgroundLayer, Engine, RasterImage, Resolution, ShadowSettings, TileMode
from .document import StageDocument
from .errors import ValidationError
from .geometry import derive_geometry
from .image_codec import load_image
from ..utils import validators

logger = logging.getLogger(__name__)

ImageLoader = Callable[[str], RasterImage]


class CameraConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bound_left: Optional[int] = None
    bound_right: Optional[int] = None
    bound_high: Optional[int] = None
    tension: int = Field(50, ge=0, le=200)
    vertical_follow: float = Field(0.2, ge=0, le=1)
    floor_tension: int = Field(160, ge=0, le=300)
    zoom_enabled: bool = True
    start_zoom: float = Field(1.0, ge=0.5, le=1.5)
    zoom_out: float = Field(0.5, ge=0.25, le=1.0)
    zoom_in: float = Field(1.5, ge=1.0, le=2.0)


class PlayerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    p1_x: Optional[int] = None
    p2_x: Optional[int] = None


class ShadowConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    intensity: int = Field(128, ge=0, le=256)
    yscale: float = Field(0.4, ge=0, le=1)


class LayerConfig(BaseModel):
    """One background layer; ``image`` is a path relative to the project file."""

    model_config = ConfigDict(extra="forbid")

    image: str
    name: Optional[str] = None
    position: Optional[tuple[int, int]] = None
    delta: tuple[float, float] = (1.0, 1.0)
    tiling: TileMode = TileMode.NONE
    layer_index: int = Field(0, ge=0, le=1)
    visible: bool = True

    @field_validator("position", mode="before")
    @classmethod
    def _parse_position(cls, value):
        if value in (None, "", "null"):
            return None
        return validators.parse_point(value, "Layer position")

    @field_validator("delta", mode="before")
    @classmethod
    def _parse_delta(cls, value):
        return validators.parse_point(value, "Layer delta", cast=float)

    @field_validator("tiling", mode="before")
    @classmethod
    def _parse_tiling(cls, value):
        return validators.parse_tile_mode(value)


class StageProject(BaseModel):
    """Top-level project file."""

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    author: str = ""
    resolution: Resolution = Resolution.HD
    engine: Engine = Engine.IKEMEN_GO
    ground_line_y: Optional[int] = None
    camera: CameraConfig = Field(default_factory=CameraConfig)
    players: PlayerConfig = Field(default_factory=PlayerConfig)
    shadow: ShadowConfig = Field(default_factory=ShadowConfig)
    layers: list[LayerConfig] = Field(default_factory=list)

    @field_validator("resolution", mode="before")
    @classmethod
    def _parse_resolution(cls, value):
        return validators.parse_resolution(value)

    @field_validator("engine", mode="before")
    @classmethod
    def _parse_engine(cls, value):
        return validators.parse_engine(value)

    def to_document(self, load: ImageLoader) -> StageDocument:
        """Build an editable document, loading each layer image through ``load``."""

        document = StageDocument(
            name=self.name,
            author=self.author,
            resolution=self.resolution,
            engine=self.engine,
        )
        camera = self.camera
        document.camera = replace(
            document.camera,
            tension=camera.tension,
            vertical_follow=camera.vertical_follow,
            floor_tension=camera.floor_tension,
            zoom_enabled=camera.zoom_enabled,
            start_zoom=camera.start_zoom,
            zoom_out=camera.zoom_out,
            zoom_in=camera.zoom_in,
        )
        document.shadow = ShadowSettings(
            enabled=self.shadow.enabled,
            intensity=self.shadow.intensity,
            yscale=self.shadow.yscale,
        )

        for position, config in enumerate(self.layers):
            image = load(config.image)
            layer = BackgroundLayer(
                name=config.name or Path(config.image).stem,
                image=image,
                position=config.position or _centered_placement(image, self.resolution),
                delta=config.delta,
                tiling=config.tiling,
                layer_index=config.layer_index,
                visible=config.visible,
            )
            document.add_layer(layer)
            if position == 0 and config.position is not None:
                document.edit("layer.position", config.position)

        overrides = {
            "ground_line_y": self.ground_line_y,
            "camera.bound_left": camera.bound_left,
            "camera.bound_right": camera.bound_right,
            "camera.bound_high": camera.bound_high,
            "players.p1_x": self.players.p1_x,
            "players.p2_x": self.players.p2_x,
        }
        for path, value in overrides.items():
            if value is not None:
                document.edit(path, value)
        return document


def _centered_placement(image: RasterImage, resolution: Resolution) -> tuple[int, int]:
    geometry = derive_geometry(image.width, image.height, resolution)
    return geometry.placement_x, geometry.placement_y


def parse_project(payload: dict) -> StageProject:
    """Validate a decoded project payload, reporting problems as ValidationError."""

    try:
        return StageProject.model_validate(payload)
    except PydanticValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'project'}: {error['msg']}" for error in exc.errors()
        )
        raise ValidationError(f"Invalid project settings: {details}") from exc


def load_project(path: Path) -> StageProject:
    """Read and validate a project file."""

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValidationError(f"Project file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid project JSON in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationError(f"Project file {path} must contain a JSON object")
    return parse_project(payload)


def load_document(path: Path, codec=None) -> StageDocument:
    """Read a project file and load its images relative to the file."""

    project = load_project(path)
    base_dir = path.parent
    logger.info("Loaded project %s (%s layer(s))", path, len(project.layers))
    return project.to_document(lambda reference: load_image(base_dir / reference, codec=codec))
