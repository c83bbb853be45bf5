"""Editable stage document with explicit default tracking.

Derived defaults (ground line, camera bounds, player starts, primary layer
placement) are recomputed only when the primary image or the resolution
changes. Fields edited by hand are recorded as overrides and kept across
those recomputations until :meth:`StageDocument.clear_overrides` releases them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

from . import (
    BackgroundLayer,
    CameraSettings,
    DerivedGeometry,
    Engine,
    PlayerSettings,
    RasterImage,
    Resolution,
    ShadowSettings,
    StageSpec,
)
from .geometry import derive_geometry

logger = logging.getLogger(__name__)

DEFAULTED_FIELDS = (
    "ground_line_y",
    "camera.bound_left",
    "camera.bound_right",
    "camera.bound_high",
    "players.p1_x",
    "players.p2_x",
    "layer.position",
)
DERIVED_ONLY_FIELDS = ("camera.bound_low", "players.p1_facing", "players.p2_facing")


@dataclass
class StageDocument:
    """Mutable stage state owned by the editing surface."""

    name: str = ""
    resolution: Resolution = Resolution.HD
    engine: Engine = Engine.IKEMEN_GO
    author: str = ""
    camera: CameraSettings = field(default_factory=CameraSettings)
    players: PlayerSettings = field(default_factory=PlayerSettings)
    shadow: ShadowSettings = field(default_factory=ShadowSettings)
    ground_line_y: int = 645
    layers: list[BackgroundLayer] = field(default_factory=list)
    overrides: set[str] = field(default_factory=set)

    @property
    def primary_layer(self) -> Optional[BackgroundLayer]:
        return self.layers[0] if self.layers else None

    def geometry(self) -> Optional[DerivedGeometry]:
        layer = self.primary_layer
        if layer is None:
            return None
        return derive_geometry(layer.image.width, layer.image.height, self.resolution)

    def apply_defaults(self) -> Optional[DerivedGeometry]:
        """Write derived defaults into every field that has not been overridden."""

        geometry = self.geometry()
        if geometry is None:
            return None

        defaults: dict[str, Any] = {
            "ground_line_y": geometry.ground_line_y,
            "camera.bound_left": geometry.camera_bound_left,
            "camera.bound_right": geometry.camera_bound_right,
            "camera.bound_high": geometry.camera_bound_high,
            "players.p1_x": geometry.p1_start_x,
            "players.p2_x": geometry.p2_start_x,
            "layer.position": (geometry.placement_x, geometry.placement_y),
        }
        for path, value in defaults.items():
            if path not in self.overrides:
                self._assign(path, value)
        logger.debug("Applied defaults (overrides kept: %s)", sorted(self.overrides))
        return geometry

    def edit(self, path: str, value: Any) -> None:
        """Set a field by dotted path (e.g. 'camera.tension') as a manual edit."""

        self._assign(path, value)
        if path in DEFAULTED_FIELDS:
            self.overrides.add(path)

    def clear_overrides(self, *paths: str) -> None:
        """Hand fields back to the derived defaults (all fields when none given)."""

        if paths:
            self.overrides.difference_update(paths)
        else:
            self.overrides.clear()
        self.apply_defaults()

    def set_resolution(self, resolution: Resolution) -> None:
        self.resolution = resolution
        self.apply_defaults()

    def add_layer(self, layer: BackgroundLayer) -> None:
        self.layers.append(layer)
        if len(self.layers) == 1:
            self.apply_defaults()

    def remove_layer(self, layer_id: str) -> None:
        was_primary = self.primary_layer is not None and self.primary_layer.id == layer_id
        self.layers = [layer for layer in self.layers if layer.id != layer_id]
        if was_primary:
            self.apply_defaults()

    def replace_primary_image(self, image: RasterImage) -> None:
        layer = self.primary_layer
        if layer is None:
            raise ValueError("Document has no layers")
        self.layers[0] = replace(layer, image=image)
        self.apply_defaults()

    def edit_layer(self, layer_id: str, **changes: Any) -> BackgroundLayer:
        """Replace a layer with an updated copy; a new primary position counts as an override."""

        for position, layer in enumerate(self.layers):
            if layer.id == layer_id:
                break
        else:
            raise KeyError(f"No layer with id {layer_id}")
        if "image" in changes or "id" in changes:
            raise AttributeError("Layer image and id cannot be edited; use replace_primary_image")
        if "position" in changes:
            changes["position"] = (int(changes["position"][0]), int(changes["position"][1]))
        if "delta" in changes:
            changes["delta"] = (float(changes["delta"][0]), float(changes["delta"][1]))
        updated = replace(layer, **changes)
        self.layers[position] = updated
        if position == 0 and "position" in changes:
            self.overrides.add("layer.position")
        return updated

    def freeze(self) -> StageSpec:
        """Return an immutable snapshot; later edits to the document do not reach it."""

        # Settings and layers are frozen; the snapshot shares them.
        return StageSpec(
            name=self.name,
            resolution=self.resolution,
            engine=self.engine,
            camera=self.camera,
            players=self.players,
            shadow=self.shadow,
            ground_line_y=self.ground_line_y,
            layers=tuple(self.layers),
            author=self.author,
        )

    def _assign(self, path: str, value: Any) -> None:
        if path == "layer.position":
            layer = self.primary_layer
            if layer is None:
                raise ValueError("Document has no layers")
            self.layers[0] = replace(layer, position=(int(value[0]), int(value[1])))
            return
        if path in DERIVED_ONLY_FIELDS:
            raise AttributeError(f"{path} is fixed by convention and cannot be edited")
        group, _, attribute = path.rpartition(".")
        if not group:
            if attribute not in {"name", "author", "resolution", "engine", "ground_line_y"}:
                raise AttributeError(f"Unknown stage field: {path}")
            setattr(self, attribute, value)
            return
        if group not in {"camera", "players", "shadow"}:
            raise AttributeError(f"Unknown stage field: {path}")
        settings = getattr(self, group)
        if attribute not in {f.name for f in fields(settings)}:
            raise AttributeError(f"Unknown stage field: {path}")
        setattr(self, group, replace(settings, **{attribute: value}))
