"""Stage definition (.def) text generation."""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Iterable, Optional

from . import BackgroundLayer, DerivedGeometry, StageSpec
from .sff_writer import BACKGROUND_GROUP, THUMBNAIL_GROUP, THUMBNAIL_INDEX

logger = logging.getLogger(__name__)

PLAYER_HARD_BOUND = 1000
SCREEN_EDGE_DISTANCE = 15

_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]+")

Entry = tuple[str, object]


def format_number(value) -> str:
    """Plain decimal text: no grouping, no exponent, no trailing zeros."""

    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    text = f"{float(value):.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_pair(first, second) -> str:
    return f"{format_number(first)}, {format_number(second)}"


def _section(title: str, entries: Iterable[Entry]) -> list[str]:
    lines = [f"[{title}]"]
    for key, value in entries:
        text = value if isinstance(value, str) else format_number(value)
        lines.append(f"{key} = {text}")
    lines.append("")
    return lines


def _single_line(text: str) -> str:
    """Collapse line breaks and other control characters into a single space."""

    return _CONTROL_CHARACTERS.sub(" ", text)


def _quote(text: str) -> str:
    return '"' + _single_line(text).replace('"', "'") + '"'


def _info(spec: StageSpec, version_date: Optional[date]) -> list[Entry]:
    capabilities = spec.engine.capabilities
    entries: list[Entry] = [
        ("name", _quote(spec.name)),
        ("displayname", _quote(spec.name)),
    ]
    if version_date is not None:
        entries.append(("versiondate", version_date.strftime("%m,%d,%Y")))
    entries.append(("mugenversion", capabilities.mugen_version))
    if capabilities.version_marker:
        entries.append(capabilities.version_marker)
    entries.append(("author", _quote(spec.author)))
    return entries


def _camera(spec: StageSpec) -> list[Entry]:
    camera = spec.camera
    entries: list[Entry] = [
        ("startx", 0),
        ("starty", 0),
        ("boundleft", camera.bound_left),
        ("boundright", camera.bound_right),
        ("boundhigh", camera.bound_high),
        ("boundlow", camera.bound_low),
        ("tension", camera.tension),
        ("tensionhigh", 0),
        ("tensionlow", 0),
        ("verticalfollow", camera.vertical_follow),
        ("floortension", camera.floor_tension),
        ("overdrawhigh", 0),
        ("overdrawlow", 0),
        ("cuthigh", 0),
        ("cutlow", 0),
    ]
    if spec.engine.capabilities.supports_zoom and camera.zoom_enabled:
        entries += [
            ("startzoom", camera.start_zoom),
            ("zoomout", camera.zoom_out),
            ("zoomin", camera.zoom_in),
        ]
    return entries


def _player_info(spec: StageSpec) -> list[Entry]:
    players = spec.players
    return [
        ("p1startx", players.p1_x),
        ("p1starty", 0),
        ("p1startz", 0),
        ("p1facing", players.p1_facing),
        ("p2startx", players.p2_x),
        ("p2starty", 0),
        ("p2startz", 0),
        ("p2facing", players.p2_facing),
        ("leftbound", -PLAYER_HARD_BOUND),
        ("rightbound", PLAYER_HARD_BOUND),
        ("topbound", 0),
        ("botbound", 0),
    ]


def _stage_info(spec: StageSpec, geometry: DerivedGeometry) -> list[Entry]:
    return [
        ("zoffset", spec.ground_line_y),
        ("autoturn", 1),
        ("resetBG", 1),
        ("localcoord", format_pair(geometry.screen_width, geometry.screen_height)),
        ("xscale", 1),
        ("yscale", 1),
    ]


def _shadow(spec: StageSpec) -> list[Entry]:
    shadow = spec.shadow
    return [
        ("intensity", shadow.intensity if shadow.enabled else 0),
        ("color", "0, 0, 0"),
        ("yscale", shadow.yscale),
        ("fade.range", "0, 0"),
    ]


def _background(layer: BackgroundLayer, sprite_index: int) -> list[Entry]:
    return [
        ("type", "normal"),
        ("spriteno", format_pair(BACKGROUND_GROUP, sprite_index)),
        ("layerno", layer.layer_index),
        ("start", format_pair(*layer.position)),
        ("delta", format_pair(*layer.delta)),
        ("trans", "none"),
        ("mask", 0),
        ("tile", layer.tiling.def_value),
    ]


def background_section_names(layers: Iterable[BackgroundLayer]) -> list[str]:
    """Unique '[BG ...]' titles, one per layer, in order."""

    titles: list[str] = []
    taken: set[str] = set()
    for position, layer in enumerate(layers):
        label = " ".join(_single_line(layer.name).replace("[", "").replace("]", "").split()) or "Layer"
        base = f"BG {label}"
        title, suffix = base, position
        while title.lower() in taken:
            title = f"{base} {suffix}"
            suffix += 1
        taken.add(title.lower())
        titles.append(title)
    return titles


def render_def(
    spec: StageSpec,
    geometry: DerivedGeometry,
    sff_name: Optional[str] = None,
    version_date: Optional[date] = None,
) -> str:
    """Render the stage definition text. Pure: identical inputs give identical text."""

    sff_name = sff_name or f"{spec.safe_name}.sff"
    layers = spec.visible_layers

    lines = [f"; {_single_line(spec.name)} stage definition", ""]
    lines += _section("Info", _info(spec, version_date))
    lines += _section("Camera", _camera(spec))
    lines += _section("PlayerInfo", _player_info(spec))
    lines += _section("Bound", [("screenleft", SCREEN_EDGE_DISTANCE), ("screenright", SCREEN_EDGE_DISTANCE)])
    lines += _section("StageInfo", _stage_info(spec, geometry))
    lines += _section("Shadow", _shadow(spec))
    lines += _section("BGdef", [("spr", sff_name), ("debugbg", 0)])
    for sprite_index, (title, layer) in enumerate(zip(background_section_names(layers), layers)):
        lines += _section(title, _background(layer, sprite_index))

    # Stage-select thumbnail.
    lines.append(f"[Begin Action {THUMBNAIL_GROUP}]")
    lines.append(f"{THUMBNAIL_GROUP}, {THUMBNAIL_INDEX}, 0, 0, -1")

    text = "\n".join(lines) + "\n"
    logger.debug("Rendered DEF for %s: %s lines", spec.safe_name, len(lines))
    return text
