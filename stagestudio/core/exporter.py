"""Export orchestration: validate, build sprites, encode, write, publish."""

from __future__ import annotations

import logging
import tempfile
import zipfile
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from . import ExportOutcome, PackageFormat, Sprite, StageSpec, ValidationIssue
from .def_writer import render_def
from .document import StageDocument
from .errors import ExportBlockedError, ExportCancelledError, ExportIOError, SpriteEncodingError
from .geometry import derive_geometry
from .sff_writer import BACKGROUND_GROUP, THUMBNAIL_GROUP, THUMBNAIL_INDEX, encode_sff, sprite_from_image
from .thumbnail import generate_thumbnail
from .validation import validate
from ..utils import file_tools

logger = logging.getLogger(__name__)

ConfirmWarnings = Callable[[Sequence[ValidationIssue]], bool]


def snapshot(source: Union[StageDocument, StageSpec]) -> StageSpec:
    """Freeze a document; a spec is already immutable."""

    if isinstance(source, StageDocument):
        return source.freeze()
    return source


def build_sprites(spec: StageSpec, codec=None) -> list[Sprite]:
    """One sprite per visible layer, then the stage-select thumbnail."""

    sprites: list[Sprite] = []
    for sprite_index, layer in enumerate(spec.visible_layers):
        sprites.append(
            sprite_from_image(
                layer.image,
                group=BACKGROUND_GROUP,
                index=sprite_index,
                axis_x=0,
                axis_y=0,
                codec=codec,
                role=f"background '{layer.name}'",
            )
        )

    primary = spec.primary_layer
    thumbnail = generate_thumbnail(primary.image) if primary else None
    if thumbnail is None:
        raise SpriteEncodingError("thumbnail", "source image has no pixels")
    sprites.append(
        sprite_from_image(
            thumbnail,
            group=THUMBNAIL_GROUP,
            index=THUMBNAIL_INDEX,
            axis_x=0,
            axis_y=0,
            codec=codec,
            role="thumbnail",
        )
    )

    seen: set[tuple[int, int]] = set()
    for sprite in sprites:
        key = (sprite.group, sprite.index)
        if key in seen:
            raise SpriteEncodingError("sprite list", f"duplicate sprite number {key[0]},{key[1]}")
        seen.add(key)
    return sprites


def export_stage(
    source: Union[StageDocument, StageSpec],
    destination: Path,
    package: PackageFormat = PackageFormat.ZIP,
    confirm_warnings: Optional[ConfirmWarnings] = None,
    overwrite: bool = True,
    codec=None,
    version_date: Optional[date] = None,
) -> ExportOutcome:
    """Export a stage as a zip archive or a folder holding ``<name>.sff`` and ``<name>.def``.

    ``destination`` is the final archive or folder path. The files are built in
    a scratch directory beside it and moved into place only once complete.
    """

    spec = snapshot(source)

    result = validate(spec)
    if not result.is_valid:
        logger.info("Export of '%s' blocked by %s error(s)", spec.name, len(result.errors))
        raise ExportBlockedError(result)
    if result.has_warnings:
        if confirm_warnings is None or not confirm_warnings(result.warnings):
            raise ExportCancelledError(result)
        logger.info("Proceeding with %s accepted warning(s)", len(result.warnings))

    stage_name = spec.safe_name
    width, height = spec.image_size
    geometry = derive_geometry(width, height, spec.resolution)
    logger.info("Exporting '%s' (%sx%s image, %s)", stage_name, width, height, spec.resolution.value)

    sprites = build_sprites(spec, codec=codec)
    sff_bytes = encode_sff(sprites)
    def_text = render_def(
        spec, geometry, sff_name=f"{stage_name}.sff", version_date=version_date or date.today()
    ).encode("utf-8")

    destination = Path(destination)
    if destination.exists() and not overwrite:
        raise ExportIOError(f"Destination already exists: {destination}")

    work_dir: Optional[Path] = None
    try:
        file_tools.ensure_directory(destination.parent)
        work_dir = Path(tempfile.mkdtemp(prefix=f".{stage_name}-", dir=destination.parent))
        stage_dir = file_tools.ensure_directory(work_dir / stage_name)
        (stage_dir / f"{stage_name}.sff").write_bytes(sff_bytes)
        (stage_dir / f"{stage_name}.def").write_bytes(def_text)

        if package is PackageFormat.ZIP:
            staged = work_dir / f"{stage_name}.zip"
            _write_zip(stage_dir, staged)
        else:
            staged = stage_dir
        file_tools.publish(staged, destination, overwrite=overwrite)
    except OSError as exc:
        raise ExportIOError(f"Failed to write stage files: {exc}") from exc
    finally:
        if work_dir is not None:
            file_tools.remove_tree(work_dir)

    logger.info("Wrote %s (%s sprites, SFF %s bytes)", destination, len(sprites), len(sff_bytes))
    return ExportOutcome(
        output_path=destination,
        stage_name=stage_name,
        sff_size=len(sff_bytes),
        def_size=len(def_text),
        sprite_count=len(sprites),
        warnings=result.warnings,
    )


def _write_zip(stage_dir: Path, target: Path) -> None:
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in sorted(stage_dir.iterdir()):
            archive.write(path, arcname=f"{stage_dir.name}/{path.name}")
