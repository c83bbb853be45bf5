"""Pre-export checks for a stage snapshot.

Rules run in a fixed order and append to two lists: errors block the export,
warnings need confirmation. Nothing here mutates the spec or touches disk.
"""

from __future__ import annotations

from . import IssueCode, StageSpec, ValidationIssue, ValidationResult
from .geometry import camera_pan_extents, player_soft_bounds
from ..utils.file_tools import UNSAFE_NAME_CHARACTERS, has_unsafe_characters

MIN_IMAGE_WIDTH = 320
MIN_IMAGE_HEIGHT = 240
MAX_IMAGE_DIMENSION = 4096


def validate(spec: StageSpec) -> ValidationResult:
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    name = spec.name.strip()
    if not name:
        errors.append(ValidationIssue(IssueCode.MISSING_NAME, "Enter a stage name before exporting"))
    elif has_unsafe_characters(spec.name):
        errors.append(
            ValidationIssue(
                IssueCode.INVALID_NAME,
                f"Stage name contains invalid characters ({' '.join(UNSAFE_NAME_CHARACTERS)} are not allowed)",
            )
        )

    if not spec.layers:
        errors.append(ValidationIssue(IssueCode.NO_LAYERS, "Add at least one background image"))
    elif not spec.visible_layers:
        errors.append(ValidationIssue(IssueCode.NO_VISIBLE_LAYERS, "At least one background layer must be visible"))

    image_size = spec.image_size
    screen_width, screen_height = spec.screen_size
    if image_size is not None:
        width, height = image_size
        if width < MIN_IMAGE_WIDTH or height < MIN_IMAGE_HEIGHT:
            errors.append(
                ValidationIssue(
                    IssueCode.IMAGE_TOO_SMALL,
                    f"Image must be at least {MIN_IMAGE_WIDTH}x{MIN_IMAGE_HEIGHT} pixels (got {width}x{height})",
                )
            )
        if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
            warnings.append(
                ValidationIssue(
                    IssueCode.IMAGE_TOO_LARGE,
                    f"Images over {MAX_IMAGE_DIMENSION} pixels may cause performance issues in game",
                )
            )

        if spec.ground_line_y < 0 or spec.ground_line_y > height:
            errors.append(
                ValidationIssue(
                    IssueCode.INVALID_GROUND_LINE,
                    f"Ground line must be within image bounds (0..{height}, got {spec.ground_line_y})",
                )
            )

        pan_x, pan_y = camera_pan_extents(width, height, screen_width, screen_height)
        camera = spec.camera
        if -camera.bound_left > pan_x or camera.bound_right > pan_x or -camera.bound_high > pan_y:
            warnings.append(
                ValidationIssue(
                    IssueCode.BOUNDS_EXCEED_IMAGE,
                    "Camera bounds exceed the image and may show gaps at the edges",
                )
            )

    player_left, player_right = player_soft_bounds(screen_width)
    for label, x in (("Player 1", spec.players.p1_x), ("Player 2", spec.players.p2_x)):
        if x < player_left or x > player_right:
            warnings.append(
                ValidationIssue(
                    IssueCode.PLAYER_OUT_OF_BOUNDS,
                    f"{label} start position {x} is outside recommended bounds ({player_left}..{player_right})",
                )
            )

    if spec.camera.bound_left >= 0:
        errors.append(ValidationIssue(IssueCode.INVALID_BOUNDS, "Camera left bound must be negative"))
    if spec.camera.bound_right <= 0:
        errors.append(ValidationIssue(IssueCode.INVALID_BOUNDS, "Camera right bound must be positive"))

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))
