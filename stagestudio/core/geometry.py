"""Default stage geometry derived from image size and target resolution.

All values are integer pixels in the stage's local coordinate space, where
x = 0 is the screen center and y = 0 the top of the screen with the camera at
rest.
"""

from __future__ import annotations

from . import DerivedGeometry, Resolution

# Ground line distance from the bottom of the viewport (fixed resolutions)
# or of the image (custom resolution).
VIEWPORT_FLOOR_MARGIN = 60
IMAGE_FLOOR_MARGIN = 75

PLAYER_MARGIN = 50
PLAYER_SPACING = 70


def camera_pan_extents(image_width: int, image_height: int, screen_width: int, screen_height: int) -> tuple[int, int]:
    """How far the camera can move from rest without leaving the image."""

    pan_x = max(0, (image_width - screen_width) // 2)
    pan_y = max(0, image_height - screen_height)
    return pan_x, pan_y


def player_soft_bounds(screen_width: int) -> tuple[int, int]:
    half = screen_width // 2
    return -half + PLAYER_MARGIN, half - PLAYER_MARGIN


def default_player_spacing(screen_width: int) -> int:
    """Start offset from center, never letting the players span more than half the screen."""

    return min(PLAYER_SPACING, screen_width // 4)


def derive_geometry(image_width: int, image_height: int, resolution: Resolution) -> DerivedGeometry:
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Image dimensions must be positive (got {image_width}x{image_height})")

    screen_width, screen_height = resolution.screen_size
    if resolution.is_fixed:
        ground_line_y = screen_height - VIEWPORT_FLOOR_MARGIN
    else:
        ground_line_y = image_height - IMAGE_FLOOR_MARGIN

    pan_x, pan_y = camera_pan_extents(image_width, image_height, screen_width, screen_height)
    player_left, player_right = player_soft_bounds(screen_width)
    spacing = default_player_spacing(screen_width)

    return DerivedGeometry(
        screen_width=screen_width,
        screen_height=screen_height,
        ground_line_y=ground_line_y,
        pan_x=pan_x,
        pan_y=pan_y,
        camera_bound_left=-pan_x,
        camera_bound_right=pan_x,
        camera_bound_high=-pan_y,
        player_bound_left=player_left,
        player_bound_right=player_right,
        placement_x=-(image_width // 2),
        placement_y=-(image_height - screen_height),
        p1_start_x=-spacing,
        p2_start_x=spacing,
    )
