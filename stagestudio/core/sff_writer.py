"""SFF v2 sprite container encoding (and reading back for inspection).

Layout written by :func:`encode_sff`::

    header        68 bytes
    sprite nodes  28 bytes each, in input order
    palette node  16 bytes, exactly one
    ldata         palette color, then per sprite: u32 raw size + PNG bytes

The single palette is required by the engines even though PNG sprites never
reference it; containers without one fail to load.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Optional, Sequence

from . import RasterImage, Sprite
from .errors import SFFFormatError, SpriteEncodingError
from .image_codec import DEFAULT_CODEC

logger = logging.getLogger(__name__)

SIGNATURE = b"ElecbyteSpr\x00"
VERSION = bytes((0x00, 0x01, 0x00, 0x02))  # v2.01, stored lo3, lo2, lo1, hi
HEADER_SIZE = 68
SPRITE_NODE_SIZE = 28
PALETTE_NODE_SIZE = 16

NO_LINK = 0xFFFF
MAX_DIMENSION = 32767
PNG_FORMATS = (10, 11, 12)

# Sprite numbering used by exported stages.
BACKGROUND_GROUP = 0
THUMBNAIL_GROUP = 9000
THUMBNAIL_INDEX = 1

# Transparent black, one color.
PALETTE_PAYLOAD = bytes(4)

_HEADER_OFFSETS = struct.Struct("<8I")
_SPRITE_NODE = struct.Struct("<4H2hH2B2I2H")
_PALETTE_NODE = struct.Struct("<4H2I")
_U32 = struct.Struct("<I")
_RESERVED = bytes(20)


def sprite_from_image(
    image: RasterImage,
    group: int,
    index: int,
    axis_x: Optional[int] = None,
    axis_y: Optional[int] = None,
    codec=None,
    role: str = "image",
) -> Sprite:
    """Encode an image as a PNG sprite, rejecting values the container cannot hold.

    The axis defaults to the bottom center of the image.
    """

    width, height = image.width, image.height
    if width <= 0 or height <= 0:
        raise SpriteEncodingError(role, f"image dimensions must be positive (got {width}x{height})")
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise SpriteEncodingError(
            role, f"image dimensions exceed maximum supported size ({MAX_DIMENSION}x{MAX_DIMENSION})"
        )
    if not (0 <= group <= 0xFFFF and 0 <= index <= 0xFFFF):
        raise SpriteEncodingError(role, f"sprite number {group},{index} out of range")

    axis_x = width // 2 if axis_x is None else axis_x
    axis_y = height if axis_y is None else axis_y
    if not (-32768 <= axis_x <= 32767 and -32768 <= axis_y <= 32767):
        raise SpriteEncodingError(role, f"axis {axis_x},{axis_y} out of range")

    try:
        data = (codec or DEFAULT_CODEC).encode(image)
    except (OSError, ValueError) as exc:
        raise SpriteEncodingError(role, f"PNG encoding failed: {exc}") from exc

    return Sprite(
        group=group,
        index=index,
        width=width,
        height=height,
        axis_x=axis_x,
        axis_y=axis_y,
        data=data,
        has_alpha=image.has_alpha,
    )


def encode_sff(sprites: Sequence[Sprite]) -> bytes:
    """Serialize sprites plus the placeholder palette into an SFF v2 blob."""

    sprite_count = len(sprites)
    sprite_offset = HEADER_SIZE
    palette_offset = sprite_offset + sprite_count * SPRITE_NODE_SIZE
    ldata_offset = palette_offset + PALETTE_NODE_SIZE

    ldata = bytearray(PALETTE_PAYLOAD)
    nodes = []
    for sprite in sprites:
        data_offset = len(ldata)
        ldata += _U32.pack(sprite.width * sprite.height * 4)
        ldata += sprite.data
        nodes.append(
            _SPRITE_NODE.pack(
                sprite.group,
                sprite.index,
                sprite.width,
                sprite.height,
                sprite.axis_x,
                sprite.axis_y,
                NO_LINK,
                sprite.format_code,
                sprite.color_depth,
                data_offset,
                len(sprite.data) + _U32.size,
                0,  # palette index
                0,  # flags: payload in ldata
            )
        )

    ldata_length = len(ldata)
    header = b"".join(
        [
            SIGNATURE,
            VERSION,
            _RESERVED,
            _HEADER_OFFSETS.pack(
                sprite_offset,
                sprite_count,
                palette_offset,
                1,
                ldata_offset,
                ldata_length,
                ldata_offset + ldata_length,
                0,
            ),
        ]
    )
    palette = _PALETTE_NODE.pack(0, 0, 1, 0, 0, len(PALETTE_PAYLOAD))

    blob = b"".join([header, *nodes, palette, bytes(ldata)])
    logger.debug("Encoded SFF: %s sprites, %s bytes", sprite_count, len(blob))
    return blob


@dataclass(frozen=True)
class SFFHeader:
    version: bytes
    sprite_offset: int
    sprite_count: int
    palette_offset: int
    palette_count: int
    ldata_offset: int
    ldata_length: int
    tdata_offset: int
    tdata_length: int


@dataclass(frozen=True)
class SpriteRecord:
    group: int
    index: int
    width: int
    height: int
    axis_x: int
    axis_y: int
    linked_index: int
    format_code: int
    color_depth: int
    data_offset: int
    data_length: int
    palette_index: int
    flags: int
    declared_size: Optional[int]
    payload: bytes

    @property
    def has_alpha(self) -> bool:
        return self.format_code == 12


@dataclass(frozen=True)
class PaletteRecord:
    group: int
    index: int
    colors: int
    linked_index: int
    data_offset: int
    data_length: int
    payload: bytes


@dataclass
class SFFContents:
    header: SFFHeader
    sprites: list[SpriteRecord] = field(default_factory=list)
    palettes: list[PaletteRecord] = field(default_factory=list)


def _slice(data: bytes, start: int, length: int, what: str) -> bytes:
    if start < 0 or length < 0 or start + length > len(data):
        raise SFFFormatError(f"{what} range {start}+{length} lies outside the file ({len(data)} bytes)")
    return data[start : start + length]


def read_sff(data: bytes) -> SFFContents:
    """Parse an SFF v2 blob produced by :func:`encode_sff` (or a compatible writer)."""

    if len(data) < HEADER_SIZE:
        raise SFFFormatError("File is shorter than the SFF header")
    if data[:12] != SIGNATURE:
        raise SFFFormatError("Missing ElecbyteSpr signature")
    version = data[12:16]
    if version[3] != 2:
        raise SFFFormatError(f"Unsupported SFF version {version[3]}.{version[2]}{version[1]}")

    header = SFFHeader(version, *_HEADER_OFFSETS.unpack_from(data, 36))
    ldata = _slice(data, header.ldata_offset, header.ldata_length, "ldata")
    tdata = _slice(data, header.tdata_offset, header.tdata_length, "tdata")

    table = _slice(data, header.sprite_offset, header.sprite_count * SPRITE_NODE_SIZE, "sprite table")
    contents = SFFContents(header=header)
    for fields in _SPRITE_NODE.iter_unpack(table):
        (group, index, width, height, axis_x, axis_y, linked, fmt, depth, offset, length, pal, flags) = fields
        region = tdata if flags & 1 else ldata
        raw = _slice(region, offset, length, f"sprite {group},{index} payload")
        declared = None
        if fmt in PNG_FORMATS and len(raw) >= _U32.size:
            declared = _U32.unpack_from(raw)[0]
            raw = raw[_U32.size :]
        contents.sprites.append(
            SpriteRecord(group, index, width, height, axis_x, axis_y, linked, fmt, depth, offset, length, pal, flags, declared, raw)
        )

    table = _slice(data, header.palette_offset, header.palette_count * PALETTE_NODE_SIZE, "palette table")
    for group, index, colors, linked, offset, length in _PALETTE_NODE.iter_unpack(table):
        payload = _slice(ldata, offset, length, f"palette {group},{index} payload")
        contents.palettes.append(PaletteRecord(group, index, colors, linked, offset, length, payload))

    return contents
