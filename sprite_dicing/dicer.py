"""Chops source images into fixed-size units."""

from __future__ import annotations

import logging
from typing import List

import numpy as np

from .errors import InvalidOptionsError
from .hasher import content_hash
from .models import DicedTexture, DicedUnit, PixelRect, SourceImage

logger = logging.getLogger(__name__)


def validate_dice_options(*, unit_size: int, padding: int) -> None:
    if int(unit_size) < 1:
        raise InvalidOptionsError("unit_size must be >= 1")
    if int(padding) < 0:
        raise InvalidOptionsError("padding must be >= 0")


def dice_texture(
    source: SourceImage,
    *,
    unit_size: int,
    padding: int = 0,
    trim_transparent: bool = True,
) -> DicedTexture:
    """Split `source` into units of `unit_size` pixels.

    Units are emitted row-major: rows top to bottom (y outer), columns left to
    right (x inner). Units on the right and bottom borders are clipped to the
    image and their `rect` carries the clipped size. The padded copy of every
    unit is read from an edge-replicated image, so border padding repeats the
    nearest edge pixel.
    """

    validate_dice_options(unit_size=unit_size, padding=padding)
    unit = int(unit_size)
    pad = int(padding)
    width, height = source.width, source.height

    if width == 0 or height == 0:
        return DicedTexture(source=source, units=[])

    count_x = -(-width // unit)
    count_y = -(-height // unit)

    # Extra trailing rows/cols let clipped border units slice a full padded block.
    extra_x = count_x * unit - width
    extra_y = count_y * unit - height
    pixels = source.pixels
    padded = np.pad(pixels, ((pad, pad + extra_y), (pad, pad + extra_x), (0, 0)), mode="edge")
    full = unit + pad * 2

    units: List[DicedUnit] = []
    dropped = 0
    for uy in range(count_y):
        y = uy * unit
        h = min(unit, height - y)
        for ux in range(count_x):
            x = ux * unit
            w = min(unit, width - x)
            block = pixels[y : y + h, x : x + w]
            if trim_transparent and not block[:, :, 3].any():
                dropped += 1
                continue
            units.append(
                DicedUnit(
                    rect=PixelRect(x=x, y=y, width=w, height=h),
                    padded_pixels=padded[y : y + full, x : x + full].copy(),
                    content_hash=content_hash(block),
                )
            )

    diced = DicedTexture(source=source, units=units)
    logger.debug(
        "Diced '%s' (%dx%d): units=%d unique=%d transparent_dropped=%d",
        source.id,
        width,
        height,
        len(units),
        len(diced.unique_units),
        dropped,
    )
    return diced
