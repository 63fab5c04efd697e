"""Packs unique diced units into one or more atlas textures."""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from .errors import InvalidOptionsError, UnpackableContentError
from .models import AtlasTexture, DicedTexture, DicedUnit, UVRect

logger = logging.getLogger(__name__)


def validate_pack_options(*, unit_size: int, padding: int, uv_inset: float, size_limit: int) -> None:
    if not 0.0 <= float(uv_inset) <= 0.5:
        raise InvalidOptionsError("uv_inset must be in 0 to 0.5 range")
    if int(size_limit) < 1:
        raise InvalidOptionsError("size_limit must be >= 1")
    if int(unit_size) < 1 or int(unit_size) > int(size_limit):
        raise InvalidOptionsError("unit_size must be in 1 to size_limit range")
    if int(padding) < 0 or int(padding) > int(unit_size):
        raise InvalidOptionsError("padding must be in 0 to unit_size range")


def _next_pow2(x: int) -> int:
    x = int(x)
    if x <= 1:
        return 1
    return 1 << (x - 1).bit_length()


def _prev_pow2(x: int) -> int:
    x = int(x)
    if x <= 1:
        return 1
    return 1 << (x.bit_length() - 1)


def units_per_atlas(*, unit_size: int, padding: int, size_limit: int, pot: bool = False) -> int:
    """Maximum number of unique units a single atlas may hold."""

    limit = _prev_pow2(size_limit) if pot else int(size_limit)
    padded_unit = int(unit_size) + int(padding) * 2
    return (limit // padded_unit) ** 2


def find_cheapest(
    diced: Sequence[DicedTexture],
    remaining: Tuple[int, ...],
    packed: Set[bytes] | Dict[bytes, DicedUnit],
) -> Tuple[int, int]:
    """Return (index, cost) of the remaining texture adding the fewest new units.

    `remaining` holds indices into `diced` in input order; on equal cost the
    earliest index wins.
    """

    best_idx = -1
    best_cost = -1
    for idx in remaining:
        cost = sum(1 for h in diced[idx].unique_hashes if h not in packed)
        if best_idx < 0 or cost < best_cost:
            best_idx = idx
            best_cost = cost
    return best_idx, best_cost


def evaluate_atlas_size(
    unit_count: int,
    *,
    padded_unit: int,
    size_limit: int,
    square: bool = False,
    pot: bool = False,
) -> Tuple[int, int]:
    """Pixel size of an atlas holding `unit_count` padded cells."""

    n = max(1, int(unit_count))
    side = int(math.ceil(math.sqrt(n)))
    cols, rows = side, side
    if not square:
        for width in range(side, 0, -1):
            height = -(-n // width)
            if height * padded_unit > size_limit:
                break
            if width * height < cols * rows:
                cols, rows = width, height

    atlas_w = cols * padded_unit
    atlas_h = rows * padded_unit
    if pot:
        atlas_w = _next_pow2(atlas_w)
        atlas_h = _next_pow2(atlas_h)
    if square:
        m = max(atlas_w, atlas_h)
        atlas_w = atlas_h = m
    return int(atlas_w), int(atlas_h)


def pack(
    diced: Sequence[DicedTexture],
    *,
    unit_size: int,
    padding: int = 0,
    uv_inset: float = 0.0,
    size_limit: int = 2048,
    square: bool = False,
    pot: bool = False,
    progress: Optional[Callable[[int, int], None]] = None,
) -> List[AtlasTexture]:
    """Pack diced textures into atlases, one atlas per greedy round.

    A texture's units never span atlases. `progress(placed, total)` is invoked
    after every completed round.
    """

    validate_pack_options(unit_size=unit_size, padding=padding, uv_inset=uv_inset, size_limit=size_limit)
    unit = int(unit_size)
    pad = int(padding)
    padded_unit = unit + pad * 2
    limit_px = _prev_pow2(size_limit) if pot else int(size_limit)
    limit = units_per_atlas(unit_size=unit, padding=pad, size_limit=size_limit, pot=pot)

    atlases: List[AtlasTexture] = []
    remaining: Tuple[int, ...] = tuple(range(len(diced)))
    while remaining:
        packed: Dict[bytes, DicedUnit] = {}
        selected: List[int] = []
        while remaining:
            idx, cost = find_cheapest(diced, remaining, packed)
            if len(packed) + cost > limit:
                if not selected:
                    raise UnpackableContentError(diced[idx].source.id, cost, limit)
                break
            selected.append(idx)
            remaining = tuple(i for i in remaining if i != idx)
            for u in diced[idx].unique_units:
                packed.setdefault(u.content_hash, u)

        atlas_w, atlas_h = evaluate_atlas_size(
            len(packed), padded_unit=padded_unit, size_limit=limit_px, square=square, pot=pot
        )
        atlas = _build_atlas(
            list(packed.values()),
            [diced[i] for i in selected],
            atlas_w=atlas_w,
            atlas_h=atlas_h,
            unit=unit,
            pad=pad,
            uv_inset=float(uv_inset),
        )
        atlases.append(atlas)
        logger.info(
            "Packed atlas #%d: %dx%d, textures=%d, units=%d/%d",
            len(atlases) - 1,
            atlas_w,
            atlas_h,
            len(selected),
            len(packed),
            limit,
        )
        if progress is not None:
            progress(len(diced) - len(remaining), len(diced))

    return atlases


def _build_atlas(
    units: List[DicedUnit],
    serviced: List[DicedTexture],
    *,
    atlas_w: int,
    atlas_h: int,
    unit: int,
    pad: int,
    uv_inset: float,
) -> AtlasTexture:
    padded_unit = unit + pad * 2
    per_row = atlas_w // padded_unit
    atlas_arr = np.zeros((atlas_h, atlas_w, 4), dtype=np.uint8)
    content_to_uv: Dict[bytes, UVRect] = {}

    for i, u in enumerate(units):
        row, col = divmod(i, per_row)
        ox = col * padded_unit
        oy = row * padded_unit
        atlas_arr[oy : oy + padded_unit, ox : ox + padded_unit, :] = u.padded_pixels

        uv_w = unit / float(atlas_w)
        uv_h = unit / float(atlas_h)
        # Border units are clipped; sample only their real pixels.
        uv_w *= u.rect.width / float(unit)
        uv_h *= u.rect.height / float(unit)
        crop = uv_inset * (uv_w / 2.0)
        content_to_uv[u.content_hash] = UVRect(
            u=(ox + pad) / float(atlas_w) + crop,
            v=(oy + pad) / float(atlas_h) + crop,
            width=uv_w - crop * 2.0,
            height=uv_h - crop * 2.0,
        )

    return AtlasTexture(pixels=atlas_arr, content_to_uv=content_to_uv, serviced=serviced)
