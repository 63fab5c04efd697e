"""Rebuilds sprite meshes from diced units and their packed atlas."""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .errors import GeometryOverflowError, InvalidOptionsError
from .models import AtlasTexture, BuiltSprite, DicedTexture, Pivot, SpriteRect

logger = logging.getLogger(__name__)

# 16-bit index buffers of the common sprite mesh formats.
MAX_VERTICES = 65000

_QUAD_TRIANGLES = (0, 1, 2, 2, 3, 0)


def validate_build_options(*, ppu: float) -> None:
    if not float(ppu) > 0.0:
        raise InvalidOptionsError("ppu must be > 0")


def build_sprite(
    diced: DicedTexture,
    atlas: AtlasTexture,
    *,
    atlas_index: int = 0,
    ppu: float = 100.0,
    pivot: Pivot = (0.5, 0.5),
    keep_original_pivot: bool = False,
    flip_v: bool = False,
    max_vertices: Optional[int] = None,
) -> BuiltSprite:
    """Build the mesh reproducing `diced.source` from `atlas` content.

    Vertices are y-up, translated so the pivot sits at the origin and scaled
    by 1/ppu. UVs use the atlas' top-left origin unless `flip_v` is set.
    """

    validate_build_options(ppu=ppu)
    source = diced.source
    default_pivot = (float(pivot[0]), float(pivot[1]))

    if not diced.units:
        return BuiltSprite(
            id=source.id,
            atlas_index=int(atlas_index),
            vertices=np.zeros((0, 2), dtype=np.float32),
            uvs=np.zeros((0, 2), dtype=np.float32),
            indices=np.zeros((0,), dtype=np.uint32),
            rect=SpriteRect(0.0, 0.0, 0.0, 0.0),
            pivot=default_pivot,
        )

    vertex_count = len(diced.units) * 4
    limit = MAX_VERTICES if max_vertices is None else int(max_vertices)
    if vertex_count > limit:
        raise GeometryOverflowError(source.id, vertex_count, limit)

    height = float(source.height)
    positions: List[tuple[float, float]] = []
    texcoords: List[tuple[float, float]] = []
    indices: List[int] = []

    for unit in diced.units:
        uv = atlas.content_to_uv[unit.content_hash]
        r = unit.rect
        x0 = float(r.x)
        x1 = float(r.x + r.width)
        y0 = height - float(r.y + r.height)
        y1 = height - float(r.y)

        base = len(positions)
        positions.extend(((x0, y0), (x0, y1), (x1, y1), (x1, y0)))
        # Top rows of the unit sit at uv.v in the top-left origin atlas.
        texcoords.extend(((uv.u, uv.v1), (uv.u, uv.v), (uv.u1, uv.v), (uv.u1, uv.v1)))
        indices.extend(base + idx for idx in _QUAD_TRIANGLES)

    pos_arr = np.asarray(positions, dtype=np.float64)
    min_xy = pos_arr.min(axis=0)
    size = pos_arr.max(axis=0) - min_xy
    rect = SpriteRect(float(min_xy[0]), float(min_xy[1]), float(size[0]), float(size[1]))

    chosen = _resolve_pivot(source.pivot, rect, source.width, source.height, default_pivot, keep_original_pivot)
    origin = min_xy + size * np.asarray(chosen, dtype=np.float64)
    pos_arr = (pos_arr - origin) / float(ppu)

    uv_arr = np.asarray(texcoords, dtype=np.float32)
    if flip_v:
        uv_arr[:, 1] = 1.0 - uv_arr[:, 1]

    return BuiltSprite(
        id=source.id,
        atlas_index=int(atlas_index),
        vertices=pos_arr.astype(np.float32),
        uvs=uv_arr,
        indices=np.asarray(indices, dtype=np.uint32),
        rect=rect,
        pivot=chosen,
    )


def _resolve_pivot(
    source_pivot: Optional[Pivot],
    rect: SpriteRect,
    width: int,
    height: int,
    default_pivot: Pivot,
    keep_original_pivot: bool,
) -> Pivot:
    if not keep_original_pivot or source_pivot is None:
        return default_pivot
    # Source pivot is relative to the untrimmed image; re-express it against the trimmed rect.
    px = float(source_pivot[0]) * float(width)
    py = float(source_pivot[1]) * float(height)
    return ((px - rect.x) / rect.width, (py - rect.y) / rect.height)
