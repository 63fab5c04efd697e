"""Data model shared by the dicer, packer and sprite builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

Pivot = Tuple[float, float]


@dataclass(slots=True, frozen=True, eq=False)
class SourceImage:
    """Sprite texture to dice.

    `pixels` is an RGBA8 array of shape (height, width, 4) with row 0 at the top.
    `pivot` is relative to the image, measured from its bottom-left corner.
    """

    id: str
    pixels: np.ndarray
    pivot: Optional[Pivot] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "pixels", np.asarray(self.pixels, dtype=np.uint8))
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"pixels of '{self.id}' must be (H,W,4) RGBA, got {self.pixels.shape}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass(slots=True, frozen=True)
class PixelRect:
    """Integer rect in source pixel space, top-left origin."""

    x: int
    y: int
    width: int
    height: int


@dataclass(slots=True, frozen=True)
class UVRect:
    """Rect in atlas texture space (0..1), (u, v) is the top-left corner."""

    u: float
    v: float
    width: float
    height: float

    @property
    def u1(self) -> float:
        return self.u + self.width

    @property
    def v1(self) -> float:
        return self.v + self.height


@dataclass(slots=True, eq=False)
class DicedUnit:
    rect: PixelRect
    padded_pixels: np.ndarray  # (unit + 2 * padding, unit + 2 * padding, 4)
    content_hash: bytes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DicedUnit):
            return NotImplemented
        return self.content_hash == other.content_hash

    def __hash__(self) -> int:
        return hash(self.content_hash)


@dataclass(slots=True, eq=False)
class DicedTexture:
    """Units diced from one source image, in row-major tiling order."""

    source: SourceImage
    units: List[DicedUnit]
    unique_units: List[DicedUnit] = field(init=False)

    def __post_init__(self) -> None:
        first: Dict[bytes, DicedUnit] = {}
        for unit in self.units:
            first.setdefault(unit.content_hash, unit)
        self.unique_units = list(first.values())

    @property
    def unique_hashes(self) -> List[bytes]:
        return [u.content_hash for u in self.unique_units]


@dataclass(slots=True, eq=False)
class AtlasTexture:
    pixels: np.ndarray  # (height, width, 4) uint8
    content_to_uv: Dict[bytes, UVRect]
    serviced: List[DicedTexture]

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass(slots=True, frozen=True)
class SpriteRect:
    """Float rect in source pixel units, y-up, origin at the image's bottom-left."""

    x: float
    y: float
    width: float
    height: float


@dataclass(slots=True, eq=False)
class BuiltSprite:
    id: str
    atlas_index: int
    vertices: np.ndarray  # (N, 2) float32
    uvs: np.ndarray  # (N, 2) float32
    indices: np.ndarray  # (M,) uint32, 3 per triangle
    rect: SpriteRect
    pivot: Pivot

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.vertex_count == 0
