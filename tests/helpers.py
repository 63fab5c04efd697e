from __future__ import annotations

from typing import Sequence

import numpy as np

from sprite_dicing.models import SourceImage

R = (255, 0, 0, 255)
G = (0, 255, 0, 255)
B = (0, 0, 255, 255)
W = (255, 255, 255, 255)
K = (0, 0, 0, 255)
T = (0, 0, 0, 0)


def texture(rows: Sequence[Sequence[tuple[int, int, int, int]]]) -> np.ndarray:
    """Rows are listed top to bottom."""
    return np.asarray(rows, dtype=np.uint8).reshape((len(rows), len(rows[0]), 4))


def solid(width: int, height: int, color: tuple[int, int, int, int]) -> np.ndarray:
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[:, :] = color
    return arr


def source(sprite_id: str, pixels: np.ndarray, pivot=None) -> SourceImage:
    return SourceImage(id=sprite_id, pixels=pixels, pivot=pivot)
