"""In-memory dicing: encoded sprite bytes in, encoded atlases and JSON out."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image

from .errors import GeometryOverflowError
from .fsio import ATLAS_FORMATS, atlas_to_bytes, sprites_to_json
from .models import Pivot, SourceImage
from .pipeline import DicingOptions, ProgressCallback, dice

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RawSprite:
    """Encoded sprite texture; `format` is a file extension without the dot."""

    id: str
    data: bytes
    format: str
    pivot: Optional[Pivot] = None


@dataclass(slots=True)
class RawArtifacts:
    atlases: List[bytes]
    sprites: str  # JSON array, same layout as sprites.json
    overflowed: List[GeometryOverflowError] = field(default_factory=list)


def decode_raw(raw: RawSprite) -> SourceImage:
    ext = "." + raw.format.lower().lstrip(".")
    image_format = Image.registered_extensions().get(ext)
    if image_format is None or image_format not in Image.OPEN:
        raise ValueError(f"Failed to resolve texture format from '{raw.format}' for sprite '{raw.id}'")
    with Image.open(io.BytesIO(raw.data), formats=[image_format]) as img:
        pixels = np.asarray(img.convert("RGBA"), dtype=np.uint8)
    return SourceImage(id=raw.id, pixels=pixels, pivot=raw.pivot)


def dice_raw(
    sprites: Sequence[RawSprite],
    options: DicingOptions | None = None,
    fmt: str = "png",
    *,
    progress: Optional[ProgressCallback] = None,
) -> RawArtifacts:
    """Decode `sprites`, dice them and encode the atlases as `fmt`."""

    if fmt not in ATLAS_FORMATS:
        raise ValueError(f"atlas format must be one of: {', '.join(ATLAS_FORMATS)}")
    sources = [decode_raw(raw) for raw in sprites]
    result = dice(sources, options, progress=progress)
    atlases = [atlas_to_bytes(atlas, fmt) for atlas in result.atlases]
    logger.info("Encoded %d %s atlases for %d sprites", len(atlases), fmt, len(result.sprites))
    return RawArtifacts(atlases=atlases, sprites=sprites_to_json(result.sprites), overflowed=result.overflowed)
