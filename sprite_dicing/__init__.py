"""Sprite texture dicing: deduplicate tiles into atlases and rebuild sprite meshes."""

from .errors import DicingError, GeometryOverflowError, InvalidOptionsError, UnpackableContentError
from .models import AtlasTexture, BuiltSprite, DicedTexture, DicedUnit, SourceImage
from .pipeline import AtlasOptions, DiceResult, DicingOptions, Progress, compression_stats, dice, run
from .raw import RawArtifacts, RawSprite, dice_raw

__all__ = [
    "AtlasOptions",
    "AtlasTexture",
    "BuiltSprite",
    "DiceResult",
    "DicedTexture",
    "DicedUnit",
    "DicingError",
    "DicingOptions",
    "GeometryOverflowError",
    "InvalidOptionsError",
    "Progress",
    "RawArtifacts",
    "RawSprite",
    "SourceImage",
    "UnpackableContentError",
    "compression_stats",
    "dice",
    "dice_raw",
    "run",
]
