"""File system sources and sinks backed by Pillow."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from typing import Any, List, Sequence

import numpy as np
from PIL import Image

from .models import AtlasTexture, BuiltSprite, SourceImage

logger = logging.getLogger(__name__)

ATLAS_FORMATS = {"png": "PNG", "webp": "WEBP", "tga": "TGA"}


def _supported_extensions() -> set[str]:
    return {ext.lower() for ext, fmt in Image.registered_extensions().items() if fmt in Image.OPEN}


def collect_sources(root: str | Path, *, recursive: bool = False) -> List[Path]:
    """Image files under `root`, sorted for a deterministic build order."""

    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Not a directory: {root}")
    exts = _supported_extensions()
    pattern = "**/*" if recursive else "*"
    return sorted(p for p in root.glob(pattern) if p.is_file() and p.suffix.lower() in exts)


def eval_sprite_id(root: str | Path, path: str | Path, separator: str = "/") -> str:
    """`/foo/bar/img.png` under root `/foo` becomes `bar/img`."""

    rel = Path(path).with_suffix("").relative_to(Path(root))
    return separator.join(rel.parts)


def load_image(path: str | Path) -> np.ndarray:
    with Image.open(path) as img:
        return np.asarray(img.convert("RGBA"), dtype=np.uint8)


def load_sources(root: str | Path, paths: Sequence[Path], *, separator: str = "/") -> List[SourceImage]:
    sources: List[SourceImage] = []
    for path in paths:
        sources.append(SourceImage(id=eval_sprite_id(root, path, separator), pixels=load_image(path)))
        logger.debug("Loaded source %s", path)
    return sources


def atlas_to_bytes(atlas: AtlasTexture, fmt: str = "png") -> bytes:
    img = Image.fromarray(atlas.pixels)
    bio = io.BytesIO()
    img.save(bio, format=ATLAS_FORMATS[fmt])
    return bio.getvalue()


class AtlasFileSink:
    """Writes `atlas_{index}.{fmt}` files into a directory."""

    def __init__(self, out_dir: str | Path, fmt: str = "png") -> None:
        if fmt not in ATLAS_FORMATS:
            raise ValueError(f"atlas format must be one of: {', '.join(ATLAS_FORMATS)}")
        self.out_dir = Path(out_dir)
        self.fmt = fmt

    def write_atlas(self, index: int, atlas: AtlasTexture) -> Path:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / f"atlas_{index}.{self.fmt}"
        path.write_bytes(atlas_to_bytes(atlas, self.fmt))
        logger.info("Wrote %s (%dx%d)", path, atlas.width, atlas.height)
        return path


def sprite_to_dict(sprite: BuiltSprite) -> dict:
    return {
        "id": sprite.id,
        "atlas": int(sprite.atlas_index),
        "vertices": [{"x": float(x), "y": float(y)} for x, y in sprite.vertices.tolist()],
        "uvs": [{"u": float(u), "v": float(v)} for u, v in sprite.uvs.tolist()],
        "indices": [int(i) for i in sprite.indices.tolist()],
        "rect": {
            "x": sprite.rect.x,
            "y": sprite.rect.y,
            "width": sprite.rect.width,
            "height": sprite.rect.height,
        },
        "pivot": {"x": float(sprite.pivot[0]), "y": float(sprite.pivot[1])},
    }


def sprites_to_json(sprites: Sequence[BuiltSprite]) -> str:
    """One sprite object per line inside a JSON array."""

    lines = ["["]
    for idx, sprite in enumerate(sprites):
        body = json.dumps(sprite_to_dict(sprite), ensure_ascii=False, separators=(",", ":"))
        comma = "," if idx != len(sprites) - 1 else ""
        lines.append(f"  {body}{comma}")
    lines.append("]")
    return "\n".join(lines) + "\n"


def write_sprites_json(path: str | Path, sprites: Sequence[BuiltSprite]) -> None:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(sprites_to_json(sprites), encoding="utf-8")


class JsonSpriteSink:
    """Replaces `sprites.json` in a directory."""

    def __init__(self, out_dir: str | Path, name: str = "sprites.json") -> None:
        self.path = Path(out_dir) / name

    def replace_sprites(self, sprites: Sequence[BuiltSprite], atlases: Sequence[AtlasTexture], handles: Sequence[Any]) -> None:
        write_sprites_json(self.path, sprites)
        logger.info("Wrote %s (%d sprites)", self.path, len(sprites))


class GlbSpriteSink:
    """Writes `atlas_{index}.glb` with every sprite of that atlas as a mesh.

    `flip_v` must match the option the sprites were built with; glTF samples
    textures from a top-left origin.
    """

    def __init__(self, out_dir: str | Path, *, flip_v: bool = False) -> None:
        self.out_dir = Path(out_dir)
        self.flip_v = bool(flip_v)

    def replace_sprites(self, sprites: Sequence[BuiltSprite], atlases: Sequence[AtlasTexture], handles: Sequence[Any]) -> None:
        from .glb_writer import write_atlas_glb

        self.out_dir.mkdir(parents=True, exist_ok=True)
        for idx, atlas in enumerate(atlases):
            path = self.out_dir / f"atlas_{idx}.glb"
            write_atlas_glb(
                path,
                sprites=[s for s in sprites if s.atlas_index == idx],
                texture_png=atlas_to_bytes(atlas, "png"),
                name_prefix=f"atlas_{idx}",
                flip_v=self.flip_v,
            )
            logger.info("Wrote %s", path)
