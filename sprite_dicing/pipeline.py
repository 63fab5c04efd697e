"""High-level pipeline tying together dicer, packer and sprite builder."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, TypeVar

from . import builder as builder_mod
from . import dicer as dicer_mod
from . import packer as packer_mod
from .errors import GeometryOverflowError
from .models import AtlasTexture, BuiltSprite, DicedTexture, Pivot, SourceImage

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(slots=True)
class AtlasOptions:
    size_limit: int = 2048
    square: bool = False
    pot: bool = False


@dataclass(slots=True)
class DicingOptions:
    unit_size: int = 64
    padding: int = 2
    uv_inset: float = 0.0
    trim_transparent: bool = True
    ppu: float = 100.0
    pivot: Pivot = (0.5, 0.5)
    keep_original_pivot: bool = False
    flip_v: bool = False
    workers: Optional[int] = None  # None or 1 runs sequentially
    atlas: AtlasOptions = field(default_factory=AtlasOptions)

    def validate(self) -> None:
        dicer_mod.validate_dice_options(unit_size=self.unit_size, padding=self.padding)
        packer_mod.validate_pack_options(
            unit_size=self.unit_size,
            padding=self.padding,
            uv_inset=self.uv_inset,
            size_limit=self.atlas.size_limit,
        )
        builder_mod.validate_build_options(ppu=self.ppu)


@dataclass(slots=True, frozen=True)
class Progress:
    activity: str
    ratio: float


ProgressCallback = Callable[[Progress], None]


@dataclass(slots=True)
class DiceResult:
    atlases: List[AtlasTexture]
    sprites: List[BuiltSprite]
    overflowed: List[GeometryOverflowError] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class CompressionStats:
    source_bytes: int
    atlas_bytes: int
    mesh_bytes: int

    @property
    def ratio(self) -> float:
        total = self.atlas_bytes + self.mesh_bytes
        return float(self.source_bytes) / float(total) if total else 0.0


class TextureSink(Protocol):
    def write_atlas(self, index: int, atlas: AtlasTexture) -> Any:
        """Persist one atlas and return a handle sprites may refer to."""


class SpriteSink(Protocol):
    def replace_sprites(self, sprites: Sequence[BuiltSprite], atlases: Sequence[AtlasTexture], handles: Sequence[Any]) -> None:
        """Replace the previously stored sprite set with `sprites`."""


def _map(fn: Callable[[T], R], items: Sequence[T], workers: Optional[int]) -> List[R]:
    if workers is None or int(workers) <= 1 or len(items) <= 1:
        return [fn(item) for item in items]
    with ThreadPoolExecutor(max_workers=int(workers)) as executor:
        return list(executor.map(fn, items))


def _report(progress: Optional[ProgressCallback], activity: str, ratio: float) -> None:
    if progress is not None:
        progress(Progress(activity=activity, ratio=float(ratio)))


def dice(
    sources: Iterable[SourceImage],
    options: DicingOptions | None = None,
    *,
    progress: Optional[ProgressCallback] = None,
) -> DiceResult:
    """Dice, pack and rebuild `sources`; sprites come back in source order."""

    opts = options or DicingOptions()
    opts.validate()
    sources = list(sources)
    total = len(sources)
    logger.info(
        "Dicing %d sources: unit=%d pad=%d atlas_limit=%d square=%s pot=%s",
        total,
        opts.unit_size,
        opts.padding,
        opts.atlas.size_limit,
        opts.atlas.square,
        opts.atlas.pot,
    )

    done = 0

    def _dice_one(src: SourceImage) -> DicedTexture:
        return dicer_mod.dice_texture(
            src,
            unit_size=opts.unit_size,
            padding=opts.padding,
            trim_transparent=opts.trim_transparent,
        )

    if opts.workers and int(opts.workers) > 1 and total > 1:
        _report(progress, "Dicing source textures", 0.0)
        with ThreadPoolExecutor(max_workers=int(opts.workers)) as executor:
            futures = [executor.submit(_dice_one, src) for src in sources]
            try:
                for future in as_completed(futures):
                    future.result()
                    done += 1
                    _report(progress, "Dicing source textures", done / total)
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        diced = [future.result() for future in futures]
    else:
        diced = []
        for src in sources:
            _report(progress, "Dicing source textures", done / total if total else 0.0)
            diced.append(_dice_one(src))
            done += 1

    def _on_round(placed: int, count: int) -> None:
        _report(progress, "Packing atlas textures", placed / count if count else 1.0)

    atlases = packer_mod.pack(
        diced,
        unit_size=opts.unit_size,
        padding=opts.padding,
        uv_inset=opts.uv_inset,
        size_limit=opts.atlas.size_limit,
        square=opts.atlas.square,
        pot=opts.atlas.pot,
        progress=_on_round,
    )

    assignment: Dict[int, int] = {}
    for atlas_index, atlas in enumerate(atlases):
        for tex in atlas.serviced:
            assignment[id(tex)] = atlas_index

    def _build_one(tex: DicedTexture) -> BuiltSprite | GeometryOverflowError:
        atlas_index = assignment[id(tex)]
        try:
            return builder_mod.build_sprite(
                tex,
                atlases[atlas_index],
                atlas_index=atlas_index,
                ppu=opts.ppu,
                pivot=opts.pivot,
                keep_original_pivot=opts.keep_original_pivot,
                flip_v=opts.flip_v,
            )
        except GeometryOverflowError as exc:
            return exc

    _report(progress, "Building diced sprites", 0.0)
    built = _map(_build_one, diced, opts.workers)

    sprites: List[BuiltSprite] = []
    overflowed: List[GeometryOverflowError] = []
    for item in built:
        if isinstance(item, GeometryOverflowError):
            logger.warning("Skipping sprite: %s", item)
            overflowed.append(item)
        else:
            sprites.append(item)
    _report(progress, "Building diced sprites", 1.0)

    logger.info("Built %d sprites over %d atlases (%d skipped)", len(sprites), len(atlases), len(overflowed))
    return DiceResult(atlases=atlases, sprites=sprites, overflowed=overflowed)


def compression_stats(sources: Iterable[SourceImage], result: DiceResult) -> CompressionStats:
    """Raw RGBA bytes of sources vs. atlases plus mesh data."""

    source_bytes = sum(int(s.pixels.nbytes) for s in sources)
    atlas_bytes = sum(int(a.pixels.nbytes) for a in result.atlases)
    mesh_bytes = sum(int(s.vertices.nbytes + s.uvs.nbytes + s.indices.nbytes) for s in result.sprites)
    return CompressionStats(source_bytes=source_bytes, atlas_bytes=atlas_bytes, mesh_bytes=mesh_bytes)


def run(
    sources: Iterable[SourceImage],
    options: DicingOptions | None = None,
    *,
    texture_sink: TextureSink,
    sprite_sinks: Sequence[SpriteSink] = (),
    progress: Optional[ProgressCallback] = None,
) -> DiceResult:
    """Run a full build and hand the products to the given sinks."""

    sources = list(sources)
    result = dice(sources, options, progress=progress)

    handles: List[Any] = []
    for idx, atlas in enumerate(result.atlases):
        _report(progress, "Writing atlas textures", idx / len(result.atlases))
        handles.append(texture_sink.write_atlas(idx, atlas))

    for sink in sprite_sinks:
        sink.replace_sprites(result.sprites, result.atlases, handles)

    stats = compression_stats(sources, result)
    logger.info(
        "Compression: %d B / (%d B + %d B) = %.2f",
        stats.source_bytes,
        stats.atlas_bytes,
        stats.mesh_bytes,
        stats.ratio,
    )
    return result
