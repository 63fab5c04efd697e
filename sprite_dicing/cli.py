"""Command line interface for dicing a directory of sprite textures."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .errors import DicingError
from .fsio import ATLAS_FORMATS, AtlasFileSink, GlbSpriteSink, JsonSpriteSink, collect_sources, load_sources
from .pipeline import AtlasOptions, DicingOptions, compression_stats, run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sprite-dicing")
    parser.add_argument("input", help="Directory with source sprite textures")
    parser.add_argument("--out", help="Directory to write atlases and sprites.json (defaults to input)")
    parser.add_argument("--recursive", action="store_true", help="Include textures from subdirectories")
    parser.add_argument("--separator", default="/", help="Joins subdirectory names into sprite ids")
    parser.add_argument("--atlas-format", choices=tuple(ATLAS_FORMATS), default="png", help="Atlas texture file format")
    parser.add_argument("--glb", action="store_true", help="Also write atlas_N.glb with the sprite meshes")

    parser.add_argument("--unit-size", type=int, default=64, help="Size of a diced unit, in pixels")
    parser.add_argument("--padding", type=int, default=2, help="Border around units inside atlases, in pixels")
    parser.add_argument("--uv-inset", type=float, default=0.0, help="Relative inset of unit UVs (0 to 0.5)")
    parser.add_argument("--no-trim", dest="trim_transparent", action="store_false", help="Keep fully transparent units")
    parser.add_argument("--atlas-size-limit", type=int, default=2048, help="Maximum atlas width/height")
    parser.add_argument("--atlas-square", action="store_true", help="Force atlases to be square")
    parser.add_argument("--atlas-pot", action="store_true", help="Force atlas dimensions to power-of-two")
    parser.add_argument("--ppu", type=float, default=100.0, help="Pixels per unit of the generated meshes")
    parser.add_argument("--pivot", type=float, nargs=2, metavar=("X", "Y"), default=(0.5, 0.5), help="Default relative pivot")
    parser.add_argument("--keep-original-pivot", action="store_true", help="Prefer pivots carried by sources")
    parser.add_argument("--flip-v", action="store_true", help="Flip V texture coordinate (bottom-left UV origin)")
    parser.add_argument("--workers", type=int, default=None, help="Threads used to dice and build sprites")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s: %(message)s")

    in_dir = Path(args.input)
    out_dir = Path(args.out) if args.out else in_dir

    options = DicingOptions(
        unit_size=args.unit_size,
        padding=args.padding,
        uv_inset=args.uv_inset,
        trim_transparent=args.trim_transparent,
        ppu=args.ppu,
        pivot=(float(args.pivot[0]), float(args.pivot[1])),
        keep_original_pivot=bool(args.keep_original_pivot),
        flip_v=bool(args.flip_v),
        workers=args.workers,
        atlas=AtlasOptions(
            size_limit=args.atlas_size_limit,
            square=bool(args.atlas_square),
            pot=bool(args.atlas_pot),
        ),
    )

    try:
        options.validate()
        paths = collect_sources(in_dir, recursive=bool(args.recursive))
    except (DicingError, FileNotFoundError) as exc:
        raise SystemExit(str(exc))
    if not paths:
        raise SystemExit(f"No source textures found in {in_dir}")

    sources = load_sources(in_dir, paths, separator=args.separator)
    sprite_sinks = [JsonSpriteSink(out_dir)]
    if args.glb:
        sprite_sinks.append(GlbSpriteSink(out_dir, flip_v=options.flip_v))

    try:
        result = run(
            sources,
            options,
            texture_sink=AtlasFileSink(out_dir, args.atlas_format),
            sprite_sinks=sprite_sinks,
        )
    except DicingError as exc:
        raise SystemExit(str(exc))

    stats = compression_stats(sources, result)
    print(f"{len(result.sprites)} sprites, {len(result.atlases)} atlases, compression ratio {stats.ratio:.2f}")
    for err in result.overflowed:
        print(f"skipped: {err}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
