from __future__ import annotations

import io
import json
import unittest

import numpy as np
from PIL import Image

from sprite_dicing.pipeline import DicingOptions
from sprite_dicing.raw import RawSprite, decode_raw, dice_raw

from .helpers import B, G, R, T, W, solid, texture


def _encode(pixels: np.ndarray, fmt: str = "PNG") -> bytes:
    bio = io.BytesIO()
    Image.fromarray(pixels).save(bio, format=fmt)
    return bio.getvalue()


class RawDicingTests(unittest.TestCase):
    def test_decode_keeps_pixels_and_pivot(self) -> None:
        pixels = texture([[R, T], [G, W]])
        src = decode_raw(RawSprite(id="a", data=_encode(pixels), format="png", pivot=(0.0, 1.0)))
        self.assertEqual(src.id, "a")
        self.assertEqual(src.pivot, (0.0, 1.0))
        np.testing.assert_array_equal(src.pixels, pixels)

    def test_decode_accepts_extension_with_dot(self) -> None:
        src = decode_raw(RawSprite(id="a", data=_encode(solid(2, 1, B)), format=".PNG"))
        self.assertEqual((src.width, src.height), (2, 1))

    def test_unknown_format_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            decode_raw(RawSprite(id="a", data=b"not an image", format="nope"))

    def test_unknown_atlas_format_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            dice_raw([], DicingOptions(), "bmp")

    def test_dices_encoded_sprites(self) -> None:
        pixels = texture([[R, G], [B, W]])
        sprites = [
            RawSprite(id="a", data=_encode(pixels), format="png"),
            RawSprite(id="b", data=_encode(pixels), format="png"),
        ]
        artifacts = dice_raw(sprites, DicingOptions(unit_size=1, padding=0, ppu=1.0))

        self.assertEqual(len(artifacts.atlases), 1)
        with Image.open(io.BytesIO(artifacts.atlases[0])) as img:
            self.assertEqual(img.format, "PNG")
            self.assertEqual(img.size, (2, 2))

        data = json.loads(artifacts.sprites)
        self.assertEqual([d["id"] for d in data], ["a", "b"])
        self.assertEqual([d["atlas"] for d in data], [0, 0])
        self.assertEqual(len(data[0]["vertices"]), 16)
        self.assertEqual(data[0]["uvs"], data[1]["uvs"])
        self.assertEqual(artifacts.overflowed, [])

    def test_source_pivot_is_used(self) -> None:
        sprites = [RawSprite(id="a", data=_encode(solid(2, 2, R)), format="png", pivot=(0.0, 0.0))]
        artifacts = dice_raw(sprites, DicingOptions(unit_size=1, padding=0, ppu=1.0, keep_original_pivot=True))
        data = json.loads(artifacts.sprites)
        self.assertEqual(data[0]["pivot"], {"x": 0.0, "y": 0.0})
        self.assertEqual(min(v["x"] for v in data[0]["vertices"]), 0.0)
        self.assertEqual(min(v["y"] for v in data[0]["vertices"]), 0.0)

    def test_encodes_atlases_in_requested_format(self) -> None:
        sprites = [RawSprite(id="a", data=_encode(solid(2, 2, R)), format="png")]
        artifacts = dice_raw(sprites, DicingOptions(unit_size=2, padding=0), "tga")
        with Image.open(io.BytesIO(artifacts.atlases[0]), formats=["TGA"]) as img:
            self.assertEqual(img.format, "TGA")
            np.testing.assert_array_equal(np.asarray(img.convert("RGBA")), solid(2, 2, R))


if __name__ == "__main__":
    unittest.main()
