from __future__ import annotations

import dataclasses
import unittest

import numpy as np

from sprite_dicing.dicer import dice_texture
from sprite_dicing.errors import InvalidOptionsError
from sprite_dicing.models import PixelRect, SourceImage

from .helpers import B, G, R, T, solid, source, texture


class DicerTests(unittest.TestCase):
    def test_invalid_options_are_rejected(self) -> None:
        src = source("b", solid(1, 1, B))
        with self.assertRaises(InvalidOptionsError):
            dice_texture(src, unit_size=0)
        with self.assertRaises(InvalidOptionsError):
            dice_texture(src, unit_size=1, padding=-1)

    def test_source_is_kept(self) -> None:
        src = source("foo", solid(1, 1, B))
        self.assertIs(dice_texture(src, unit_size=1).source, src)

    def test_unit_count_law(self) -> None:
        for w, h, unit in ((5, 3, 2), (4, 4, 2), (7, 1, 3), (1, 1, 4)):
            diced = dice_texture(source("s", solid(w, h, R)), unit_size=unit, trim_transparent=False)
            self.assertEqual(len(diced.units), -(-w // unit) * -(-h // unit))

    def test_units_are_row_major_top_to_bottom(self) -> None:
        diced = dice_texture(source("s", solid(4, 4, R)), unit_size=2)
        self.assertEqual(
            [(u.rect.x, u.rect.y) for u in diced.units],
            [(0, 0), (2, 0), (0, 2), (2, 2)],
        )

    def test_border_units_are_clipped(self) -> None:
        diced = dice_texture(source("s", solid(3, 3, R)), unit_size=2)
        self.assertEqual(
            [u.rect for u in diced.units],
            [
                PixelRect(0, 0, 2, 2),
                PixelRect(2, 0, 1, 2),
                PixelRect(0, 2, 2, 1),
                PixelRect(2, 2, 1, 1),
            ],
        )

    def test_uniform_texture_units_share_hash(self) -> None:
        diced = dice_texture(source("s", solid(4, 4, B)), unit_size=2, padding=0)
        self.assertEqual(len({u.content_hash for u in diced.units}), 1)
        self.assertEqual(len(diced.unique_units), 1)

    def test_hash_ignores_padding(self) -> None:
        pixels = solid(4, 4, B)
        no_pad = dice_texture(source("s", pixels), unit_size=2, padding=0)
        padded = dice_texture(source("s", pixels), unit_size=2, padding=1)
        self.assertEqual(
            [u.content_hash for u in no_pad.units],
            [u.content_hash for u in padded.units],
        )

    def test_hash_ignores_neighbours(self) -> None:
        # Same blue unit next to different neighbours, padded reads differ.
        a = dice_texture(source("a", texture([[B, R]])), unit_size=1, padding=1)
        b = dice_texture(source("b", texture([[G, B]])), unit_size=1, padding=1)
        self.assertEqual(a.units[0].content_hash, b.units[1].content_hash)
        self.assertFalse(np.array_equal(a.units[0].padded_pixels, b.units[1].padded_pixels))

    def test_hash_differs_for_different_content(self) -> None:
        diced = dice_texture(source("s", texture([[R, G, B]])), unit_size=1)
        self.assertEqual(len({u.content_hash for u in diced.units}), 3)

    def test_clipped_units_of_different_shapes_do_not_collide(self) -> None:
        diced = dice_texture(source("s", solid(3, 1, B)), unit_size=2)
        self.assertEqual(len(diced.units), 2)
        self.assertNotEqual(diced.units[0].content_hash, diced.units[1].content_hash)

    def test_dicing_is_deterministic(self) -> None:
        pixels = texture([[R, G, B], [B, T, R]])
        first = dice_texture(source("s", pixels), unit_size=2, padding=1)
        second = dice_texture(source("s", pixels), unit_size=2, padding=1)
        self.assertEqual([u.content_hash for u in first.units], [u.content_hash for u in second.units])
        for a, b in zip(first.units, second.units):
            self.assertEqual(a.rect, b.rect)
            self.assertTrue(np.array_equal(a.padded_pixels, b.padded_pixels))

    def test_padded_pixels_clamp_to_edges(self) -> None:
        diced = dice_texture(source("s", texture([[R, B]])), unit_size=1, padding=1)
        padded = diced.units[0].padded_pixels
        self.assertEqual(padded.shape, (3, 3, 4))
        for row in range(3):
            self.assertEqual(tuple(padded[row, 0]), R)
            self.assertEqual(tuple(padded[row, 1]), R)
            self.assertEqual(tuple(padded[row, 2]), B)

    def test_clipped_unit_padded_block_has_full_size(self) -> None:
        diced = dice_texture(source("s", solid(3, 3, G)), unit_size=2, padding=1)
        for unit in diced.units:
            self.assertEqual(unit.padded_pixels.shape, (4, 4, 4))

    def test_transparent_units_are_trimmed(self) -> None:
        pixels = texture([[B, T], [T, T]])
        trimmed = dice_texture(source("s", pixels), unit_size=1, trim_transparent=True)
        kept = dice_texture(source("s", pixels), unit_size=1, trim_transparent=False)
        self.assertEqual(len(trimmed.units), 1)
        self.assertEqual(trimmed.units[0].rect, PixelRect(0, 0, 1, 1))
        self.assertEqual(len(kept.units), 4)

    def test_fully_transparent_texture_has_no_units(self) -> None:
        diced = dice_texture(source("s", solid(2, 2, T)), unit_size=1)
        self.assertEqual(diced.units, [])
        self.assertEqual(diced.unique_units, [])

    def test_empty_image_has_no_units(self) -> None:
        diced = dice_texture(source("s", np.zeros((0, 0, 4), dtype=np.uint8)), unit_size=2, trim_transparent=False)
        self.assertEqual(diced.units, [])

    def test_unique_units_keep_first_occurrence(self) -> None:
        diced = dice_texture(source("s", texture([[R, B, R, G]])), unit_size=1)
        self.assertEqual([u.rect.x for u in diced.unique_units], [0, 1, 3])

    def test_units_compare_by_hash(self) -> None:
        diced = dice_texture(source("s", texture([[R, B, R]])), unit_size=1)
        first, second, third = diced.units
        self.assertEqual(first, third)
        self.assertNotEqual(first, second)
        self.assertEqual(len({first, second, third}), 2)


class SourceImageTests(unittest.TestCase):
    def test_fields_are_read_only(self) -> None:
        src = source("s", solid(1, 1, R), pivot=(0.0, 0.0))
        with self.assertRaises(dataclasses.FrozenInstanceError):
            src.id = "other"
        with self.assertRaises(dataclasses.FrozenInstanceError):
            src.pixels = solid(2, 2, B)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            src.pivot = (1.0, 1.0)

    def test_pixels_are_converted_to_rgba8(self) -> None:
        src = SourceImage(id="s", pixels=[[[1, 2, 3, 4]]])
        self.assertEqual(src.pixels.dtype, np.uint8)
        self.assertEqual((src.width, src.height), (1, 1))

    def test_rejects_non_rgba_pixels(self) -> None:
        with self.assertRaises(ValueError):
            SourceImage(id="s", pixels=np.zeros((2, 2, 3), dtype=np.uint8))


if __name__ == "__main__":
    unittest.main()
