"""Exceptions raised by the dicing pipeline."""

from __future__ import annotations


class DicingError(Exception):
    """Base class for all dicing failures."""


class InvalidOptionsError(DicingError, ValueError):
    """Options are rejected before any work starts."""


class UnpackableContentError(DicingError):
    """A single sprite needs more unique units than one atlas can hold."""

    def __init__(self, sprite_id: str, unit_count: int, limit: int) -> None:
        super().__init__(
            f"Can't fit sprite '{sprite_id}' into a single atlas: {unit_count} unique units, "
            f"at most {limit} per atlas; increase atlas size limit or decrease unit size."
        )
        self.sprite_id = sprite_id
        self.unit_count = unit_count
        self.limit = limit


class GeometryOverflowError(DicingError):
    """A built sprite mesh has more vertices than the index format allows."""

    def __init__(self, sprite_id: str, vertex_count: int, limit: int) -> None:
        super().__init__(f"Sprite '{sprite_id}' has {vertex_count} vertices, limit is {limit}.")
        self.sprite_id = sprite_id
        self.vertex_count = vertex_count
        self.limit = limit
