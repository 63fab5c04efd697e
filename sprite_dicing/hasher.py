"""Content hashing of diced units."""

from __future__ import annotations

import hashlib

import numpy as np

DIGEST_SIZE = 16


def content_hash(block: np.ndarray) -> bytes:
    """Return a 128-bit digest of an unpadded RGBA block.

    The block shape is part of the digest so that edge-clipped units of
    different sizes never collide even when their bytes happen to match.
    """

    block = np.ascontiguousarray(block, dtype=np.uint8)
    hsh = hashlib.blake2b(digest_size=DIGEST_SIZE)
    hsh.update(np.asarray(block.shape[:2], dtype=np.int32).tobytes())
    hsh.update(block.tobytes())
    return hsh.digest()
