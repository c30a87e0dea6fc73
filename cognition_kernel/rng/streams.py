"""Explicit random streams derived from a seed and a stream key."""

import hashlib

import numpy as np
from numpy.random import SeedSequence, default_rng


def _mix(key: str) -> int:
    return int.from_bytes(hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest(), "little")


def derive_rng(seed: int, *keys) -> np.random.Generator:
    """
    An independent generator for ``(seed, *keys)``.

    The same seed and keys always give the same stream; different keys give
    statistically independent streams.
    """
    name = ":".join(str(k) for k in keys)
    return default_rng(SeedSequence(int(seed) & 0xFFFFFFFFFFFFFFFF, spawn_key=(_mix(name),)))
