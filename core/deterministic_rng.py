"""Deterministic random generator handles derived from one experiment seed."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

import numpy as np


def derive_seed(seed: int, name: str) -> int:
    """Stable cross-process seed derivation instead of built-in ``hash()``."""
    digest = hashlib.sha256(f"{seed}:{name}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=False)


@dataclass
class DeterministicRNG:
    """Owns numpy generator streams without touching global random state."""

    seed: int

    def __post_init__(self) -> None:
        self.generator = np.random.default_rng(self.seed)
        self._streams: dict[str, np.random.Generator] = {}

    def stream(self, name: str) -> np.random.Generator:
        """Return a cached independent stream by name."""
        if name not in self._streams:
            self._streams[name] = self.derive(name)
        return self._streams[name]

    def derive(self, name: str) -> np.random.Generator:
        """Return a new uncached generator seeded from ``(seed, name)``.

        Used for short-lived per-agent streams so that parallel workers draw
        from partitions fixed by name rather than by scheduling order.
        """
        return np.random.default_rng(derive_seed(self.seed, name))
