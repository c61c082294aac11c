from __future__ import annotations

import random
from typing import Optional, Protocol


class CoinSource(Protocol):
    def bernoulli(self, p: float) -> bool: ...

    def coin(self) -> bool: ...


class RandomSource:
    """Private generator for one estimator.

    Wraps its own ``random.Random`` so two estimators never share state. With
    ``seed=None`` the generator is seeded from the OS entropy pool.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def bernoulli(self, p: float) -> bool:
        # random() is in [0, 1), so p == 1 always succeeds
        return self._rng.random() < p

    def coin(self) -> bool:
        return bool(self._rng.getrandbits(1))

    def spawn(self) -> "RandomSource":
        return RandomSource(self._rng.getrandbits(64))

    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed!r})"


__all__ = ["CoinSource", "RandomSource"]
