from __future__ import annotations

import random
from typing import Iterable, Iterator, List, Optional

from ..core.errors import ConfigurationError


def synthetic_stream(distinct: int, length: int, seed: Optional[int] = None) -> List[str]:
    """Shuffled stream of ``length`` tokens with exactly ``distinct`` unique values.

    Every token appears at least once; the remaining slots repeat tokens drawn
    uniformly, so repeats interleave arbitrarily with first occurrences.
    """
    if distinct < 1 or length < 1:
        raise ConfigurationError(f"distinct={distinct} and length={length} must be positive")
    if distinct > length:
        raise ConfigurationError(f"distinct={distinct} cannot exceed length={length}")
    rnd = random.Random(seed)
    tokens = [f"e{i}" for i in range(distinct)]
    stream = tokens + [rnd.choice(tokens) for _ in range(length - distinct)]
    rnd.shuffle(stream)
    return stream


def read_elements(lines: Iterable[str]) -> Iterator[str]:
    # one element per line; blank lines carry no element
    for line in lines:
        s = line.rstrip("\r\n")
        if s.strip():
            yield s


__all__ = ["synthetic_stream", "read_elements"]
