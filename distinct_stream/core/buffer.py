from __future__ import annotations

from typing import Dict, Hashable, Iterator, List, Protocol

from .params import validate_capacity
from .randomness import CoinSource


class ElementBuffer(Protocol):
    def contains(self, element: Hashable) -> bool: ...

    def insert(self, element: Hashable) -> None: ...

    def remove(self, element: Hashable) -> None: ...

    def size(self) -> int: ...

    def thin(self, source: CoinSource) -> int: ...


class SampleBuffer:
    """Duplicate-free sample sized against ``capacity``.

    Backed by a dict used as an ordered set: iteration follows insertion order,
    so thinning with a seeded source gives the same survivors in every process.
    The capacity bound is kept by the caller (the estimator thins when the buffer
    holds exactly ``capacity`` elements), not enforced here.
    """

    def __init__(self, capacity: int) -> None:
        self._capacity = validate_capacity(capacity)
        self._items: Dict[Hashable, None] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def contains(self, element: Hashable) -> bool:
        return element in self._items

    __contains__ = contains

    def insert(self, element: Hashable) -> None:
        self._items[element] = None

    def remove(self, element: Hashable) -> None:
        self._items.pop(element, None)

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._items)

    def is_full(self) -> bool:
        return len(self._items) == self._capacity

    def thin(self, source: CoinSource) -> int:
        """Keep each element independently on a fair coin; return the number kept."""
        self._items = {e: None for e in self._items if source.coin()}
        return len(self._items)

    def elements(self) -> List[Hashable]:
        return list(self._items)

    def __repr__(self) -> str:
        return f"SampleBuffer(size={len(self._items)}, capacity={self._capacity})"


class ListBuffer:
    """List-backed buffer without hashing.

    Membership is a linear scan, so it suits small capacities and elements that
    only define equality. Survivors of a thin keep their order.
    """

    def __init__(self) -> None:
        self._items: List[Hashable] = []

    def contains(self, element: Hashable) -> bool:
        return element in self._items

    def insert(self, element: Hashable) -> None:
        if element not in self._items:
            self._items.append(element)

    def remove(self, element: Hashable) -> None:
        if element in self._items:
            self._items.remove(element)

    def size(self) -> int:
        return len(self._items)

    def thin(self, source: CoinSource) -> int:
        self._items = [e for e in self._items if source.coin()]
        return len(self._items)

    def elements(self) -> List[Hashable]:
        return list(self._items)


__all__ = ["ElementBuffer", "SampleBuffer", "ListBuffer"]
