"""Streaming distinct-element estimator (Chakraborty-Vinodchandran-Meel).

A sample buffer of fixed capacity ``s`` holds each element seen so far with
probability ``p``. Whenever the buffer fills, every held element survives a
fair coin and ``p`` halves, so ``len(buffer) / p`` stays an unbiased estimate
of the number of distinct elements.

    est = DistinctEstimator.from_accuracy(eps=0.1, delta=0.05, n=1_000_000)
    for user_id in stream:
        est.ingest(user_id)
    est.estimate()
"""
from __future__ import annotations

import logging
import math
import sys
import threading
from dataclasses import asdict, dataclass
from typing import Hashable, Iterable, Optional

from .buffer import ElementBuffer, SampleBuffer
from .errors import ConfigurationError, PrecisionExhausted
from .params import capacity_for, validate_capacity
from .randomness import CoinSource, RandomSource

log = logging.getLogger("distinct_stream.estimator")


@dataclass(frozen=True)
class EstimatorSnapshot:
    capacity: int
    probability: float
    rounds: int
    buffer_size: int
    elements_processed: int
    estimate: float

    def as_dict(self) -> dict:
        return asdict(self)


class DistinctEstimator:
    """Approximate count of distinct elements over an insert-only stream.

    Not thread-safe: ``ingest`` mutates the buffer and ``p`` together. Wrap the
    instance in :class:`SynchronizedEstimator` to share it between threads.
    """

    def __init__(
        self,
        capacity: int,
        source: Optional[CoinSource] = None,
        buffer: Optional[ElementBuffer] = None,
    ) -> None:
        self._capacity = validate_capacity(capacity)
        if buffer is None:
            buffer = SampleBuffer(self._capacity)
        elif buffer.size() != 0:
            raise ConfigurationError(f"buffer must start empty, holds {buffer.size()} elements")
        self._buffer = buffer
        self._source = source if source is not None else RandomSource()
        self._rounds = 0
        self._p = 1.0
        self._processed = 0
        self._exhausted = False
        # capacity * 2**rounds must stay a finite float
        self._max_rounds = sys.float_info.max_exp - self._capacity.bit_length()

    @classmethod
    def from_accuracy(
        cls,
        eps: float,
        delta: float,
        n: int,
        source: Optional[CoinSource] = None,
        buffer: Optional[ElementBuffer] = None,
    ) -> "DistinctEstimator":
        return cls(capacity_for(eps, delta, n), source=source, buffer=buffer)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def probability(self) -> float:
        return self._p

    @property
    def rounds(self) -> int:
        return self._rounds

    @property
    def buffer_size(self) -> int:
        return self._buffer.size()

    @property
    def buffer(self) -> ElementBuffer:
        return self._buffer

    def ingest(self, element: Hashable) -> None:
        if self._exhausted:
            raise self._exhausted_error()
        self._processed += 1

        self._buffer.remove(element)
        if self._source.bernoulli(self._p):
            self._buffer.insert(element)

        # Exactly one thin when the buffer is exactly full. If the thin keeps
        # everything the overshoot is left for later removals to shrink.
        if self._buffer.size() == self._capacity:
            if self._rounds >= self._max_rounds:
                self._exhausted = True
                raise self._exhausted_error()
            kept = self._buffer.thin(self._source)
            self._rounds += 1
            self._p = math.ldexp(1.0, -self._rounds)
            log.debug(
                f"thin_round={self._rounds}",
                extra={"ctx": {"p": self._p, "kept": kept, "processed": self._processed}},
            )

    def ingest_all(self, elements: Iterable[Hashable]) -> "DistinctEstimator":
        for element in elements:
            self.ingest(element)
        return self

    def estimate(self) -> float:
        if self._exhausted:
            raise self._exhausted_error()
        return self._buffer.size() / self._p

    def elements_processed(self) -> int:
        return self._processed

    def snapshot(self) -> EstimatorSnapshot:
        return EstimatorSnapshot(
            capacity=self._capacity,
            probability=self._p,
            rounds=self._rounds,
            buffer_size=self._buffer.size(),
            elements_processed=self._processed,
            estimate=self.estimate(),
        )

    def _exhausted_error(self) -> PrecisionExhausted:
        return PrecisionExhausted(self._rounds, self._capacity, self._processed)

    def __repr__(self) -> str:
        return (
            f"DistinctEstimator(capacity={self._capacity}, p={self._p}, "
            f"size={self._buffer.size()}, processed={self._processed})"
        )


class SynchronizedEstimator:
    """Serialises every call on one estimator behind a single lock."""

    def __init__(self, estimator: DistinctEstimator) -> None:
        self._estimator = estimator
        self._lock = threading.Lock()

    def ingest(self, element: Hashable) -> None:
        with self._lock:
            self._estimator.ingest(element)

    def ingest_all(self, elements: Iterable[Hashable]) -> "SynchronizedEstimator":
        with self._lock:
            self._estimator.ingest_all(elements)
        return self

    def estimate(self) -> float:
        with self._lock:
            return self._estimator.estimate()

    def elements_processed(self) -> int:
        with self._lock:
            return self._estimator.elements_processed()

    def snapshot(self) -> EstimatorSnapshot:
        with self._lock:
            return self._estimator.snapshot()


__all__ = ["DistinctEstimator", "EstimatorSnapshot", "SynchronizedEstimator"]
