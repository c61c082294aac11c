from __future__ import annotations


class DistinctCountError(Exception):
    """Base class for errors raised by the distinct-count estimator."""


class ConfigurationError(DistinctCountError, ValueError):
    """Invalid accuracy, confidence, stream-length or capacity parameters."""


class PrecisionExhausted(DistinctCountError, ArithmeticError):
    """Retention probability can no longer be halved without losing the estimate.

    Raised when the stream outgrew the length the buffer was sized for. The
    instance that raised it stays unusable; build a new one with a larger capacity.
    """

    def __init__(self, rounds: int, capacity: int, elements_processed: int) -> None:
        self.rounds = rounds
        self.capacity = capacity
        self.elements_processed = elements_processed
        super().__init__(
            f"retention probability exhausted after {rounds} thinning rounds "
            f"(capacity={capacity}, elements_processed={elements_processed}); "
            "rebuild with a larger capacity"
        )


__all__ = ["DistinctCountError", "ConfigurationError", "PrecisionExhausted"]
