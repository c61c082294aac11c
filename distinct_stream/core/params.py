from __future__ import annotations

import math
import numbers

from .errors import ConfigurationError

# s = ceil(C / eps^2 * log2(8n / delta)), Chakraborty-Vinodchandran-Meel (ESA 2022).
CAPACITY_CONSTANT = 12.0


def validate_unit_interval(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{name}={value!r} is not a real number")
    value = float(value)
    if math.isnan(value) or not 0.0 < value < 1.0:
        raise ConfigurationError(f"{name}={value} must lie in (0, 1)")
    return value


def validate_capacity(capacity: int) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, numbers.Integral):
        raise ConfigurationError(f"capacity={capacity!r} is not an integer")
    if capacity < 1:
        raise ConfigurationError(f"capacity={capacity} must be at least 1")
    return int(capacity)


def capacity_for(eps: float, delta: float, n: int) -> int:
    """Buffer capacity that keeps the estimate within ``eps`` of the truth with
    probability at least ``1 - delta`` for any stream of at most ``n`` elements.

    ``n`` must be a conservative upper bound; the buffer is not resized later.
    """
    eps = validate_unit_interval("eps", eps)
    delta = validate_unit_interval("delta", delta)
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 1:
        raise ConfigurationError(f"n={n!r} must be a positive integer")
    s = math.ceil(CAPACITY_CONSTANT / (eps ** 2) * math.log2(8.0 * n / delta))
    return validate_capacity(s)


__all__ = ["CAPACITY_CONSTANT", "capacity_for", "validate_capacity", "validate_unit_interval"]
