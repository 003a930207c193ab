import math
from collections.abc import Sequence


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity.

    ``round()`` uses banker's rounding (``round(120.5) == 120``); stored
    statistics are rounded the conventional way instead.
    """
    return int(math.floor(value + 0.5))


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def population_std_dev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two samples."""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))
