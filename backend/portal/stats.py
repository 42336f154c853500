from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Iterable


def round_half_up(value, places: int = 0):
    """
    Round like the dashboards always have (2.25 -> 2.3, 62.5 -> 63).

    Python's round() uses banker's rounding, which shifts averages that land
    exactly on a half. Pass a Fraction to round an exact ratio without going
    through binary floating point first.
    """
    quantum = Decimal(1).scaleb(-places)
    if isinstance(value, Fraction):
        exact = Decimal(value.numerator) / Decimal(value.denominator)
    else:
        exact = Decimal(str(value))
    rounded = exact.quantize(quantum, rounding=ROUND_HALF_UP)
    if places == 0:
        return int(rounded)
    return float(rounded)


def mean(values: Iterable):
    """Arithmetic mean, or None for no values. Fractions stay exact."""
    total = 0
    count = 0
    for value in values:
        total += value
        count += 1
    if not count:
        return None
    return total / count
