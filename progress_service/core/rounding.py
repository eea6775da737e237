from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding: round(2.5) == 2.  Scores and
    # percentages here are defined with halves rounding up.
    return math.floor(value + 0.5)


def round_to(value: float, places: int) -> float:
    factor = 10**places
    return round_half_up(value * factor) / factor
