"""American / decimal odds conversion and parlay pricing. Pure functions."""

from __future__ import annotations

from collections.abc import Iterable


def american_to_decimal(odds: int) -> float:
    """+150 → 2.5, -110 → 1.909.

    0 has no decimal equivalent; callers must guard.
    """
    if odds == 0:
        raise ValueError("American odds of 0 are undefined")
    if odds > 0:
        return odds / 100 + 1
    return 100 / abs(odds) + 1


def decimal_to_american(decimal: float) -> int:
    if decimal >= 2.0:
        return round((decimal - 1) * 100)
    return round(-100 / (decimal - 1))


def combined_parlay_odds(legs: Iterable[int]) -> int:
    """Multiply leg decimal odds, convert back to American.

    Empty legs → 0 (no parlay).
    """
    combined = 1.0
    count = 0
    for leg in legs:
        combined *= american_to_decimal(int(leg))
        count += 1
    if count == 0:
        return 0
    return decimal_to_american(combined)
