"""Pure P&L calculation for a single wager, with no storage access.

Parlays are priced before reaching here: the odds passed in are the
combined parlay odds stored on the bet.
"""

from __future__ import annotations

from src.ledger.errors import InvalidData, InvalidResult
from src.ledger.models import BetResult

_ZERO_PNL_RESULTS = (BetResult.PUSH, BetResult.REFUNDED, BetResult.CASHED_OUT)


def payout(stake: float, odds: int, result: BetResult | str) -> float:
    """Profit/loss for one wager.

    LOSS: -stake
    PUSH / REFUNDED / CASHED OUT: 0 (cash-out proceeds are not captured)
    WIN, odds > 0: stake * odds / 100
    WIN, odds <= 0: stake * 100 / |odds|
    """
    try:
        result = BetResult(result)
    except ValueError:
        raise InvalidResult(f"Invalid result '{result}'") from None

    if result == BetResult.LOSS:
        return -stake
    if result in _ZERO_PNL_RESULTS:
        return 0.0
    if odds > 0:
        return stake * odds / 100
    if odds == 0:
        raise InvalidData("Odds cannot be 0")
    return stake * 100 / abs(odds)
