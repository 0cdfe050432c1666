"""Per-bet stake limits by tier, with drawdown protection.

Min stake is a percentage of balance; max stake is a fixed cap by tier and
account size. Once balance falls more than 15% below its peak, the min stake
is computed off the 85% floor instead of the live balance.
"""

from __future__ import annotations

from src.config import settings
from src.ledger.models import Tier
from src.risk.models import RiskLimits

MIN_STAKE_PCT = {
    Tier.STANDARD: 1.0,
    Tier.PRO: 2.0,
}

# (size upper bound, cap) first match wins; None = no bound
MAX_STAKE_STEPS: dict[Tier, list[tuple[float | None, float]]] = {
    Tier.STANDARD: [(5_000, 100.0), (10_000, 200.0), (25_000, 500.0), (None, 1000.0)],
    Tier.PRO: [(50_000, 2500.0), (None, 5000.0)],
}


def max_stake(tier: Tier | str, size: float) -> float:
    for bound, cap in MAX_STAKE_STEPS[Tier(tier)]:
        if bound is None or size <= bound:
            return cap
    raise AssertionError("unreachable: last step is unbounded")


def drawdown_floor(highest_balance: float) -> float:
    return highest_balance * (1 - settings.drawdown_protection_pct / 100)


def risk_limits(
    tier: Tier | str,
    size: float,
    current_balance: float | None,
    highest_balance: float | None,
) -> RiskLimits:
    """Allowed stake range for the next bet.

    Protection only applies when both balances are known and non-zero.
    """
    tier = Tier(tier)
    basis = current_balance if current_balance is not None else size

    protected = bool(
        highest_balance
        and current_balance
        and current_balance < drawdown_floor(highest_balance)
    )
    if protected:
        basis = drawdown_floor(highest_balance)

    return RiskLimits(
        min_risk=round(basis * MIN_STAKE_PCT[tier] / 100, 2),
        max_risk=max_stake(tier, size),
        balance_for_calculation=basis,
        drawdown_protected=protected,
    )
