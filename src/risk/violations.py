"""Compliance rule evaluation: daily loss, max drawdown, pick minimum, inactivity.

Pure function of a ledger snapshot. Every rule is checked on every call;
the full list of breaches is returned (possibly empty).
"""

from __future__ import annotations

import logging
from datetime import date

from src.config import settings
from src.ledger.models import Phase, Severity
from src.risk.models import Violation

logger = logging.getLogger(__name__)


def days_since(last_activity: str, today: date) -> int:
    """Whole days between last_activity (YYYY-MM-DD) and today; 0 if unknown."""
    if not last_activity:
        return 0
    try:
        last = date.fromisoformat(last_activity[:10])
    except ValueError:
        logger.warning("Unparseable last_activity %r, treating as today", last_activity)
        return 0
    return (today - last).days


def evaluate_violations(
    *,
    account_size: float,
    current_phase: Phase | str,
    today_pnl: float,
    max_drawdown: float,
    total_bets: int,
    last_activity: str,
    today: date,
) -> list[Violation]:
    violations: list[Violation] = []

    # 日次損失
    daily_limit = account_size * settings.daily_loss_limit_pct / 100
    if today_pnl < 0 and abs(today_pnl) > daily_limit:
        violations.append(
            Violation(
                type="daily_loss",
                message=(
                    f"Daily loss limit exceeded: ${abs(today_pnl):,.2f} / ${daily_limit:,.2f}"
                ),
                severity=Severity.CRITICAL,
            )
        )

    dd_limit = account_size * settings.max_drawdown_limit_pct / 100
    if max_drawdown > dd_limit:
        violations.append(
            Violation(
                type="max_drawdown",
                message=f"Max drawdown exceeded: ${max_drawdown:,.2f} / ${dd_limit:,.2f}",
                severity=Severity.CRITICAL,
            )
        )

    if total_bets < settings.min_picks:
        violations.append(
            Violation(
                type="pick_minimum",
                message=(
                    f"Minimum picks not met: {total_bets} / {settings.min_picks} picks required"
                ),
                severity=Severity.WARNING,
            )
        )

    if Phase(current_phase) == Phase.FUNDED:
        idle = days_since(last_activity, today)
        if idle >= settings.inactivity_days:
            violations.append(
                Violation(
                    type="inactivity",
                    message=(
                        f"Inactivity violation: {idle} days since last activity "
                        f"({settings.inactivity_days} day limit for funded accounts)"
                    ),
                    severity=Severity.CRITICAL,
                )
            )

    if violations:
        logger.info(
            "Violations: %s", ", ".join(v.type for v in violations)
        )
    return violations
