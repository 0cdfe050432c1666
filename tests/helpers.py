"""Shared test helpers. Import in test files: from tests.helpers import add_ok."""

from __future__ import annotations

from datetime import date

import pytest

from src.ledger.models import Bet, BetResult, Ledger
from src.ledger.tracker import BetTracker, OperationResult

# fixed clock for every tracker fixture
TODAY = date(2025, 1, 20)


def add_ok(tracker: BetTracker, **overrides) -> OperationResult:
    """Add a bet with sensible defaults and assert it was accepted."""
    defaults = {
        "date": "2025-01-15",
        "sport": "NFL",
        "selection": "Chiefs ML",
        "stake": 1500.0,
        "odds": -150,
        "result": "WIN",
    }
    defaults.update(overrides)
    res = tracker.add_bet(**defaults)
    assert res.success, res.message
    return res


def make_bet(seq: int, pnl: float, bet_date: str = "2025-01-15", **overrides) -> Bet:
    """Bet with a fixed pnl, for pure ledger computations."""
    fields = {
        "id": f"bet{seq:04d}",
        "seq": seq,
        "date": bet_date,
        "sport": "NBA",
        "selection": f"Pick {seq}",
        "stake": abs(pnl) or 100.0,
        "odds": 100,
        "result": BetResult.WIN if pnl > 0 else BetResult.LOSS if pnl < 0 else BetResult.PUSH,
        "pnl": pnl,
        "account_balance_after": 0.0,
    }
    fields.update(overrides)
    return Bet(**fields)


def assert_ledger_consistent(ledger: Ledger) -> None:
    """Chronological order, running balances and counters all agree."""
    keys = [b.sort_key for b in ledger.bets]
    assert keys == sorted(keys)

    running = ledger.starting_balance
    for bet in ledger.bets:
        running += bet.pnl
        assert bet.account_balance_after == pytest.approx(running)
    assert ledger.account_balance == pytest.approx(running)
    assert ledger.account_balance == pytest.approx(
        ledger.starting_balance + sum(b.pnl for b in ledger.bets)
    )
    assert ledger.total_bets == len(ledger.bets)
    assert ledger.total_wagered == pytest.approx(sum(b.stake for b in ledger.bets))
