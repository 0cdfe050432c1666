"""Shared fixtures for tracker tests.

Helper functions (add_ok, assert_ledger_consistent, etc.) are in tests/helpers.py.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.ledger.tracker import BetTracker
from src.store.accounts import create_account
from src.store.json_store import LedgerStore
from tests.helpers import TODAY


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    """Temporary data directory; each test gets isolated JSON documents."""
    return tmp_path / "data"


@pytest.fixture()
def store(data_dir: Path) -> LedgerStore:
    return LedgerStore(data_dir)


@pytest.fixture()
def tracker(store: LedgerStore) -> BetTracker:
    """Pro $50K account (stake range $1,000 - $2,500 at start)."""
    account = create_account(store, "Pro", 50_000, today=TODAY)
    return BetTracker(account.id, store=store, clock=lambda: TODAY)


@pytest.fixture()
def standard_tracker(store: LedgerStore) -> BetTracker:
    """Standard $10K account (stake range $100 - $200 at start)."""
    account = create_account(store, "Standard", 10_000, today=TODAY)
    return BetTracker(account.id, store=store, clock=lambda: TODAY)
