"""Account registry: accounts index, creation, lazy document initialisation."""

from __future__ import annotations

import logging
from datetime import date, datetime

from src.ledger.errors import InvalidData, NotFound
from src.ledger.models import Account, AccountConfig, Ledger, Phase, Tier
from src.store.json_store import LedgerStore

logger = logging.getLogger(__name__)

ACCOUNT_SIZES: dict[Tier, list[int]] = {
    Tier.STANDARD: [1_000, 5_000, 10_000, 25_000, 50_000, 100_000],
    Tier.PRO: [5_000, 10_000, 25_000, 50_000, 100_000],
}


def available_account_types() -> dict[str, list[dict]]:
    """Catalog of tier → sizes offered by the challenge."""
    return {
        str(tier): [{"size": size, "display": f"${size:,}"} for size in sizes]
        for tier, sizes in ACCOUNT_SIZES.items()
    }


def _size_label(size: float) -> str:
    return f"{size / 1000:g}k"


def initial_documents(tier: Tier, size: float, today: date) -> tuple[Ledger, AccountConfig]:
    ledger = Ledger(account_balance=size, starting_balance=size)
    config = AccountConfig(
        account_tier=tier,
        account_size=size,
        current_phase=Phase.PHASE_1,
        start_date=today.isoformat(),
        last_activity=today.isoformat(),
        phase_start_balance=size,
        highest_balance=size,
    )
    return ledger, config


def is_first_time_setup(store: LedgerStore) -> bool:
    return not store.load_accounts()


def list_accounts(store: LedgerStore) -> list[Account]:
    return [Account.from_dict(aid, doc) for aid, doc in store.load_accounts().items()]


def get_account(store: LedgerStore, account_id: str) -> Account:
    doc = store.load_accounts().get(account_id)
    if doc is None:
        raise NotFound(f"Account '{account_id}' not found")
    return Account.from_dict(account_id, doc)


def create_account(
    store: LedgerStore,
    tier: Tier | str,
    size: float,
    name: str | None = None,
    today: date | None = None,
) -> Account:
    """Register a new account and write its initial data/config documents.

    Ids are "{tier}_{size}k" with _2, _3 ... suffixes on collision.
    """
    try:
        tier = Tier(tier)
    except ValueError:
        raise InvalidData(f"Unknown tier {tier!r} (expected Standard or Pro)") from None
    if size <= 0:
        raise InvalidData(f"Account size must be positive, got {size}")

    accounts = store.load_accounts()
    base_id = f"{tier.lower()}_{_size_label(size)}".replace(".", "_")
    account_id = base_id
    counter = 1
    while account_id in accounts:
        counter += 1
        account_id = f"{base_id}_{counter}"

    display = name.strip() if name and name.strip() else f"{tier} ${size / 1000:,.0f}K"
    if counter > 1:
        display += f" #{counter}"

    account = Account(
        id=account_id,
        name=display,
        tier=tier,
        size=float(size),
        active=True,
        created=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    )
    accounts[account_id] = account.to_dict()
    store.save_accounts(accounts)

    ledger, config = initial_documents(tier, float(size), today or date.today())
    store.save_ledger(account_id, ledger)
    store.save_config(account_id, config)
    logger.info("Created account %s (%s $%s)", account_id, tier, f"{size:,.0f}")
    return account


def initialize_account(store: LedgerStore, account_id: str, today: date | None = None) -> Account:
    """Create any missing data/config documents for a registered account."""
    account = get_account(store, account_id)
    ledger, config = initial_documents(account.tier, account.size, today or date.today())
    if store.load_config(account_id) is None:
        store.save_config(account_id, config)
        logger.info("Initialised config for %s", account_id)
    if not store.ledger_exists(account_id):
        store.save_ledger(account_id, ledger)
        logger.info("Initialised ledger for %s", account_id)
    return account
