"""JSON document store for account ledgers, configs and the accounts index.

Layout under data_dir:
    accounts.json                 {id: {name, tier, size, active, created}}
    account_{id}_data.json        Ledger document
    account_{id}_config.json      AccountConfig document

Writes go to a temp file in the same directory followed by os.replace, so a
reader never sees a half-written document. Ledger saves carry an optimistic
version check.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from src.config import settings
from src.ledger.errors import InvalidData, StaleLedger
from src.ledger.models import AccountConfig, Ledger

logger = logging.getLogger(__name__)

ACCOUNTS_FILE = "accounts.json"
_ACCOUNT_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


def _atomic_write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _read_json(path: Path) -> Any | None:
    if not path.exists():
        return None
    with open(path, encoding="utf-8") as fh:
        try:
            return json.load(fh)
        except json.JSONDecodeError as e:
            raise InvalidData(f"Corrupt document {path.name}: {e}") from None


class LedgerStore:
    """File-backed persistence for one data directory."""

    def __init__(self, data_dir: Path | str | None = None) -> None:
        self.data_dir = Path(data_dir) if data_dir else settings.resolved_data_dir()

    # --- paths ---

    def _account_path(self, account_id: str, kind: str) -> Path:
        if not _ACCOUNT_ID_RE.match(account_id or ""):
            raise InvalidData(f"Invalid account id {account_id!r}")
        return self.data_dir / f"account_{account_id}_{kind}.json"

    def data_path(self, account_id: str) -> Path:
        return self._account_path(account_id, "data")

    def config_path(self, account_id: str) -> Path:
        return self._account_path(account_id, "config")

    @property
    def accounts_path(self) -> Path:
        return self.data_dir / ACCOUNTS_FILE

    # --- ledger ---

    def load_ledger(self, account_id: str) -> Ledger:
        """Persisted ledger, or a zeroed one (no bets, balance 0) if absent."""
        doc = _read_json(self.data_path(account_id))
        if doc is None:
            return Ledger()
        return Ledger.from_dict(doc)

    def ledger_exists(self, account_id: str) -> bool:
        return self.data_path(account_id).exists()

    def save_ledger(self, account_id: str, ledger: Ledger) -> None:
        """Persist atomically; reject if the document moved on since load."""
        path = self.data_path(account_id)
        on_disk = _read_json(path)
        disk_version = int(on_disk.get("version", 0)) if on_disk else 0
        if on_disk is not None and disk_version != ledger.version:
            logger.warning(
                "Stale save for %s: loaded v%d, on disk v%d",
                account_id, ledger.version, disk_version,
            )
            raise StaleLedger(
                "Ledger was modified by another request; reload and try again"
            )
        ledger.version += 1
        _atomic_write_json(path, ledger.to_dict())

    # --- config ---

    def load_config(self, account_id: str) -> AccountConfig | None:
        doc = _read_json(self.config_path(account_id))
        if doc is None:
            return None
        return AccountConfig.from_dict(doc)

    def save_config(self, account_id: str, config: AccountConfig) -> None:
        _atomic_write_json(self.config_path(account_id), config.to_dict())

    # --- accounts index ---

    def load_accounts(self) -> dict[str, dict[str, Any]]:
        doc = _read_json(self.accounts_path)
        if not isinstance(doc, dict):
            return {}
        return doc

    def save_accounts(self, accounts: dict[str, dict[str, Any]]) -> None:
        _atomic_write_json(self.accounts_path, accounts)
