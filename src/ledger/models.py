"""Ledger data models: accounts, config, bets.

Dataclasses only, no storage access. ``from_dict`` is the validation
boundary for persisted JSON documents.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

from src.ledger.errors import InvalidData


class Tier(StrEnum):
    STANDARD = "Standard"
    PRO = "Pro"


class Phase(StrEnum):
    PHASE_1 = "Phase 1"
    PHASE_2 = "Phase 2"
    FUNDED = "Funded"


class BetResult(StrEnum):
    WIN = "WIN"
    LOSS = "LOSS"
    PUSH = "PUSH"
    REFUNDED = "REFUNDED"
    CASHED_OUT = "CASHED OUT"


class Severity(StrEnum):
    CRITICAL = "critical"
    WARNING = "warning"


def _require(doc: dict[str, Any], key: str, what: str) -> Any:
    if key not in doc or doc[key] is None:
        raise InvalidData(f"{what} is missing '{key}'")
    return doc[key]


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidData(f"'{key}' must be numeric, got {value!r}") from None


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidData(f"'{key}' must be an integer, got {value!r}") from None


@dataclass
class Account:
    id: str
    name: str
    tier: Tier
    size: float
    active: bool = True
    created: str = ""

    @classmethod
    def from_dict(cls, account_id: str, doc: dict[str, Any]) -> Account:
        try:
            tier = Tier(_require(doc, "tier", "account"))
        except ValueError:
            raise InvalidData(f"Unknown account tier {doc.get('tier')!r}") from None
        size = _as_float(_require(doc, "size", "account"), "size")
        if size <= 0:
            raise InvalidData(f"Account size must be positive, got {size}")
        return cls(
            id=account_id,
            name=str(doc.get("name") or account_id),
            tier=tier,
            size=size,
            active=bool(doc.get("active", True)),
            created=str(doc.get("created", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tier": str(self.tier),
            "size": self.size,
            "active": self.active,
            "created": self.created,
        }


@dataclass
class AccountConfig:
    account_tier: Tier
    account_size: float
    current_phase: Phase = Phase.PHASE_1
    start_date: str = ""
    last_activity: str = ""
    phase_start_balance: float = 0.0
    # None until first initialised from max(size, balance)
    highest_balance: float | None = None

    @classmethod
    def from_dict(cls, doc: dict[str, Any]) -> AccountConfig:
        try:
            tier = Tier(_require(doc, "account_tier", "config"))
            phase = Phase(doc.get("current_phase", Phase.PHASE_1))
        except ValueError as e:
            raise InvalidData(f"Invalid account config: {e}") from None
        size = _as_float(_require(doc, "account_size", "config"), "account_size")
        highest = doc.get("highest_balance")
        return cls(
            account_tier=tier,
            account_size=size,
            current_phase=phase,
            start_date=str(doc.get("start_date", "")),
            last_activity=str(doc.get("last_activity", "")),
            phase_start_balance=_as_float(
                doc.get("phase_start_balance", size), "phase_start_balance"
            ),
            highest_balance=None if highest is None else _as_float(highest, "highest_balance"),
        )

    def to_dict(self) -> dict[str, Any]:
        doc = {
            "account_tier": str(self.account_tier),
            "account_size": self.account_size,
            "current_phase": str(self.current_phase),
            "start_date": self.start_date,
            "last_activity": self.last_activity,
            "phase_start_balance": self.phase_start_balance,
        }
        if self.highest_balance is not None:
            doc["highest_balance"] = self.highest_balance
        return doc


@dataclass
class ParlayLeg:
    selection: str
    odds: int


@dataclass
class Bet:
    id: str
    seq: int  # creation order; tiebreak for same-day bets
    date: str  # YYYY-MM-DD
    sport: str
    selection: str
    stake: float
    odds: int  # American; combined odds for parlays
    result: BetResult
    pnl: float
    account_balance_after: float
    is_parlay: bool = False
    parlay_legs: list[ParlayLeg] = field(default_factory=list)
    created_at: str = ""

    @property
    def sort_key(self) -> tuple[str, int]:
        return (self.date, self.seq)

    @property
    def signature(self) -> str:
        """Duplicate-detection key: date|selection|stake|odds."""
        return bet_signature(self.date, self.selection, self.stake, self.odds)

    @classmethod
    def from_dict(cls, doc: dict[str, Any], default_seq: int = 0) -> Bet:
        try:
            result = BetResult(_require(doc, "result", "bet"))
        except ValueError:
            raise InvalidData(f"Invalid bet result {doc.get('result')!r}") from None
        bet_date = str(_require(doc, "date", "bet"))
        try:
            date.fromisoformat(bet_date)
        except ValueError:
            raise InvalidData(f"Invalid bet date {bet_date!r}") from None
        legs = [
            ParlayLeg(selection=str(leg.get("selection", "")), odds=_as_int(leg.get("odds"), "odds"))
            for leg in doc.get("parlay_legs") or []
        ]
        return cls(
            id=str(_require(doc, "id", "bet")),
            seq=_as_int(doc.get("seq", default_seq), "seq"),
            date=bet_date,
            sport=str(doc.get("sport", "")),
            selection=str(doc.get("selection", "")),
            stake=_as_float(_require(doc, "stake", "bet"), "stake"),
            odds=_as_int(_require(doc, "odds", "bet"), "odds"),
            result=result,
            pnl=_as_float(doc.get("pnl", 0.0), "pnl"),
            account_balance_after=_as_float(
                doc.get("account_balance_after", 0.0), "account_balance_after"
            ),
            is_parlay=bool(doc.get("is_parlay", False)),
            parlay_legs=legs,
            created_at=str(doc.get("created_at", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        doc = asdict(self)
        doc["result"] = str(self.result)
        return doc


def bet_signature(bet_date: str, selection: str, stake: float, odds: int) -> str:
    return f"{bet_date}|{selection.lower()}|{float(stake)!r}|{int(odds)}"


@dataclass
class Ledger:
    """Bets plus running balance for one account."""

    bets: list[Bet] = field(default_factory=list)
    account_balance: float = 0.0
    starting_balance: float = 0.0
    total_wagered: float = 0.0
    total_profit: float = 0.0
    win_rate: float = 0.0
    total_bets: int = 0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    next_seq: int = 1
    version: int = 0

    @classmethod
    def from_dict(cls, doc: dict[str, Any]) -> Ledger:
        bets = [Bet.from_dict(b, default_seq=i + 1) for i, b in enumerate(doc.get("bets") or [])]
        balance = _as_float(doc.get("account_balance", 0.0), "account_balance")
        max_seq = max((b.seq for b in bets), default=0)
        return cls(
            bets=bets,
            account_balance=balance,
            starting_balance=_as_float(doc.get("starting_balance", balance), "starting_balance"),
            total_wagered=_as_float(doc.get("total_wagered", 0.0), "total_wagered"),
            total_profit=_as_float(doc.get("total_profit", 0.0), "total_profit"),
            win_rate=_as_float(doc.get("win_rate", 0.0), "win_rate"),
            total_bets=_as_int(doc.get("total_bets", len(bets)), "total_bets"),
            wins=_as_int(doc.get("wins", 0), "wins"),
            losses=_as_int(doc.get("losses", 0), "losses"),
            pushes=_as_int(doc.get("pushes", 0), "pushes"),
            next_seq=max(_as_int(doc.get("next_seq", 1), "next_seq"), max_seq + 1),
            version=_as_int(doc.get("version", 0), "version"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "bets": [b.to_dict() for b in self.bets],
            "account_balance": self.account_balance,
            "starting_balance": self.starting_balance,
            "total_wagered": self.total_wagered,
            "total_profit": self.total_profit,
            "win_rate": self.win_rate,
            "total_bets": self.total_bets,
            "wins": self.wins,
            "losses": self.losses,
            "pushes": self.pushes,
            "next_seq": self.next_seq,
            "version": self.version,
        }

    def find(self, bet_id: str) -> int:
        """Index of bet_id in bets, -1 if absent."""
        for i, bet in enumerate(self.bets):
            if bet.id == bet_id:
                return i
        return -1
