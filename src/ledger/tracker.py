"""Account ledger operations: add/edit/delete/clear bets, status, phases.

BetTracker is the per-request context: it carries the account id, the
injected LedgerStore and a clock. Each public operation loads the account,
performs one mutation, recomputes balances, persists, and returns an
OperationResult. Ledger errors are converted to failed results here, so the
caller never has to catch them.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from src.config import settings
from src.ledger.errors import ErrorKind, InvalidData, LedgerError, NotFound, StakeOutOfRange
from src.ledger.models import (
    AccountConfig,
    Bet,
    BetResult,
    Ledger,
    ParlayLeg,
    Phase,
)
from src.ledger.odds import combined_parlay_odds
from src.ledger.payout import payout
from src.risk.limits import risk_limits
from src.risk.models import RiskLimits, Violation
from src.risk.violations import days_since, evaluate_violations
from src.store.json_store import LedgerStore

if TYPE_CHECKING:
    from src.ingestion.csv_import import ImportResult

logger = logging.getLogger(__name__)

_PUSH_RESULTS = (BetResult.PUSH, BetResult.REFUNDED, BetResult.CASHED_OUT)

_NEXT_PHASE = {
    Phase.PHASE_1: (Phase.PHASE_2, "Congratulations! Advanced to Phase 2"),
    Phase.PHASE_2: (Phase.FUNDED, "Congratulations! Account is now FUNDED!"),
}


@dataclass
class OperationResult:
    success: bool
    message: str = ""
    error: ErrorKind | None = None
    new_balance: float | None = None
    bet: Bet | None = None
    violations: list[Violation] = field(default_factory=list)


@dataclass
class AccountStatus:
    account_id: str
    account_tier: str
    account_size: float
    current_phase: str
    current_balance: float
    highest_balance: float
    start_balance: float
    profit_target: float
    profit_progress: float
    profit_percentage: float
    target_met: bool
    today_pnl: float
    max_drawdown: float
    total_picks: int
    picks_remaining: int
    days_since_activity: int
    risk_limits: RiskLimits
    drawdown_protected: bool
    balance_from_peak_pct: float
    violations: list[Violation]
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    win_rate: float = 0.0
    total_wagered: float = 0.0
    total_profit: float = 0.0


# --- Pure ledger computations ---


def recompute(ledger: Ledger) -> None:
    """Re-sort bets by (date, seq) and rebuild running balances from scratch.

    Stored pnl is authoritative; only account_balance_after, the final
    account_balance and the aggregate counters are derived here.
    """
    ledger.bets.sort(key=lambda b: b.sort_key)
    running = ledger.starting_balance
    for bet in ledger.bets:
        running += bet.pnl
        bet.account_balance_after = running
    ledger.account_balance = running
    refresh_stats(ledger)


def refresh_stats(ledger: Ledger) -> None:
    ledger.total_bets = len(ledger.bets)
    ledger.wins = sum(1 for b in ledger.bets if b.result == BetResult.WIN)
    ledger.losses = sum(1 for b in ledger.bets if b.result == BetResult.LOSS)
    ledger.pushes = sum(1 for b in ledger.bets if b.result in _PUSH_RESULTS)
    ledger.total_wagered = sum(b.stake for b in ledger.bets)
    ledger.total_profit = sum(b.pnl for b in ledger.bets)
    decided = ledger.wins + ledger.losses
    ledger.win_rate = ledger.wins / decided * 100 if decided else 0.0


def daily_pnl(ledger: Ledger, day: date | str) -> float:
    key = day.isoformat() if isinstance(day, date) else str(day)
    return sum(b.pnl for b in ledger.bets if b.date == key)


def max_drawdown(ledger: Ledger) -> float:
    """Largest peak-to-trough drop of the chronological balance curve.

    The curve starts at starting_balance, so a first-bet loss counts.
    """
    running = ledger.starting_balance
    peak = running
    max_dd = 0.0
    for bet in sorted(ledger.bets, key=lambda b: b.sort_key):
        running += bet.pnl
        if running > peak:
            peak = running
        dd = peak - running
        if dd > max_dd:
            max_dd = dd
    return max_dd


def _update_high_water_mark(config: AccountConfig, ledger: Ledger) -> None:
    candidates = [config.account_size, ledger.account_balance]
    if config.highest_balance is not None:
        candidates.append(config.highest_balance)
    candidates.extend(b.account_balance_after for b in ledger.bets)
    config.highest_balance = max(candidates)


def _parse_iso_date(value: str) -> str:
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        raise InvalidData(f"Invalid date '{value}' (expected YYYY-MM-DD)") from None


def _coerce_stake(stake: Any) -> float:
    try:
        value = float(stake)
    except (TypeError, ValueError):
        raise InvalidData(f"Invalid stake {stake!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidData(f"Stake must be a positive amount, got {stake!r}")
    return value


def _coerce_legs(legs: Iterable[ParlayLeg | dict[str, Any]] | None) -> list[ParlayLeg]:
    out: list[ParlayLeg] = []
    for leg in legs or []:
        if isinstance(leg, ParlayLeg):
            selection, raw_odds = leg.selection.strip(), leg.odds
        else:
            selection = str(leg.get("selection", "")).strip()
            raw_odds = leg.get("odds")
        # 空のレッグはフォーム由来なので無視
        if not selection or raw_odds in (None, "", 0, "0"):
            continue
        try:
            out.append(ParlayLeg(selection=selection, odds=int(raw_odds)))
        except (TypeError, ValueError):
            raise InvalidData(f"Invalid parlay leg odds {raw_odds!r}") from None
    return out


def stake_error_message(limits: RiskLimits, config: AccountConfig) -> str:
    msg = (
        f"Bet size must be between ${limits.min_risk:,.2f} and ${limits.max_risk:,.2f}"
        f" for {config.account_tier} ${config.account_size:,.0f} account"
    )
    if limits.drawdown_protected:
        msg += (
            " (Drawdown protection active - betting limited due to "
            f"{settings.drawdown_protection_pct:g}% loss from peak)"
        )
    return msg


class BetTracker:
    """Ledger operations for a single account."""

    def __init__(
        self,
        account_id: str,
        store: LedgerStore | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.account_id = account_id
        self.store = store or LedgerStore()
        self._clock = clock or date.today

    def today(self) -> date:
        return self._clock()

    # --- loading / persistence ---

    def load_ledger(self) -> Ledger:
        return self.store.load_ledger(self.account_id)

    def _load(self) -> tuple[AccountConfig, Ledger]:
        config = self.store.load_config(self.account_id)
        if config is None:
            from src.store.accounts import initialize_account

            initialize_account(self.store, self.account_id, today=self.today())
            config = self.store.load_config(self.account_id)
            if config is None:
                raise NotFound(f"Account '{self.account_id}' has no config")
        ledger = self.store.load_ledger(self.account_id)
        if config.highest_balance is None:
            config.highest_balance = max(config.account_size, ledger.account_balance)
            self.store.save_config(self.account_id, config)
        return config, ledger

    def _persist(self, config: AccountConfig, ledger: Ledger) -> None:
        self.store.save_ledger(self.account_id, ledger)
        self.store.save_config(self.account_id, config)

    def _run(self, op: str, fn: Callable[..., OperationResult], *args: Any, **kwargs: Any) -> OperationResult:
        try:
            return fn(*args, **kwargs)
        except LedgerError as e:
            logger.warning("%s rejected for %s: %s", op, self.account_id, e.message)
            return OperationResult(success=False, error=e.kind, message=e.message)

    # --- queries ---

    def get_all_bets(self) -> list[Bet]:
        """Bets newest first."""
        ledger = self.load_ledger()
        return sorted(ledger.bets, key=lambda b: b.sort_key, reverse=True)

    def get_bet(self, bet_id: str) -> Bet | None:
        ledger = self.load_ledger()
        idx = ledger.find(bet_id)
        return ledger.bets[idx] if idx >= 0 else None

    def get_daily_pnl(self, day: date | str) -> float:
        return daily_pnl(self.load_ledger(), day)

    def get_max_drawdown(self) -> float:
        return max_drawdown(self.load_ledger())

    def current_risk_limits(self) -> RiskLimits:
        config, ledger = self._load()
        return risk_limits(
            config.account_tier,
            config.account_size,
            ledger.account_balance,
            config.highest_balance,
        )

    def _violations(self, config: AccountConfig, ledger: Ledger) -> list[Violation]:
        return evaluate_violations(
            account_size=config.account_size,
            current_phase=config.current_phase,
            today_pnl=daily_pnl(ledger, self.today()),
            max_drawdown=max_drawdown(ledger),
            total_bets=len(ledger.bets),
            last_activity=config.last_activity,
            today=self.today(),
        )

    def check_violations(self) -> list[Violation]:
        config, ledger = self._load()
        return self._violations(config, ledger)

    def get_status(self) -> AccountStatus:
        config, ledger = self._load()
        balance = ledger.account_balance
        start = config.phase_start_balance
        funded = config.current_phase == Phase.FUNDED
        target = 0.0 if funded else start * settings.phase_profit_target_pct / 100
        progress = balance - start
        limits = risk_limits(
            config.account_tier, config.account_size, balance, config.highest_balance
        )
        highest = config.highest_balance or config.account_size

        return AccountStatus(
            account_id=self.account_id,
            account_tier=str(config.account_tier),
            account_size=config.account_size,
            current_phase=str(config.current_phase),
            current_balance=balance,
            highest_balance=highest,
            start_balance=start,
            profit_target=target,
            profit_progress=progress,
            profit_percentage=progress / start * 100 if start else 0.0,
            target_met=True if funded else progress >= target,
            today_pnl=daily_pnl(ledger, self.today()),
            max_drawdown=max_drawdown(ledger),
            total_picks=len(ledger.bets),
            picks_remaining=max(0, settings.min_picks - len(ledger.bets)),
            days_since_activity=days_since(config.last_activity, self.today()),
            risk_limits=limits,
            drawdown_protected=limits.drawdown_protected,
            balance_from_peak_pct=balance / highest * 100 - 100 if highest else 0.0,
            violations=self._violations(config, ledger),
            wins=ledger.wins,
            losses=ledger.losses,
            pushes=ledger.pushes,
            win_rate=ledger.win_rate,
            total_wagered=ledger.total_wagered,
            total_profit=ledger.total_profit,
        )

    # --- mutations ---

    def add_bet(
        self,
        date: str,
        sport: str,
        selection: str,
        stake: float,
        odds: int,
        result: BetResult | str,
        is_parlay: bool = False,
        parlay_legs: Iterable[ParlayLeg | dict[str, Any]] | None = None,
    ) -> OperationResult:
        return self._run(
            "add_bet", self._add_bet,
            date, sport, selection, stake, odds, result, is_parlay, parlay_legs,
        )

    def _add_bet(
        self,
        bet_date: str,
        sport: str,
        selection: str,
        stake: float,
        odds: int,
        result: BetResult | str,
        is_parlay: bool,
        parlay_legs: Iterable[ParlayLeg | dict[str, Any]] | None,
    ) -> OperationResult:
        bet_date = _parse_iso_date(bet_date)
        sport, selection = (sport or "").strip(), (selection or "").strip()
        if not sport or not selection:
            raise InvalidData("Sport and selection are required")
        stake = _coerce_stake(stake)
        try:
            odds = int(odds)
        except (TypeError, ValueError):
            raise InvalidData(f"Invalid odds {odds!r}") from None

        config, ledger = self._load()
        limits = risk_limits(
            config.account_tier,
            config.account_size,
            ledger.account_balance,
            config.highest_balance,
        )
        if stake < limits.min_risk or stake > limits.max_risk:
            raise StakeOutOfRange(stake_error_message(limits, config))

        legs = _coerce_legs(parlay_legs) if is_parlay else []
        effective_odds = combined_parlay_odds(leg.odds for leg in legs) if legs else odds
        if effective_odds == 0:
            raise InvalidData("Odds cannot be 0")
        pnl = payout(stake, effective_odds, result)

        bet = Bet(
            id=uuid.uuid4().hex[:13],
            seq=ledger.next_seq,
            date=bet_date,
            sport=sport,
            selection=selection,
            stake=stake,
            odds=effective_odds,
            result=BetResult(result),
            pnl=pnl,
            account_balance_after=ledger.account_balance + pnl,
            is_parlay=bool(is_parlay),
            parlay_legs=legs,
            created_at=datetime.now().isoformat(timespec="seconds"),
        )
        ledger.next_seq += 1
        ledger.bets.append(bet)
        # backdated bets must land in chronological position
        recompute(ledger)
        _update_high_water_mark(config, ledger)
        if not config.last_activity or bet_date > config.last_activity:
            config.last_activity = bet_date

        self._persist(config, ledger)
        logger.info(
            "Bet %s added to %s: %s %s $%.2f @ %+d → %s (PnL $%+.2f, balance $%.2f)",
            bet.id, self.account_id, bet.date, bet.selection, bet.stake,
            bet.odds, bet.result, bet.pnl, ledger.account_balance,
        )
        return OperationResult(
            success=True,
            message=f"Bet added! New balance: ${ledger.account_balance:,.2f}",
            new_balance=ledger.account_balance,
            bet=bet,
            violations=self._violations(config, ledger),
        )

    def edit_bet(
        self,
        bet_id: str,
        date: str,
        sport: str,
        selection: str,
        stake: float,
        odds: int,
        result: BetResult | str,
    ) -> OperationResult:
        return self._run(
            "edit_bet", self._edit_bet, bet_id, date, sport, selection, stake, odds, result,
        )

    def _edit_bet(
        self,
        bet_id: str,
        bet_date: str,
        sport: str,
        selection: str,
        stake: float,
        odds: int,
        result: BetResult | str,
    ) -> OperationResult:
        config, ledger = self._load()
        idx = ledger.find(bet_id)
        if idx < 0:
            raise NotFound("Bet not found")

        sport, selection = (sport or "").strip(), (selection or "").strip()
        if not bet_date or not sport or not selection:
            raise InvalidData("Invalid bet data")
        try:
            stake, odds = float(stake), int(odds)
        except (TypeError, ValueError):
            raise InvalidData("Invalid bet data") from None
        if not math.isfinite(stake) or stake <= 0 or odds == 0:
            raise InvalidData("Invalid bet data")
        try:
            result = BetResult(result)
        except ValueError:
            raise InvalidData("Invalid result") from None
        bet_date = _parse_iso_date(bet_date)

        old = ledger.bets[idx]
        ledger.bets[idx] = Bet(
            id=old.id,
            seq=old.seq,
            date=bet_date,
            sport=sport,
            selection=selection,
            stake=stake,
            odds=odds,
            result=result,
            pnl=payout(stake, odds, result),
            account_balance_after=old.account_balance_after,
            is_parlay=old.is_parlay,
            parlay_legs=old.parlay_legs,
            created_at=old.created_at,
        )
        recompute(ledger)
        _update_high_water_mark(config, ledger)
        self._persist(config, ledger)
        logger.info("Bet %s edited on %s, balance $%.2f", bet_id, self.account_id, ledger.account_balance)
        return OperationResult(
            success=True,
            message=f"Bet updated successfully! New balance: ${ledger.account_balance:,.2f}",
            new_balance=ledger.account_balance,
            bet=ledger.bets[ledger.find(bet_id)],
        )

    def delete_bet(self, bet_id: str) -> OperationResult:
        return self._run("delete_bet", self._delete_bet, bet_id)

    def _delete_bet(self, bet_id: str) -> OperationResult:
        config, ledger = self._load()
        idx = ledger.find(bet_id)
        if idx < 0:
            raise NotFound("Bet not found")
        removed = ledger.bets.pop(idx)
        recompute(ledger)
        _update_high_water_mark(config, ledger)
        self._persist(config, ledger)
        logger.info(
            "Bet %s deleted from %s (PnL $%+.2f), balance $%.2f",
            bet_id, self.account_id, removed.pnl, ledger.account_balance,
        )
        return OperationResult(
            success=True,
            message=f"Bet deleted successfully! New balance: ${ledger.account_balance:,.2f}",
            new_balance=ledger.account_balance,
            bet=removed,
        )

    def clear_all(self) -> OperationResult:
        """Wipe every bet. The caller must have obtained double confirmation."""
        return self._run("clear_all", self._clear_all)

    def _clear_all(self) -> OperationResult:
        config, ledger = self._load()
        starting = ledger.starting_balance or config.account_size
        cleared = Ledger(
            account_balance=starting,
            starting_balance=starting,
            next_seq=ledger.next_seq,
            version=ledger.version,
        )
        self._persist(config, cleared)
        logger.warning(
            "Cleared %d bets from %s, balance reset to $%.2f",
            len(ledger.bets), self.account_id, starting,
        )
        return OperationResult(
            success=True,
            message="All bets cleared successfully",
            new_balance=starting,
        )

    def advance_phase(self) -> OperationResult:
        return self._run("advance_phase", self._advance_phase)

    def _advance_phase(self) -> OperationResult:
        config, ledger = self._load()
        step = _NEXT_PHASE.get(config.current_phase)
        if step is None:
            return OperationResult(
                success=True, message="Already at funded level", new_balance=ledger.account_balance
            )
        config.current_phase, message = step
        config.phase_start_balance = ledger.account_balance
        self.store.save_config(self.account_id, config)
        logger.info("%s advanced to %s at $%.2f", self.account_id, config.current_phase, ledger.account_balance)
        return OperationResult(success=True, message=message, new_balance=ledger.account_balance)

    # --- ingestion ---

    def import_csv(self, text: str) -> ImportResult:
        from src.ingestion.csv_import import import_csv

        return import_csv(self, text)

    def import_llm_text(self, text: str) -> ImportResult:
        """Reduce untrusted LLM output to CSV and import it like pasted CSV."""
        from src.ingestion.csv_import import ImportResult, import_csv
        from src.ingestion.llm_text import extract_csv

        try:
            csv_text = extract_csv(text)
        except LedgerError as e:
            logger.warning("LLM text rejected for %s: %s", self.account_id, e.message)
            return ImportResult(success=False, error=e.kind, message=e.message)
        return import_csv(self, csv_text)
