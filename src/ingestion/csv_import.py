"""CSV bet import: Date,Sport,Selection,Stake,Odds,Result.

Two passes. The first parses and validates every line, flags possible
duplicates and collects row errors. The second inserts the parsed rows oldest first
through BetTracker.add_bet, so balances accrue in true date order whatever
the input order. Row failures never abort the batch.
"""

from __future__ import annotations

import csv
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from dateutil import parser as date_parser

from src.ledger.errors import ErrorKind
from src.ledger.models import BetResult, bet_signature

if TYPE_CHECKING:
    from src.ledger.tracker import BetTracker

logger = logging.getLogger(__name__)

MIN_FIELDS = 6

RESULT_SYNONYMS: dict[str, BetResult] = {
    **dict.fromkeys(["WIN", "W", "WON", "WINNING"], BetResult.WIN),
    **dict.fromkeys(["LOSS", "L", "LOSE", "LOST", "LOSING"], BetResult.LOSS),
    **dict.fromkeys(["PUSH", "P", "TIE", "NO ACTION"], BetResult.PUSH),
    **dict.fromkeys(
        ["REFUNDED", "REFUND", "VOID", "CANCELLED", "CANCELED"], BetResult.REFUNDED
    ),
    **dict.fromkeys(
        ["CASHED OUT", "CASH OUT", "CASHOUT", "CASH-OUT"], BetResult.CASHED_OUT
    ),
}

# Tried in order; first match wins. Ambiguous dd/mm vs mm/dd resolves to US.
DATE_FORMATS = [
    "%Y-%m-%d",  # 2025-01-15
    "%m/%d/%Y",  # 01/15/2025
    "%d/%m/%Y",  # 15/01/2025
    "%m-%d-%Y",  # 01-15-2025
    "%d-%m-%Y",  # 15-01-2025
    "%b %d, %Y",  # Jan 15, 2025
    "%B %d, %Y",  # January 15, 2025
    "%d %b %Y",  # 15 Jan 2025
    "%b %d %Y",  # Jan 15 2025
    "%m/%d/%y",  # 01/15/25
    "%d/%m/%y",  # 15/01/25
    "%m-%d-%y",  # 01-15-25
    "%d-%m-%y",  # 15-01-25
]

_ODDS_RE = re.compile(r"^-?\d+(\.\d+)?$")


@dataclass
class ImportResult:
    success: bool
    imported: int = 0
    errors: int = 0
    warnings: int = 0
    error_messages: list[str] = field(default_factory=list)
    warning_messages: list[str] = field(default_factory=list)
    new_balance: float | None = None
    error: ErrorKind | None = None
    message: str = ""


@dataclass
class ParsedRow:
    line: int  # 1-based, counted in the original input
    date: date
    sport: str
    selection: str
    stake: float
    odds: int
    result: BetResult

    @property
    def signature(self) -> str:
        return bet_signature(self.date.isoformat(), self.selection, self.stake, self.odds)


class RowError(ValueError):
    pass


def parse_date(value: str) -> date | None:
    """Explicit formats first, then dateutil's free-form parser."""
    value = value.strip()
    if not value:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    try:
        return date_parser.parse(value).date()
    except (ValueError, OverflowError):
        return None


def parse_stake(raw: str) -> float:
    cleaned = raw.replace("$", "").replace(",", "").replace("+", "").strip()
    try:
        value = float(cleaned)
    except ValueError:
        return 0.0
    # nan/inf は不正な金額として扱う
    return value if math.isfinite(value) else 0.0


def parse_odds(raw: str) -> int:
    cleaned = raw.replace("+", "").replace(" ", "")
    if not _ODDS_RE.match(cleaned):
        raise RowError(
            f"Invalid odds format '{raw}' (use American format like -110, +120)"
        )
    return int(float(cleaned))


def normalize_result(raw: str) -> BetResult:
    key = " ".join(raw.strip().upper().split())
    try:
        return RESULT_SYNONYMS[key]
    except KeyError:
        raise RowError(
            f"Invalid result '{raw.strip()}' (supported: WIN, LOSS, PUSH, REFUNDED, CASHED OUT)"
        ) from None


def parse_row(line_no: int, line: str) -> ParsedRow:
    fields = next(csv.reader([line]))
    if len(fields) < MIN_FIELDS:
        raise RowError(f"Not enough fields (expected {MIN_FIELDS}, got {len(fields)})")

    raw_date, sport, selection, raw_stake, raw_odds, raw_result = (
        f.strip() for f in fields[:MIN_FIELDS]
    )
    stake = parse_stake(raw_stake)
    odds = parse_odds(raw_odds)
    if not raw_date or not sport or not selection or stake <= 0:
        raise RowError(
            f"Missing or invalid required fields (date='{raw_date}', stake={stake:g}, odds={odds})"
        )
    result = normalize_result(raw_result)

    parsed_date = parse_date(raw_date)
    if parsed_date is None:
        raise RowError(
            f"Invalid date format '{raw_date}' "
            "(supported: YYYY-MM-DD, MM/DD/YYYY, DD/MM/YYYY, Jan 15 2025)"
        )
    return ParsedRow(
        line=line_no,
        date=parsed_date,
        sport=sport,
        selection=selection,
        stake=stake,
        odds=odds,
        result=result,
    )


def _is_header(line: str) -> bool:
    lowered = line.lower()
    return "date" in lowered or "sport" in lowered


def parse_csv(
    text: str,
    existing_signatures: set[str],
) -> tuple[list[ParsedRow], list[str], list[str]]:
    """First pass. Returns (rows oldest first, error messages, warning messages).

    Rows matching an existing bet are kept with a warning; rows repeating an
    earlier row of this batch are dropped with a warning.
    """
    rows: list[ParsedRow] = []
    errors: list[str] = []
    warnings: list[str] = []
    seen: set[str] = set()
    header_checked = False

    for idx, raw_line in enumerate(text.splitlines()):
        line_no = idx + 1
        line = raw_line.strip()
        if not line:
            continue
        if not header_checked:
            header_checked = True
            if _is_header(line):
                continue

        try:
            row = parse_row(line_no, line)
        except RowError as e:
            errors.append(f"Line {line_no}: {e}")
            continue

        sig = row.signature
        if sig in seen:
            warnings.append(f"Line {line_no}: Duplicate bet within import data")
            continue
        if sig in existing_signatures:
            warnings.append(
                f"Line {line_no}: Possible duplicate bet (same date, selection, stake, odds)"
            )
        seen.add(sig)
        rows.append(row)

    rows.sort(key=lambda r: r.date)
    return rows, errors, warnings


def import_csv(tracker: BetTracker, text: str) -> ImportResult:
    if not text or not text.strip():
        return ImportResult(success=False, error=ErrorKind.INVALID_DATA, message="CSV data is empty")

    existing = {b.signature for b in tracker.load_ledger().bets}
    rows, error_messages, warning_messages = parse_csv(text, existing)
    logger.info(
        "CSV import for %s: %d parsed, %d invalid, %d duplicates",
        tracker.account_id, len(rows), len(error_messages), len(warning_messages),
    )

    imported = 0
    for row in rows:
        res = tracker.add_bet(
            row.date.isoformat(),
            row.sport,
            row.selection,
            row.stake,
            row.odds,
            row.result,
        )
        if res.success:
            imported += 1
        else:
            error_messages.append(f"Line {row.line}: {res.message}")

    new_balance = tracker.load_ledger().account_balance
    logger.info(
        "CSV import for %s done: imported=%d errors=%d balance=$%.2f",
        tracker.account_id, imported, len(error_messages), new_balance,
    )

    result = ImportResult(
        success=imported > 0,
        imported=imported,
        errors=len(error_messages),
        warnings=len(warning_messages),
        error_messages=error_messages,
        warning_messages=warning_messages,
        new_balance=new_balance,
    )
    if imported:
        result.message = (
            f"Successfully imported {imported} bets (chronologically sorted)! "
            f"New balance: ${new_balance:,.2f}"
        )
    else:
        result.error = ErrorKind.INVALID_DATA
        result.message = "No valid bets found in CSV data."
        if error_messages:
            result.message += " Errors: " + "; ".join(error_messages[:3])
    return result
