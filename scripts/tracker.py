#!/usr/bin/env python3
"""Command-line front end for the funded-account bet ledger.

Usage:
    # First-time setup
    python scripts/tracker.py create --tier Pro --size 50000

    # List accounts / available account types
    python scripts/tracker.py accounts
    python scripts/tracker.py accounts --types

    # Add a straight bet / a parlay
    python scripts/tracker.py add -a pro_50k --date 2025-01-15 --sport NFL \
        --selection "Chiefs ML" --stake 1000 --odds -110 --result WIN
    python scripts/tracker.py add -a pro_50k --date 2025-01-15 --sport Multi \
        --selection "2-leg parlay" --stake 1000 --result WIN \
        --leg "Chiefs ML:-150" --leg "Lakers +5.5:+120"

    # Edit / delete / list
    python scripts/tracker.py edit -a pro_50k BET_ID --date ... --result LOSS
    python scripts/tracker.py delete -a pro_50k BET_ID
    python scripts/tracker.py bets -a pro_50k

    # Import CSV (Date,Sport,Selection,Stake,Odds,Result)
    python scripts/tracker.py import -a pro_50k bets.csv

    # Status (optionally post to Discord)
    python scripts/tracker.py status -a pro_50k --notify

    # Phase advance / wipe
    python scripts/tracker.py advance -a pro_50k
    python scripts/tracker.py clear -a pro_50k --confirm "YES DELETE ALL"
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.ledger.errors import LedgerError  # noqa: E402
from src.ledger.tracker import BetTracker, OperationResult  # noqa: E402
from src.logging_config import setup_logging  # noqa: E402
from src.store import accounts as registry  # noqa: E402
from src.store.json_store import LedgerStore  # noqa: E402

log = logging.getLogger(__name__)

CLEAR_CONFIRMATION = "YES DELETE ALL"


def _parse_leg(raw: str) -> dict:
    """'Chiefs ML:-150' → {'selection': 'Chiefs ML', 'odds': -150}."""
    selection, sep, odds = raw.rpartition(":")
    if not sep or not selection.strip():
        raise argparse.ArgumentTypeError(f"Leg must be 'SELECTION:ODDS', got {raw!r}")
    try:
        return {"selection": selection.strip(), "odds": int(odds.replace("+", ""))}
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid leg odds in {raw!r}") from None


def _report(res: OperationResult) -> int:
    if not res.success:
        print(f"❌ {res.message}")
        return 1
    print(f"✅ {res.message}")
    for v in res.violations:
        print(f"  [{v.severity}] {v.message}")
    return 0


def cmd_accounts(args: argparse.Namespace, store: LedgerStore) -> int:
    if args.types:
        for tier, sizes in registry.available_account_types().items():
            print(f"{tier}: " + ", ".join(s["display"] for s in sizes))
        return 0
    accounts = registry.list_accounts(store)
    if not accounts:
        print("No accounts configured. Run: tracker.py create --tier TIER --size SIZE")
        return 0
    for a in accounts:
        print(f"{a.id:<16} {a.name:<20} {a.tier:<9} ${a.size:>10,.0f}  created {a.created}")
    return 0


def cmd_create(args: argparse.Namespace, store: LedgerStore) -> int:
    try:
        account = registry.create_account(store, args.tier, args.size, args.name)
    except LedgerError as e:
        print(f"❌ {e.message}")
        return 1
    print(f"✅ Created {account.name} (id: {account.id})")
    return 0


def cmd_add(args: argparse.Namespace, tracker: BetTracker) -> int:
    legs = args.leg or []
    return _report(
        tracker.add_bet(
            args.date, args.sport, args.selection, args.stake, args.odds,
            args.result.upper(), bool(legs), legs,
        )
    )


def cmd_edit(args: argparse.Namespace, tracker: BetTracker) -> int:
    return _report(
        tracker.edit_bet(
            args.bet_id, args.date, args.sport, args.selection,
            args.stake, args.odds, args.result.upper(),
        )
    )


def cmd_delete(args: argparse.Namespace, tracker: BetTracker) -> int:
    return _report(tracker.delete_bet(args.bet_id))


def cmd_clear(args: argparse.Namespace, tracker: BetTracker) -> int:
    if args.confirm != CLEAR_CONFIRMATION:
        print(f'Refusing to clear: pass --confirm "{CLEAR_CONFIRMATION}"')
        return 1
    return _report(tracker.clear_all())


def cmd_import(args: argparse.Namespace, tracker: BetTracker) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    if args.llm:
        res = tracker.import_llm_text(text)
    else:
        res = tracker.import_csv(text)
    print(("✅ " if res.success else "❌ ") + res.message)
    for msg in res.error_messages:
        print(f"  error: {msg}")
    for msg in res.warning_messages:
        print(f"  warning: {msg}")
    return 0 if res.success else 1


def cmd_bets(args: argparse.Namespace, tracker: BetTracker) -> int:
    bets = tracker.get_all_bets()
    if not bets:
        print("No bets recorded.")
        return 0
    for b in bets[: args.limit]:
        tag = " [PARLAY]" if b.is_parlay else ""
        print(
            f"{b.id}  {b.date}  {b.sport:<6} {b.selection[:28]:<28}{tag} "
            f"${b.stake:>9,.2f} {b.odds:+5d} {b.result:<10} "
            f"PnL ${b.pnl:>+10,.2f}  bal ${b.account_balance_after:>11,.2f}"
        )
    return 0


def cmd_status(args: argparse.Namespace, tracker: BetTracker) -> int:
    from src.notifications.discord import format_status_message, send_message

    text = format_status_message(tracker.get_status())
    print(text)
    if args.notify and not send_message(text):
        log.warning("Status notification was not delivered")
    return 0


def cmd_advance(args: argparse.Namespace, tracker: BetTracker) -> int:
    return _report(tracker.advance_phase())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Funded betting challenge tracker")
    parser.add_argument("--data-dir", help="Override data directory")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("accounts", help="List accounts")
    p.add_argument("--types", action="store_true", help="Show available account types")

    p = sub.add_parser("create", help="Create an account")
    p.add_argument("--tier", required=True, choices=["Standard", "Pro"])
    p.add_argument("--size", required=True, type=float)
    p.add_argument("--name")

    def account_cmd(name: str, help_text: str) -> argparse.ArgumentParser:
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("-a", "--account", required=True, help="Account id")
        return sp

    for name, help_text in (("add", "Add a bet"), ("edit", "Edit a bet")):
        p = account_cmd(name, help_text)
        if name == "edit":
            p.add_argument("bet_id")
        p.add_argument("--date", required=True, help="YYYY-MM-DD")
        p.add_argument("--sport", required=True)
        p.add_argument("--selection", required=True)
        p.add_argument("--stake", required=True, type=float)
        p.add_argument("--odds", type=int, default=0 if name == "add" else None,
                       required=name == "edit")
        p.add_argument("--result", required=True)
        if name == "add":
            p.add_argument("--leg", action="append", type=_parse_leg,
                           help="Parlay leg 'SELECTION:ODDS' (repeatable)")

    p = account_cmd("delete", "Delete a bet")
    p.add_argument("bet_id")

    p = account_cmd("clear", "Delete every bet on the account")
    p.add_argument("--confirm", default="")

    p = account_cmd("import", "Import bets from a CSV file")
    p.add_argument("file")
    p.add_argument("--llm", action="store_true", help="File is raw LLM output")

    p = account_cmd("bets", "List bets, newest first")
    p.add_argument("--limit", type=int, default=50)

    p = account_cmd("status", "Show account status and violations")
    p.add_argument("--notify", action="store_true", help="Post status to Discord")

    account_cmd("advance", "Advance to the next challenge phase")
    return parser


ACCOUNT_COMMANDS = {
    "add": cmd_add,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "clear": cmd_clear,
    "import": cmd_import,
    "bets": cmd_bets,
    "status": cmd_status,
    "advance": cmd_advance,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.data_dir:
        setup_logging(log_dir=Path(args.data_dir) / "logs")
        store = LedgerStore(args.data_dir)
    else:
        setup_logging()
        store = LedgerStore()

    if args.command == "accounts":
        return cmd_accounts(args, store)
    if args.command == "create":
        return cmd_create(args, store)

    tracker = BetTracker(args.account, store=store)
    try:
        return ACCOUNT_COMMANDS[args.command](args, tracker)
    except LedgerError as e:
        print(f"❌ {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
