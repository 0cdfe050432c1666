"""Tests for CSV bet import and LLM text reduction."""

from __future__ import annotations

from datetime import date

import pytest

from src.ingestion.csv_import import (
    RowError,
    normalize_result,
    parse_csv,
    parse_date,
    parse_odds,
    parse_row,
    parse_stake,
)
from src.ingestion.llm_text import extract_csv
from src.ledger.errors import ErrorKind, InvalidData
from src.ledger.models import BetResult
from tests.helpers import add_ok, assert_ledger_consistent

HEADER = "Date,Sport,Selection,Stake,Odds,Result"


def _csv(*rows: str, header: bool = True) -> str:
    return "\n".join(([HEADER] if header else []) + list(rows))


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------


class TestParseDate:
    @pytest.mark.parametrize(
        "raw",
        [
            "2025-01-15",
            "01/15/2025",
            "15/01/2025",
            "01-15-2025",
            "Jan 15, 2025",
            "January 15, 2025",
            "15 Jan 2025",
            "Jan 15 2025",
            "01/15/25",
        ],
    )
    def test_supported_formats(self, raw):
        assert parse_date(raw) == date(2025, 1, 15)

    def test_ambiguous_is_us_order(self):
        assert parse_date("03/04/2025") == date(2025, 3, 4)

    def test_free_form_fallback(self):
        assert parse_date("2025.01.15") == date(2025, 1, 15)

    @pytest.mark.parametrize("raw", ["", "   ", "not a date"])
    def test_unparseable(self, raw):
        assert parse_date(raw) is None


class TestParseFields:
    def test_stake_strips_currency(self):
        assert parse_stake("$1,500") == 1500.0
        assert parse_stake("+250.50") == 250.5

    def test_stake_garbage_is_zero(self):
        assert parse_stake("lots") == 0.0

    @pytest.mark.parametrize("raw", ["nan", "NaN", "inf", "-inf", "$Infinity"])
    def test_stake_non_finite_is_zero(self, raw):
        assert parse_stake(raw) == 0.0

    def test_odds(self):
        assert parse_odds("+150") == 150
        assert parse_odds("-110") == -110
        assert parse_odds("-110.0") == -110

    @pytest.mark.parametrize("raw", ["abc", "1.5x", "", "--110"])
    def test_bad_odds(self, raw):
        with pytest.raises(RowError, match="Invalid odds format"):
            parse_odds(raw)

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("WIN", BetResult.WIN),
            ("w", BetResult.WIN),
            ("Won", BetResult.WIN),
            ("lost", BetResult.LOSS),
            ("L", BetResult.LOSS),
            ("tie", BetResult.PUSH),
            ("void", BetResult.REFUNDED),
            ("Cash Out", BetResult.CASHED_OUT),
            ("cashed  out", BetResult.CASHED_OUT),
        ],
    )
    def test_result_synonyms(self, raw, expected):
        assert normalize_result(raw) == expected

    def test_unknown_result(self):
        with pytest.raises(RowError, match="Invalid result 'MAYBE'"):
            normalize_result("MAYBE")

    def test_quoted_selection_with_comma(self):
        row = parse_row(2, '2025-01-15,NBA,"Lakers, Celtics over 220",1500,+100,WIN')
        assert row.selection == "Lakers, Celtics over 220"
        assert row.odds == 100

    def test_extra_columns_ignored(self):
        row = parse_row(2, "2025-01-15,NBA,Lakers ML,1500,-110,WIN,some note")
        assert row.result == BetResult.WIN

    def test_not_enough_fields(self):
        with pytest.raises(RowError, match="expected 6, got 4"):
            parse_row(2, "2025-01-15,NBA,Lakers ML,1500")

    def test_zero_stake(self):
        with pytest.raises(RowError, match="Missing or invalid required fields"):
            parse_row(2, "2025-01-15,NBA,Lakers ML,0,-110,WIN")

    def test_nan_stake(self):
        with pytest.raises(RowError, match="Missing or invalid required fields"):
            parse_row(2, "2025-01-15,NBA,Lakers ML,nan,-110,WIN")


class TestParseCsv:
    def test_line_numbers_count_header_and_blanks(self):
        text = _csv("", "2025-01-15,NBA,Lakers ML,1500,bad,WIN")
        rows, errors, warnings = parse_csv(text, set())
        assert rows == []
        assert errors == [
            "Line 3: Invalid odds format 'bad' (use American format like -110, +120)"
        ]

    def test_no_header(self):
        rows, errors, _ = parse_csv(_csv("2025-01-15,NBA,Lakers ML,1500,-110,WIN", header=False), set())
        assert len(rows) == 1
        assert rows[0].line == 1
        assert errors == []

    def test_rows_sorted_by_date(self):
        text = _csv(
            "2025-01-20,NBA,C,1500,-110,WIN",
            "2025-01-05,NBA,A,1500,-110,WIN",
            "2025-01-10,NBA,B,1500,-110,WIN",
        )
        rows, _, _ = parse_csv(text, set())
        assert [r.selection for r in rows] == ["A", "B", "C"]
        assert [r.line for r in rows] == [3, 4, 2]

    def test_in_batch_duplicate(self):
        text = _csv(
            "2025-01-15,NBA,Lakers ML,1500,-110,WIN",
            "2025-01-15,NBA,lakers ml,$1500,-110,LOSS",
        )
        rows, errors, warnings = parse_csv(text, set())
        assert len(rows) == 1
        assert errors == []
        assert warnings == ["Line 3: Duplicate bet within import data"]

    def test_close_stakes_are_distinct(self):
        text = _csv(
            "2025-01-15,NBA,Lakers ML,1234.561,-110,WIN",
            "2025-01-15,NBA,Lakers ML,1234.564,-110,WIN",
        )
        rows, _, warnings = parse_csv(text, set())
        assert [r.stake for r in rows] == [1234.561, 1234.564]
        assert warnings == []

    def test_existing_match_kept_with_warning(self):
        row = parse_row(2, "2025-01-15,NBA,Lakers ML,1500,-110,WIN")
        text = _csv(
            "2025-01-15,NBA,Lakers ML,1500,-110,WIN",
            "2025-01-15,NBA,Lakers ML,1500,-110,WIN",
        )
        rows, _, warnings = parse_csv(text, {row.signature})
        assert len(rows) == 1
        assert warnings == [
            "Line 2: Possible duplicate bet (same date, selection, stake, odds)",
            "Line 3: Duplicate bet within import data",
        ]


# ---------------------------------------------------------------------------
# import_csv through the tracker
# ---------------------------------------------------------------------------


class TestImportCsv:
    def test_imports_in_chronological_order(self, tracker):
        text = _csv(
            "2025-01-12,NFL,Bills ML,1500,100,LOSS",
            "2025-01-10,NFL,Chiefs ML,1500,-150,WIN",
            "01/11/2025,NBA,Lakers ML,2000,+100,push",
        )
        res = tracker.import_csv(text)
        assert res.success
        assert res.imported == 3
        assert res.errors == 0
        assert res.new_balance == pytest.approx(49_500)
        assert res.message == (
            "Successfully imported 3 bets (chronologically sorted)! New balance: $49,500.00"
        )

        ledger = tracker.load_ledger()
        assert [b.date for b in ledger.bets] == ["2025-01-10", "2025-01-11", "2025-01-12"]
        assert [b.seq for b in ledger.bets] == [1, 2, 3]
        assert_ledger_consistent(ledger)

    def test_interleaves_with_existing_bets(self, tracker):
        add_ok(tracker, date="2025-01-11", stake=2000, odds=100, result="WIN", selection="Existing")
        tracker.import_csv(_csv("2025-01-05,NFL,Early,1500,100,LOSS"))
        ledger = tracker.load_ledger()
        assert [b.selection for b in ledger.bets] == ["Early", "Existing"]
        assert [b.account_balance_after for b in ledger.bets] == pytest.approx([48_500, 50_500])

    def test_possible_duplicate_still_imported(self, tracker):
        add_ok(tracker, date="2025-01-15", selection="Chiefs ML", stake=1500, odds=-150)
        res = tracker.import_csv(
            _csv(
                "2025-01-15,NFL,Chiefs ML,1500,-150,WIN",
                "2025-01-16,NFL,Bills ML,1500,-150,WIN",
            )
        )
        assert res.success
        assert res.imported == 2
        assert res.warnings == 1
        assert res.warning_messages == [
            "Line 2: Possible duplicate bet (same date, selection, stake, odds)"
        ]
        ledger = tracker.load_ledger()
        assert [b.selection for b in ledger.bets] == ["Chiefs ML", "Chiefs ML", "Bills ML"]
        assert_ledger_consistent(ledger)

    def test_reimport_warns_on_every_row(self, tracker):
        text = _csv(
            "2025-01-10,NFL,Chiefs ML,1500,-150,WIN",
            "2025-01-11,NFL,Bills ML,1500,-150,LOSS",
        )
        assert tracker.import_csv(text).imported == 2
        assert tracker.load_ledger().account_balance == pytest.approx(49_500)

        again = tracker.import_csv(text)
        assert again.success is True
        assert again.imported == 2
        assert again.warnings == 2
        assert all("Possible duplicate bet" in w for w in again.warning_messages)
        ledger = tracker.load_ledger()
        assert len(ledger.bets) == 4
        assert ledger.account_balance == pytest.approx(49_000)
        assert_ledger_consistent(ledger)

    def test_non_finite_stake_row_rejected(self, tracker):
        res = tracker.import_csv(
            _csv(
                "2025-01-15,NFL,X,nan,-110,LOSS",
                "2025-01-16,NFL,Y,inf,-110,LOSS",
                "2025-01-17,NFL,Z,1500,-110,LOSS",
            )
        )
        assert res.imported == 1
        assert res.errors == 2
        assert res.error_messages[0].startswith("Line 2: Missing or invalid required fields")
        assert res.new_balance == pytest.approx(48_500)
        assert_ledger_consistent(tracker.load_ledger())

    def test_bad_rows_do_not_abort_batch(self, tracker):
        res = tracker.import_csv(
            _csv(
                "2025-01-10,NFL,Chiefs ML,1500,-150,WIN",
                "2025-01-11,NFL,Bills ML,1500,abc,WIN",
                "2025-01-12,NFL,Jets ML,1500,-150,MAYBE",
                "garbage line",
                "2025-01-13,NFL,Ravens ML,1500,100,LOSS",
            )
        )
        assert res.success
        assert res.imported == 2
        assert res.errors == 3
        assert [m.split(":")[0] for m in res.error_messages] == ["Line 3", "Line 4", "Line 5"]

    def test_stake_out_of_range_row(self, tracker):
        res = tracker.import_csv(
            _csv(
                "2025-01-10,NFL,Too small,500,-150,WIN",
                "2025-01-11,NFL,Fine,1500,-150,WIN",
            )
        )
        assert res.imported == 1
        assert res.error_messages == [
            "Line 2: Bet size must be between $1,000.00 and $2,500.00 for Pro $50,000 account"
        ]

    def test_nothing_valid(self, tracker):
        res = tracker.import_csv(_csv("2025-01-11,NFL,Bills ML,1500,abc,WIN"))
        assert res.success is False
        assert res.error == ErrorKind.INVALID_DATA
        assert res.message.startswith("No valid bets found in CSV data. Errors: Line 2:")
        assert tracker.load_ledger().bets == []

    @pytest.mark.parametrize("text", ["", "   \n  "])
    def test_empty(self, tracker, text):
        res = tracker.import_csv(text)
        assert res.success is False
        assert res.error == ErrorKind.INVALID_DATA
        assert res.message == "CSV data is empty"


# ---------------------------------------------------------------------------
# LLM text
# ---------------------------------------------------------------------------

LLM_REPLY = """Sure! Here are your bets, converted:

```csv
Date,Sport,Selection,Stake,Odds,Result
2025-01-10,NFL,Chiefs ML,1500,-150,WIN
2025-01-11,NBA,Lakers ML,1500,+100,LOSS
```

Let me know if you need anything else, e.g. totals, odds, or notes."""


class TestExtractCsv:
    def test_fenced_block(self):
        assert extract_csv(LLM_REPLY).splitlines() == [
            HEADER,
            "2025-01-10,NFL,Chiefs ML,1500,-150,WIN",
            "2025-01-11,NBA,Lakers ML,1500,+100,LOSS",
        ]

    def test_unfenced_prose_dropped(self):
        text = "Here you go:\n2025-01-10,NFL,Chiefs ML,1500,-150,WIN\nHope that helps, cheers."
        assert extract_csv(text) == "2025-01-10,NFL,Chiefs ML,1500,-150,WIN"

    @pytest.mark.parametrize("text", ["", "  \n "])
    def test_empty(self, text):
        with pytest.raises(InvalidData, match="No content received from AI"):
            extract_csv(text)

    def test_no_rows(self):
        with pytest.raises(InvalidData, match="AI did not generate valid CSV data"):
            extract_csv("I could not find any bets in that screenshot.")


class TestImportLlmText:
    def test_imports_rows(self, tracker):
        res = tracker.import_llm_text(LLM_REPLY)
        assert res.success
        assert res.imported == 2
        assert res.new_balance == pytest.approx(49_500)

    def test_no_rows(self, tracker):
        res = tracker.import_llm_text("Sorry, I can't read that image.")
        assert res.success is False
        assert res.error == ErrorKind.INVALID_DATA
        assert res.message == "AI did not generate valid CSV data"

    def test_rows_still_validated(self, tracker):
        res = tracker.import_llm_text("2025-01-10,NFL,Chiefs ML,1500,-150,PROBABLY")
        assert res.success is False
        assert res.errors == 1
