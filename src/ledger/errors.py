"""Ledger error taxonomy.

Raised inside the core; BetTracker converts them to OperationResult values
so callers never see an uncaught ledger fault.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    STAKE_OUT_OF_RANGE = "stake_out_of_range"
    INVALID_DATA = "invalid_data"
    INVALID_RESULT = "invalid_result"
    NOT_FOUND = "not_found"
    STALE_LEDGER = "stale_ledger"


class LedgerError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_DATA

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StakeOutOfRange(LedgerError):
    kind = ErrorKind.STAKE_OUT_OF_RANGE


class InvalidData(LedgerError):
    kind = ErrorKind.INVALID_DATA


class InvalidResult(LedgerError):
    kind = ErrorKind.INVALID_RESULT


class NotFound(LedgerError):
    kind = ErrorKind.NOT_FOUND


class StaleLedger(LedgerError):
    """Ledger changed on disk after it was loaded."""

    kind = ErrorKind.STALE_LEDGER
