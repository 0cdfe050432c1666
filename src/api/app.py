"""JSON HTTP API over the ledger operations.

Each request builds a BetTracker for the account in the path, performs one
operation and returns. Failed OperationResults map to 4xx responses.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.config import settings
from src.ledger.errors import ErrorKind, LedgerError
from src.ledger.tracker import BetTracker, OperationResult
from src.logging_config import bind_request_id, setup_logging
from src.store import accounts as registry
from src.store.json_store import LedgerStore

logger = logging.getLogger(__name__)

CLEAR_CONFIRMATION = "YES DELETE ALL"

_STATUS_CODES = {
    ErrorKind.STAKE_OUT_OF_RANGE: 422,
    ErrorKind.INVALID_DATA: 422,
    ErrorKind.INVALID_RESULT: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STALE_LEDGER: 409,
}


def get_store() -> LedgerStore:
    return LedgerStore()


def get_clock() -> Callable[[], date]:
    return date.today


def get_tracker(
    account_id: str,
    store: LedgerStore = Depends(get_store),
    clock: Callable[[], date] = Depends(get_clock),
) -> BetTracker:
    return BetTracker(account_id, store=store, clock=clock)


class ParlayLegIn(BaseModel):
    selection: str
    odds: int


class BetIn(BaseModel):
    date: str
    sport: str
    selection: str
    stake: float
    odds: int = 0
    result: str
    is_parlay: bool = False
    parlay_legs: list[ParlayLegIn] = Field(default_factory=list)


class BetEdit(BaseModel):
    date: str
    sport: str
    selection: str
    stake: float
    odds: int
    result: str


class CsvIn(BaseModel):
    csv_data: str


class TextIn(BaseModel):
    text: str


class ClearIn(BaseModel):
    confirm: str = ""


class AccountIn(BaseModel):
    tier: str
    size: float
    name: str | None = None


def _respond(res: Any) -> JSONResponse:
    body = asdict(res)
    if res.success:
        return JSONResponse(body)
    return JSONResponse(body, status_code=_STATUS_CODES.get(res.error, 400))


router = APIRouter(prefix="/api")


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/account-types")
def account_types() -> dict:
    return registry.available_account_types()


@router.get("/accounts")
def list_accounts(store: LedgerStore = Depends(get_store)) -> list[dict]:
    return [asdict(a) for a in registry.list_accounts(store)]


@router.post("/accounts", status_code=201)
def create_account(body: AccountIn, store: LedgerStore = Depends(get_store)) -> dict:
    try:
        account = registry.create_account(store, body.tier, body.size, body.name)
    except LedgerError as e:
        raise HTTPException(status_code=422, detail=e.message) from None
    return asdict(account)


@router.get("/accounts/{account_id}/status")
def status(tracker: BetTracker = Depends(get_tracker)) -> dict:
    return asdict(tracker.get_status())


@router.get("/accounts/{account_id}/bets")
def list_bets(tracker: BetTracker = Depends(get_tracker)) -> list[dict]:
    return [b.to_dict() for b in tracker.get_all_bets()]


@router.get("/accounts/{account_id}/bets/{bet_id}")
def get_bet(bet_id: str, tracker: BetTracker = Depends(get_tracker)) -> dict:
    bet = tracker.get_bet(bet_id)
    if bet is None:
        raise HTTPException(status_code=404, detail="Bet not found")
    return bet.to_dict()


@router.post("/accounts/{account_id}/bets")
def add_bet(body: BetIn, tracker: BetTracker = Depends(get_tracker)) -> JSONResponse:
    res: OperationResult = tracker.add_bet(
        body.date,
        body.sport,
        body.selection,
        body.stake,
        body.odds,
        body.result,
        body.is_parlay,
        [leg.model_dump() for leg in body.parlay_legs],
    )
    return _respond(res)


@router.put("/accounts/{account_id}/bets/{bet_id}")
def edit_bet(bet_id: str, body: BetEdit, tracker: BetTracker = Depends(get_tracker)) -> JSONResponse:
    return _respond(
        tracker.edit_bet(
            bet_id, body.date, body.sport, body.selection, body.stake, body.odds, body.result
        )
    )


@router.delete("/accounts/{account_id}/bets/{bet_id}")
def delete_bet(bet_id: str, tracker: BetTracker = Depends(get_tracker)) -> JSONResponse:
    return _respond(tracker.delete_bet(bet_id))


@router.post("/accounts/{account_id}/clear")
def clear_all(body: ClearIn, tracker: BetTracker = Depends(get_tracker)) -> JSONResponse:
    if body.confirm != CLEAR_CONFIRMATION:
        raise HTTPException(
            status_code=400, detail=f'Type "{CLEAR_CONFIRMATION}" to confirm'
        )
    return _respond(tracker.clear_all())


@router.post("/accounts/{account_id}/import")
def import_csv(body: CsvIn, tracker: BetTracker = Depends(get_tracker)) -> JSONResponse:
    return _respond(tracker.import_csv(body.csv_data))


@router.post("/accounts/{account_id}/import/llm-text")
def import_llm_text(body: TextIn, tracker: BetTracker = Depends(get_tracker)) -> JSONResponse:
    return _respond(tracker.import_llm_text(body.text))


@router.post("/accounts/{account_id}/advance-phase")
def advance_phase(tracker: BetTracker = Depends(get_tracker)) -> JSONResponse:
    return _respond(tracker.advance_phase())


def create_app() -> FastAPI:
    app = FastAPI(title=settings.api_title)
    app.include_router(router)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        rid = bind_request_id(request.headers.get("x-request-id"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            {"success": False, "error": str(exc.kind), "message": exc.message},
            status_code=_STATUS_CODES.get(exc.kind, 400),
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    setup_logging()
    uvicorn.run(app, host="127.0.0.1", port=8000)
