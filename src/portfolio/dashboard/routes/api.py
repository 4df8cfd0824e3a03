"""JSON API endpoints: exchange balances, ledger CRUD, positions, and price history."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from portfolio.exceptions import (
    ConfigurationError,
    PersistenceError,
    UpstreamError,
    ValidationError,
)

log = structlog.get_logger(__name__)

router = APIRouter()

_REQUIRED_TRANSACTION_FIELDS = ("asset_id", "amount", "unit_price", "date")


def _upstream_response(error: UpstreamError) -> JSONResponse:
    """502 with the upstream status when known. Never echoes credentials."""
    content: dict = {"error": error.message}
    if error.status_code is not None:
        content["upstream_status"] = error.status_code
    return JSONResponse(content=content, status_code=502)


@router.get("/portfolio")
async def get_portfolio(request: Request) -> JSONResponse:
    """Exchange balances with a non-zero total, largest first."""
    service = request.app.state.service
    aggregator = request.app.state.aggregator

    try:
        balances = await service.balances()
    except ConfigurationError as e:
        log.warning("portfolio_keys_missing")
        return JSONResponse(content={"error": str(e)}, status_code=500)
    except UpstreamError as e:
        log.error(
            "portfolio_upstream_error",
            error=e.message,
            status_code=e.status_code,
            auth_failure=e.is_auth_failure,
        )
        return _upstream_response(e)

    return JSONResponse(content=aggregator.balances_view(balances))


@router.get("/transactions")
async def list_transactions(request: Request) -> JSONResponse:
    """Ledger entries, newest first."""
    ledger = request.app.state.service.ledger
    return JSONResponse(content=[t.to_dict() for t in reversed(ledger.list())])


@router.post("/transactions")
async def create_transaction(request: Request) -> JSONResponse:
    """Add a buy transaction.

    Expects JSON body with: asset_id, amount, unit_price, date (YYYY-MM-DD).

    Returns:
        201 with the stored transaction.
    """
    ledger = request.app.state.service.ledger

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(content={"error": "Invalid JSON body"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse(content={"error": "Expected a JSON object"}, status_code=400)

    for field in _REQUIRED_TRANSACTION_FIELDS:
        if field not in body:
            return JSONResponse(
                content={"error": f"Missing required field: {field}"}, status_code=400
            )

    try:
        transaction = ledger.add(
            asset_id=body["asset_id"],
            amount=body["amount"],
            unit_price=body["unit_price"],
            date=body["date"],
        )
    except ValidationError as e:
        return JSONResponse(content={"error": str(e)}, status_code=400)
    except PersistenceError as e:
        log.error("transaction_persist_failed", error=str(e))
        return JSONResponse(content={"error": "Could not save transaction"}, status_code=500)

    return JSONResponse(content=transaction.to_dict(), status_code=201)


@router.delete("/transactions/{transaction_id}")
async def delete_transaction(request: Request, transaction_id: str) -> JSONResponse:
    """Remove a transaction. Unknown ids succeed with removed=false."""
    ledger = request.app.state.service.ledger

    try:
        removed = ledger.remove(transaction_id)
    except PersistenceError as e:
        log.error("transaction_persist_failed", error=str(e))
        return JSONResponse(content={"error": "Could not save ledger"}, status_code=500)

    return JSONResponse(content={"removed": removed})


@router.get("/positions")
async def get_positions(request: Request) -> JSONResponse:
    """Per-transaction P&L at current spot prices, plus totals."""
    service = request.app.state.service
    aggregator = request.app.state.aggregator

    try:
        report = await service.reconcile()
    except UpstreamError as e:
        log.error("positions_upstream_error", error=e.message)
        return _upstream_response(e)

    return JSONResponse(content={
        "positions": aggregator.positions_view(report.pairs),
        "summary": aggregator.summary(report.pairs),
        "stale": report.stale,
    })


@router.get("/history/{asset_id}")
async def get_history(request: Request, asset_id: str, days: str | None = None) -> JSONResponse:
    """Daily price curve for one asset with purchases projected onto it."""
    service = request.app.state.service
    aggregator = request.app.state.aggregator

    span_days = None
    if days is not None:
        try:
            span_days = int(days)
        except ValueError:
            return JSONResponse(
                content={"error": f"days must be an integer, got {days!r}"}, status_code=400
            )

    try:
        report = await service.reconcile(asset_id=asset_id, span_days=span_days)
    except ValidationError as e:
        return JSONResponse(content={"error": str(e)}, status_code=400)
    except UpstreamError as e:
        log.error("history_upstream_error", asset_id=asset_id, error=e.message)
        return _upstream_response(e)

    return JSONResponse(content={
        "asset_id": report.asset_id,
        **aggregator.chart_view(report.series, report.projected),
        "stale": report.stale,
    })
